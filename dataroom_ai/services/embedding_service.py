"""Embedding service for query and chunk vectors.

Query embeddings are cached in the `embed` namespace keyed by model and
text hash, so repeated questions against a data room skip the API call.
"""

from __future__ import annotations

import asyncio
import json
import random
from typing import Any

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)

from dataroom_ai.config import settings
from dataroom_ai.core.cache.keys import canonical_json, embedding_key
from dataroom_ai.core.cache.provider import get_cache
from dataroom_ai.logger import get_logger
from dataroom_ai.services.openai_clients import get_openai_client

logger = get_logger(__name__)

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}
_MAX_BACKOFF_SECONDS = 10.0


def is_retryable_embedding_error(exc: Exception) -> bool:
    """Return True if the embedding call error is likely transient."""
    if isinstance(exc, (RateLimitError, APIConnectionError, APITimeoutError, InternalServerError)):
        return True
    if isinstance(exc, APIStatusError):
        return exc.status_code in _RETRYABLE_STATUS
    return isinstance(exc, TimeoutError)


class EmbeddingService:
    """Service for generating embeddings with caching and bounded retries."""

    def __init__(self, client: AsyncOpenAI | None = None, *, model: str | None = None) -> None:
        self._client = client
        self.model = model or settings.openai_embedding_model

    async def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = await get_openai_client()
        return self._client

    async def _embeddings_create_with_retry(self, input_text: str | list[str]) -> Any:
        """Call the embeddings API with bounded retries + timeout."""
        client = await self._get_client()
        max_retries = max(0, settings.embedding_max_retries)
        base_delay = settings.embedding_retry_base_seconds

        for attempt in range(max_retries + 1):
            try:
                return await asyncio.wait_for(
                    client.embeddings.create(model=self.model, input=input_text),
                    timeout=settings.embedding_request_timeout_seconds,
                )
            except Exception as exc:
                if attempt >= max_retries or not is_retryable_embedding_error(exc):
                    logger.error(
                        "embedding_request_failed",
                        attempt=attempt,
                        max_retries=max_retries,
                        error=str(exc),
                    )
                    raise

                # Exponential backoff with jitter
                delay = base_delay * (2**attempt) * (0.5 + random.random())
                delay = min(delay, _MAX_BACKOFF_SECONDS)

                logger.warning(
                    "embedding_request_retry",
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay_seconds=f"{delay:.2f}",
                    error=str(exc),
                )
                await asyncio.sleep(delay)

        raise RuntimeError("unreachable")  # pragma: no cover

    def _cached(self, text: str) -> list[float] | None:
        cached = get_cache("embed").get(embedding_key(model=self.model, text=text))
        if cached is None:
            return None
        try:
            embedding = json.loads(cached.decode("utf-8"))
        except ValueError:
            logger.warning("embedding_cache_entry_corrupt")
            return None
        return embedding if isinstance(embedding, list) else None

    def _store(self, text: str, embedding: list[float]) -> None:
        get_cache("embed").set(
            embedding_key(model=self.model, text=text),
            canonical_json(embedding).encode("utf-8"),
        )

    async def get_query_embedding(self, text: str) -> list[float]:
        """
        Generate an embedding vector for a query.

        Args:
            text: The text to embed

        Returns:
            The embedding vector
        """
        cached = self._cached(text)
        if cached is not None:
            return cached

        response = await self._embeddings_create_with_retry(text)
        embedding = list(response.data[0].embedding)
        logger.debug("embedding_generated", text_length=len(text), embedding_dims=len(embedding))
        self._store(text, embedding)
        return embedding

    async def embed_batch(
        self,
        texts: list[str],
        batch_size: int = 256,
        max_concurrent: int = 4,
    ) -> list[list[float]]:
        """
        Embed many texts in parallel batches, preserving input order.

        Args:
            texts: List of texts to embed
            batch_size: Number of texts per API call
            max_concurrent: Maximum number of concurrent API calls

        Returns:
            List of embedding vectors in the same order as input texts
        """
        if not texts:
            return []

        results: list[list[float] | None] = [None] * len(texts)
        missing: list[tuple[int, str]] = []
        for i, text in enumerate(texts):
            cached = self._cached(text)
            if cached is not None:
                results[i] = cached
            else:
                missing.append((i, text))

        if missing:
            semaphore = asyncio.Semaphore(max_concurrent)

            async def process_batch(batch: list[str]) -> list[list[float]]:
                async with semaphore:
                    response = await self._embeddings_create_with_retry(batch)
                # Sort by index to maintain order
                return [list(item.embedding) for item in sorted(response.data, key=lambda d: d.index)]

            missing_texts = [t for _, t in missing]
            batches = [
                missing_texts[i : i + batch_size] for i in range(0, len(missing_texts), batch_size)
            ]
            batch_results = await asyncio.gather(*[process_batch(b) for b in batches])
            embeddings = [emb for batch_embs in batch_results for emb in batch_embs]

            for (index, text), embedding in zip(missing, embeddings, strict=True):
                results[index] = embedding
                self._store(text, embedding)

            logger.debug(
                "batch_embeddings_generated",
                total_texts=len(texts),
                cache_hits=len(texts) - len(missing),
                batches=len(batches),
            )

        final: list[list[float]] = []
        for r in results:
            if r is None:
                raise RuntimeError("Embedding batch result missing entry")
            final.append(r)
        return final


_embedding_service: EmbeddingService | None = None


def get_embedding_service() -> EmbeddingService:
    """Get or create the global embedding service."""
    global _embedding_service
    if _embedding_service is None:
        _embedding_service = EmbeddingService()
    return _embedding_service
