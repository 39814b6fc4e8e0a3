"""Chat completion helper with opt-in deterministic response caching.

This service wraps ``client.chat.completions.create(...)`` and returns the
assistant message content. Non-streaming results may be cached in the `llm`
namespace.

Caching invariants:
- Opt-in via ``settings.cache_llm_ttl_seconds > 0``.
- Only deterministic calls (``temperature == 0``) are cached.
- Entries are scoped per tenant (``scope`` must be provided) so no answer
  computed over one tenant's documents can be served to another.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from openai import AsyncOpenAI

from dataroom_ai.config import settings
from dataroom_ai.core.cache.keys import llm_response_key
from dataroom_ai.core.cache.provider import get_cache
from dataroom_ai.logger import get_logger
from dataroom_ai.services.openai_clients import get_openai_client

logger = get_logger(__name__)

type ChatMessages = list[dict[str, Any]]


class LLMService:
    def __init__(self, client: AsyncOpenAI | None = None, *, model: str | None = None) -> None:
        self._client = client
        self.model = model or settings.openai_llm_model

    async def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = await get_openai_client()
        return self._client

    async def _create(
        self,
        messages: ChatMessages,
        *,
        max_tokens: int,
        temperature: float,
    ) -> str:
        client = await self._get_client()
        response = await client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return (response.choices[0].message.content or "").strip()

    async def complete(
        self,
        messages: ChatMessages,
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
        scope: str | None = None,
    ) -> str:
        """Create a chat completion and return the stripped assistant content."""
        max_tokens = settings.llm_max_output_tokens if max_tokens is None else max_tokens
        temperature = settings.llm_temperature if temperature is None else temperature

        if settings.cache_llm_ttl_seconds <= 0 or temperature != 0 or not scope:
            return await self._create(messages, max_tokens=max_tokens, temperature=temperature)

        cache = get_cache("llm")
        cache_key = llm_response_key(
            scope=scope, model=self.model, messages=messages, max_tokens=max_tokens
        )

        async def _factory() -> bytes:
            content = await self._create(messages, max_tokens=max_tokens, temperature=temperature)
            return content.encode("utf-8")

        return (await cache.get_or_set(cache_key, _factory)).decode("utf-8")

    async def stream(
        self,
        messages: ChatMessages,
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> AsyncIterator[str]:
        """Yield non-empty content deltas of a streamed completion."""
        client = await self._get_client()
        stream = await client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=settings.llm_max_output_tokens if max_tokens is None else max_tokens,
            temperature=settings.llm_temperature if temperature is None else temperature,
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content


_llm_service: LLMService | None = None


def get_llm_service() -> LLMService:
    """Get or create the global LLM service."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
