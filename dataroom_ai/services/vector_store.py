"""
Per-tenant chunk storage and retrieval.

Every tenant's data room has its own store. Stores answer three kinds of
queries used by the RAG chain:

- ``search_multi_file``: vector search that prefers one category
- ``search_by_files``: vector search restricted to chosen files
- ``search_by_keyword``: exact identifier matches (INV-123, CUST-42, ...)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from threading import Lock
from typing import Any, Protocol

from dataroom_ai.config import settings
from dataroom_ai.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RetrievedChunk:
    """A chunk returned by a store query, scored against the query."""

    id: str
    content: str
    similarity: float
    file_id: str | None = None
    source_file: str | None = None
    category: str | None = None
    text: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class DocumentChunk:
    """A stored chunk with its vector embedding."""

    id: str
    file_id: str
    content: str
    embedding: list[float]
    chunk_index: int
    source_file: str | None = None
    category: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_result(self, similarity: float) -> RetrievedChunk:
        return RetrievedChunk(
            id=self.id,
            content=self.content,
            similarity=similarity,
            file_id=self.file_id,
            source_file=self.source_file,
            category=self.category,
            metadata=dict(self.metadata),
        )


class VectorStore(Protocol):
    async def add_chunks(self, chunks: list[DocumentChunk]) -> int: ...

    async def delete_file(self, file_id: str) -> int: ...

    async def count(self) -> int: ...

    async def search_multi_file(
        self, embedding: list[float], category: str | None, *, top_k: int
    ) -> list[RetrievedChunk]: ...

    async def search_by_files(
        self, embedding: list[float], file_ids: list[str], *, top_k: int
    ) -> list[RetrievedChunk]: ...

    async def search_by_keyword(
        self, keywords: list[str], *, limit: int
    ) -> list[RetrievedChunk]: ...


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity; 0.0 when either vector is zero or sizes differ."""
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryVectorStore:
    """Brute-force cosine search over chunks held in process memory."""

    def __init__(self, tenant_slug: str) -> None:
        self.tenant_slug = tenant_slug
        self._chunks: dict[str, DocumentChunk] = {}
        self._lock = Lock()

    async def add_chunks(self, chunks: list[DocumentChunk]) -> int:
        with self._lock:
            for chunk in chunks:
                self._chunks[chunk.id] = chunk
        logger.debug("memory_chunks_stored", tenant=self.tenant_slug, count=len(chunks))
        return len(chunks)

    async def delete_file(self, file_id: str) -> int:
        with self._lock:
            doomed = [cid for cid, c in self._chunks.items() if c.file_id == file_id]
            for cid in doomed:
                del self._chunks[cid]
        return len(doomed)

    async def count(self) -> int:
        return len(self._chunks)

    def _ranked(self, embedding: list[float], chunks: list[DocumentChunk]) -> list[RetrievedChunk]:
        scored = [c.to_result(cosine_similarity(embedding, c.embedding)) for c in chunks]
        scored.sort(key=lambda r: r.similarity, reverse=True)
        return scored

    async def search_multi_file(
        self, embedding: list[float], category: str | None, *, top_k: int
    ) -> list[RetrievedChunk]:
        with self._lock:
            chunks = list(self._chunks.values())

        if not category:
            return self._ranked(embedding, chunks)[:top_k]

        in_category = self._ranked(embedding, [c for c in chunks if c.category == category])
        results = in_category[:top_k]
        if len(results) < top_k:
            others = self._ranked(embedding, [c for c in chunks if c.category != category])
            results.extend(others[: top_k - len(results)])
        return results

    async def search_by_files(
        self, embedding: list[float], file_ids: list[str], *, top_k: int
    ) -> list[RetrievedChunk]:
        wanted = set(file_ids)
        with self._lock:
            chunks = [c for c in self._chunks.values() if c.file_id in wanted]
        return self._ranked(embedding, chunks)[:top_k]

    async def search_by_keyword(self, keywords: list[str], *, limit: int) -> list[RetrievedChunk]:
        needles = [k.upper() for k in keywords if k]
        if not needles or limit <= 0:
            return []

        results: list[RetrievedChunk] = []
        with self._lock:
            for chunk in self._chunks.values():
                haystack = chunk.content.upper()
                if any(n in haystack for n in needles):
                    results.append(chunk.to_result(1.0))
                    if len(results) >= limit:
                        break
        return results


_stores: dict[str, VectorStore] = {}
_stores_lock = Lock()


def get_vector_store(tenant_slug: str) -> VectorStore:
    """Get or create the store for a tenant using the configured provider."""
    with _stores_lock:
        store = _stores.get(tenant_slug)
        if store is not None:
            return store

        if settings.vector_store_provider == "azure_search":
            from dataroom_ai.services.azure_search_service import AzureSearchVectorStore

            store = AzureSearchVectorStore(tenant_slug)
        elif settings.vector_store_provider == "memory":
            store = InMemoryVectorStore(tenant_slug)
        else:
            raise ValueError(f"Unknown vector_store_provider: {settings.vector_store_provider}")

        _stores[tenant_slug] = store
        logger.info(
            "vector_store_created",
            tenant=tenant_slug,
            provider=settings.vector_store_provider,
        )
        return store


async def dispose_vector_stores() -> None:
    """Close any stores holding network clients and forget all stores."""
    with _stores_lock:
        stores = list(_stores.values())
        _stores.clear()
    for store in stores:
        dispose = getattr(store, "dispose", None)
        if dispose is not None:
            await dispose()
