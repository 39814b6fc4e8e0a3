"""Test fixtures and configuration."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

from dataroom_ai.config import settings
from dataroom_ai.core.cache import provider as cache_provider
from dataroom_ai.core.cache import stats as cache_stats
from dataroom_ai.main import app
from dataroom_ai.services.vector_store import DocumentChunk, InMemoryVectorStore


class FakeLLM:
    """Stand-in for LLMService: answers from a responder and records prompts."""

    def __init__(
        self,
        responder: Callable[[str], str] | None = None,
        *,
        stream_chunks: list[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._responder = responder or (lambda _prompt: "answer")
        self._stream_chunks = stream_chunks or ["Total ", "is ", "42."]
        self._error = error
        self.prompts: list[str] = []
        self.calls: list[dict] = []

    async def complete(self, messages, *, max_tokens=None, temperature=None, scope=None) -> str:
        prompt = messages[-1]["content"]
        self.prompts.append(prompt)
        self.calls.append(
            {"messages": messages, "max_tokens": max_tokens, "temperature": temperature, "scope": scope}
        )
        if self._error is not None:
            raise self._error
        return self._responder(prompt)

    async def stream(self, messages, *, max_tokens=None, temperature=None):
        self.prompts.append(messages[-1]["content"])
        if self._error is not None:
            raise self._error
        for chunk in self._stream_chunks:
            yield chunk


class FakeEmbeddings:
    """Every text maps to the same unit vector unless overridden."""

    def __init__(self, vectors: dict[str, list[float]] | None = None) -> None:
        self.vectors = vectors or {}
        self.queries: list[str] = []
        self.batches: list[list[str]] = []

    def _vector(self, text: str) -> list[float]:
        for needle, vector in self.vectors.items():
            if needle in text:
                return vector
        return [1.0, 0.0, 0.0]

    async def get_query_embedding(self, text: str) -> list[float]:
        self.queries.append(text)
        return self._vector(text)

    async def embed_batch(self, texts, batch_size=256, max_concurrent=4):
        self.batches.append(list(texts))
        return [self._vector(t) for t in texts]


def make_chunk(
    chunk_id: str,
    content: str,
    *,
    file_id: str = "f1",
    category: str = "Monthly Financials",
    embedding: list[float] | None = None,
    source_file: str = "financials.xlsx",
) -> DocumentChunk:
    return DocumentChunk(
        id=chunk_id,
        file_id=file_id,
        content=content,
        embedding=embedding or [1.0, 0.0, 0.0],
        chunk_index=0,
        source_file=source_file,
        category=category,
    )


@pytest.fixture(autouse=True)
def _isolate_cache(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "cache_enabled", True, raising=False)
    cache_provider.reset_caches()
    cache_stats.reset()
    yield
    cache_provider.reset_caches()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture
def store() -> InMemoryVectorStore:
    return InMemoryVectorStore("acme")


@pytest.fixture
def client() -> TestClient:
    """Test client; lifespan is not run so no external clients are created."""
    return TestClient(app)
