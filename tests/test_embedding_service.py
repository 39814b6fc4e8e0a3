from __future__ import annotations

from dataclasses import dataclass

import pytest

from dataroom_ai.config import settings
from dataroom_ai.services.embedding_service import (
    EmbeddingService,
    is_retryable_embedding_error,
)


@dataclass
class _FakeEmbedding:
    embedding: list[float]
    index: int


@dataclass
class _FakeEmbeddingResponse:
    data: list[_FakeEmbedding]


class _FakeEmbeddings:
    def __init__(self, failures: list[Exception] | None = None):
        self.calls: list[object] = []
        self._failures = list(failures or [])

    async def create(self, *, model, input):
        self.calls.append(input)
        if self._failures:
            raise self._failures.pop(0)
        texts = [input] if isinstance(input, str) else input
        # Return items out of order; the service must sort by index.
        items = [_FakeEmbedding(embedding=[float(len(t)), 1.0], index=i) for i, t in enumerate(texts)]
        return _FakeEmbeddingResponse(data=list(reversed(items)))


class _FakeClient:
    def __init__(self, failures: list[Exception] | None = None):
        self.embeddings = _FakeEmbeddings(failures)


@pytest.fixture(autouse=True)
def _fast_retries(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "embedding_retry_base_seconds", 0.0)
    monkeypatch.setattr(settings, "embedding_max_retries", 2)


@pytest.mark.asyncio
async def test_query_embedding_is_cached():
    client = _FakeClient()
    svc = EmbeddingService(client, model="embed-test")  # type: ignore[arg-type]

    first = await svc.get_query_embedding("revenue")
    second = await svc.get_query_embedding("revenue")

    assert first == second == [7.0, 1.0]
    assert len(client.embeddings.calls) == 1


@pytest.mark.asyncio
async def test_transient_errors_are_retried():
    client = _FakeClient(failures=[TimeoutError(), TimeoutError()])
    svc = EmbeddingService(client, model="embed-test")  # type: ignore[arg-type]

    assert await svc.get_query_embedding("cash") == [4.0, 1.0]
    assert len(client.embeddings.calls) == 3


@pytest.mark.asyncio
async def test_retries_are_bounded():
    client = _FakeClient(failures=[TimeoutError()] * 3)
    svc = EmbeddingService(client, model="embed-test")  # type: ignore[arg-type]

    with pytest.raises(TimeoutError):
        await svc.get_query_embedding("cash")
    assert len(client.embeddings.calls) == 3


@pytest.mark.asyncio
async def test_non_retryable_error_raises_immediately():
    client = _FakeClient(failures=[ValueError("bad input")])
    svc = EmbeddingService(client, model="embed-test")  # type: ignore[arg-type]

    with pytest.raises(ValueError):
        await svc.get_query_embedding("cash")
    assert len(client.embeddings.calls) == 1


@pytest.mark.asyncio
async def test_embed_batch_preserves_order_and_uses_cache():
    client = _FakeClient()
    svc = EmbeddingService(client, model="embed-test")  # type: ignore[arg-type]
    await svc.get_query_embedding("bb")

    result = await svc.embed_batch(["a", "bb", "ccc", "dddd"], batch_size=2)

    assert result == [[1.0, 1.0], [2.0, 1.0], [3.0, 1.0], [4.0, 1.0]]
    # One call for the warm-up, then "a","ccc" and "dddd" in two batches.
    assert client.embeddings.calls[1:] == [["a", "ccc"], ["dddd"]]


@pytest.mark.asyncio
async def test_embed_batch_empty():
    svc = EmbeddingService(_FakeClient(), model="embed-test")  # type: ignore[arg-type]
    assert await svc.embed_batch([]) == []


def test_retryable_classification():
    assert is_retryable_embedding_error(TimeoutError())
    assert not is_retryable_embedding_error(ValueError())
