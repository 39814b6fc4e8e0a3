from __future__ import annotations

from dataclasses import dataclass

import pytest

from dataroom_ai.config import settings
from dataroom_ai.services.llm_service import LLMService


@dataclass
class _FakeMessage:
    content: str | None


@dataclass
class _FakeChoice:
    message: _FakeMessage


@dataclass
class _FakeResponse:
    choices: list[_FakeChoice]


@dataclass
class _FakeDelta:
    content: str | None


@dataclass
class _FakeStreamChoice:
    delta: _FakeDelta


@dataclass
class _FakeStreamChunk:
    choices: list[_FakeStreamChoice]


class _FakeStream:
    def __init__(self, parts: list[str | None]):
        self._parts = parts

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        yield _FakeStreamChunk(choices=[])
        for part in self._parts:
            yield _FakeStreamChunk(choices=[_FakeStreamChoice(delta=_FakeDelta(content=part))])


class _FakeCompletions:
    def __init__(self):
        self.calls = 0
        self.kwargs: list[dict] = []

    async def create(self, **kwargs):
        self.calls += 1
        self.kwargs.append(kwargs)
        if kwargs.get("stream"):
            return _FakeStream(["Hel", None, "lo", ""])
        # Make response dependent on call count to verify caching.
        return _FakeResponse(
            choices=[_FakeChoice(message=_FakeMessage(content=f"  resp-{self.calls}  "))]
        )


class _FakeChat:
    def __init__(self, completions: _FakeCompletions):
        self.completions = completions


class _FakeClient:
    def __init__(self):
        self._completions = _FakeCompletions()
        self.chat = _FakeChat(self._completions)


MESSAGES = [
    {"role": "system", "content": "You are a test"},
    {"role": "user", "content": "Hello"},
]


@pytest.mark.asyncio
async def test_llm_response_cached_when_opted_in_and_deterministic(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "cache_llm_ttl_seconds", 60, raising=False)

    client = _FakeClient()
    svc = LLMService(client, model="gpt-test")  # type: ignore[arg-type]

    out1 = await svc.complete(MESSAGES, temperature=0, max_tokens=10, scope="acme")
    out2 = await svc.complete(MESSAGES, temperature=0, max_tokens=10, scope="acme")

    assert out1 == out2 == "resp-1"
    assert client._completions.calls == 1


@pytest.mark.asyncio
async def test_llm_cache_is_scoped_per_tenant(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "cache_llm_ttl_seconds", 60, raising=False)

    client = _FakeClient()
    svc = LLMService(client, model="gpt-test")  # type: ignore[arg-type]

    out1 = await svc.complete(MESSAGES, temperature=0, scope="acme")
    out2 = await svc.complete(MESSAGES, temperature=0, scope="globex")

    assert out1 != out2
    assert client._completions.calls == 2


@pytest.mark.asyncio
async def test_llm_response_not_cached_when_temperature_nonzero(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "cache_llm_ttl_seconds", 60, raising=False)

    client = _FakeClient()
    svc = LLMService(client, model="gpt-test")  # type: ignore[arg-type]

    await svc.complete(MESSAGES, temperature=0.1, scope="acme")
    await svc.complete(MESSAGES, temperature=0.1, scope="acme")

    assert client._completions.calls == 2


@pytest.mark.asyncio
async def test_llm_response_not_cached_when_scope_missing(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "cache_llm_ttl_seconds", 60, raising=False)

    client = _FakeClient()
    svc = LLMService(client, model="gpt-test")  # type: ignore[arg-type]

    await svc.complete(MESSAGES, temperature=0)
    await svc.complete(MESSAGES, temperature=0)

    assert client._completions.calls == 2


@pytest.mark.asyncio
async def test_llm_response_not_cached_by_default():
    assert settings.cache_llm_ttl_seconds == 0

    client = _FakeClient()
    svc = LLMService(client, model="gpt-test")  # type: ignore[arg-type]

    await svc.complete(MESSAGES, temperature=0, scope="acme")
    await svc.complete(MESSAGES, temperature=0, scope="acme")

    assert client._completions.calls == 2
    assert client._completions.kwargs[0]["model"] == "gpt-test"


@pytest.mark.asyncio
async def test_stream_yields_non_empty_deltas():
    client = _FakeClient()
    svc = LLMService(client, model="gpt-test")  # type: ignore[arg-type]

    parts = [part async for part in svc.stream(MESSAGES, temperature=0)]

    assert parts == ["Hel", "lo"]
    assert client._completions.kwargs[0]["stream"] is True
