"""
Cache key builders.

Keys never contain raw user text: prompts and embedded texts are hashed so
log lines and key listings stay free of tenant data.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Sequence
from typing import Any

KEY_VERSION = 1


def canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def hash_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def hash_text(text: str) -> str:
    return hash_bytes(text.encode("utf-8"))


def embedding_key(*, model: str, text: str) -> str:
    """Embeddings are shared across tenants: same model and text, same vector."""
    return f"embed:{model}:{hash_text(text)}"


def llm_response_key(
    *,
    scope: str,
    model: str,
    messages: Sequence[dict[str, Any]],
    max_tokens: int,
) -> str:
    """Completion key scoped to one tenant, so answers never cross tenants."""
    fingerprint = [
        {"role": m.get("role"), "content": hash_text(str(m.get("content") or ""))}
        for m in messages
    ]
    payload = {
        "v": KEY_VERSION,
        "model": model,
        "messages": fingerprint,
        "max_tokens": max_tokens,
    }
    return f"llm:{scope}:{hash_text(canonical_json(payload))}"
