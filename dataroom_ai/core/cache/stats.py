from __future__ import annotations

from collections import Counter
from threading import Lock

# Process-wide cache event counters, keyed by namespace then event.
_COUNTS: dict[str, Counter[str]] = {}
_LOCK = Lock()


def increment(*, namespace: str, cache_event: str) -> None:
    """Increment a cache event counter."""
    with _LOCK:
        _COUNTS.setdefault(namespace, Counter())[cache_event] += 1


def snapshot() -> dict[str, dict[str, int]]:
    """Return a plain-dict copy of the current counters."""
    with _LOCK:
        return {ns: dict(sorted(events.items())) for ns, events in sorted(_COUNTS.items())}


def hit_ratio(namespace: str) -> float | None:
    """Hits / (hits + misses) for a namespace, or None before any lookup."""
    with _LOCK:
        events = _COUNTS.get(namespace)
        if not events:
            return None
        lookups = events["hit"] + events["miss"]
        if lookups == 0:
            return None
        return events["hit"] / lookups


def reset() -> None:
    """Reset all counters (test helper)."""
    with _LOCK:
        _COUNTS.clear()


def diff(
    before: dict[str, dict[str, int]], after: dict[str, dict[str, int]]
) -> dict[str, dict[str, int]]:
    """Per-namespace event deltas between two snapshots, omitting zeros."""
    delta: dict[str, dict[str, int]] = {}
    for ns, events in after.items():
        previous = before.get(ns, {})
        changed = {
            event: count - previous.get(event, 0)
            for event, count in events.items()
            if count != previous.get(event, 0)
        }
        if changed:
            delta[ns] = changed
    return delta
