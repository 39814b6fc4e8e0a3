from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from threading import Lock


@dataclass(slots=True)
class _Gate:
    lock: asyncio.Lock
    waiters: int


class SingleFlight:
    """Per-key async gates so only one caller computes a missing value."""

    def __init__(self) -> None:
        self._gates: dict[str, _Gate] = {}
        self._map_lock = Lock()

    @asynccontextmanager
    async def gate(self, key: str) -> AsyncIterator[None]:
        with self._map_lock:
            entry = self._gates.get(key)
            if entry is None:
                entry = _Gate(lock=asyncio.Lock(), waiters=0)
                self._gates[key] = entry
            entry.waiters += 1

        try:
            async with entry.lock:
                yield
        finally:
            with self._map_lock:
                entry.waiters -= 1
                if entry.waiters <= 0 and self._gates.get(key) is entry:
                    del self._gates[key]

    def in_flight(self) -> int:
        """Number of keys with at least one caller holding or waiting on a gate."""
        return len(self._gates)
