"""Small expiring key/value store shared by the price and block caches."""
from __future__ import annotations

import time
from typing import Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Maps keys to values that expire ``ttl`` seconds after being stored.

    The clock is injectable so tests can move time forward without sleeping.
    Entries may override the default TTL, e.g. to expire at a day boundary.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.time) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[V, float]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: V, ttl: Optional[float] = None) -> None:
        lifetime = self._ttl if ttl is None else ttl
        self._entries[key] = (value, self._clock() + lifetime)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for _, expires_at in self._entries.values() if now < expires_at)
