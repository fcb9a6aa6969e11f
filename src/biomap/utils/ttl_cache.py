from __future__ import annotations

import time
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

V = TypeVar("V")

Clock = Callable[[], float]


class TTLCache(Generic[V]):
    """Entries expire ``max_age`` seconds after they were stored.

    ``clock`` defaults to ``time.monotonic``; tests pass a fake clock.
    Expired entries are evicted lazily on read.
    """

    def __init__(self, max_age: float, *, clock: Optional[Clock] = None, max_entries: int = 1024):
        if max_age < 0:
            raise ValueError("max_age must be >= 0")
        self.max_age = float(max_age)
        self.max_entries = max(1, int(max_entries))
        self._clock: Clock = clock or time.monotonic
        self._entries: Dict[Hashable, Tuple[float, V]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.max_age:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: V) -> None:
        if key not in self._entries and len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[oldest]
        self._entries[key] = (self._clock(), value)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Any) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
