from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

logger = logging.getLogger(__name__)

MISSING: Any = object()


def cache_key(entity_id: str, options: Mapping[str, Any] | None = None) -> str:
    """Stable key for one read: id plus canonical JSON of its options."""
    return f"{entity_id}:{json.dumps(dict(options or {}), sort_keys=True, default=str)}"


class TTLCache:
    """Lock-guarded key/value cache with a per-entry time-to-live.

    Entries expire lazily: an expired entry is dropped on the lookup that
    finds it. Concurrent writers to one key race; the last write wins.
    Values should be immutable (tuples, frozen dataclasses) since callers
    share them.
    """

    def __init__(self, ttl: float = 60.0, *, enabled: bool = True, clock: Callable[[], float] = time.monotonic):
        self.ttl = float(ttl)
        self.enabled = enabled
        self._clock = clock
        self._data: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any:
        """Return the cached value, or MISSING."""
        if not self.enabled:
            return MISSING
        with self._lock:
            item = self._data.get(key)
            if item is None:
                self._misses += 1
                return MISSING
            value, expires_at = item
            if self._clock() >= expires_at:
                del self._data[key]
                self._misses += 1
                logger.debug("cache expired key=%s", key)
                return MISSING
            self._hits += 1
            return value

    def set(self, key: str, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._data[key] = (value, self._clock() + self.ttl)

    def expire(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"entries": len(self._data), "hits": self._hits, "misses": self._misses}
