"""In-process key/value cache with per-entry expiry."""

import threading
import time
from typing import Any


class TTLCache:
    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_ms: int) -> None:
        """Store ``value`` for ``ttl_ms`` milliseconds. Last writer wins."""
        with self._lock:
            self._entries[key] = (self._clock() + ttl_ms / 1000, value)
