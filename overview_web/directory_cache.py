"""
Per-session cache of normalized directories, with a TTL and explicit invalidation (POST /reload, logout).
Only successfully normalized directories are ever put here.
"""
import threading
import time
from typing import Callable

from overview_web.directory import ServiceType


class DirectoryCache:
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, list[ServiceType]]] = {}
        self._lock = threading.Lock()

    def get(self, session_key: str) -> list[ServiceType] | None:
        with self._lock:
            entry = self._entries.get(session_key)
            if entry is None:
                return None
            stored_at, directory = entry
            if self._clock() - stored_at >= self._ttl:
                del self._entries[session_key]
                return None
            return directory

    def put(self, session_key: str, directory: list[ServiceType]) -> None:
        if self._ttl <= 0:
            return
        with self._lock:
            self._entries[session_key] = (self._clock(), directory)

    def invalidate(self, session_key: str) -> None:
        with self._lock:
            self._entries.pop(session_key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
