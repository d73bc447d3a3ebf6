"""
Per-key locks. Used to serialize token refresh per session: providers invalidate a refresh token
on first use, so two concurrent refreshes for one session would log the user out.
Entries are reference-counted and dropped when nobody holds or waits on them.
"""
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0
    # Completed holds; only written while the lock is held
    turns: int = 0


class KeyedLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    @contextmanager
    def hold(self, key: str, blocking: bool = True) -> Iterator[bool]:
        """
        Hold the lock for key for the duration of the block. Yields whether it was acquired;
        with blocking=False the block runs immediately with False if another holder has it.
        """
        with self._hold(key, blocking) as (acquired, _):
            yield acquired

    @contextmanager
    def wait_turn(self, key: str) -> Iterator[bool]:
        """
        Blocking hold that yields True if another holder finished with key while this caller waited.
        Single-flight callers use that to take the other holder's outcome instead of repeating its work.
        """
        with self._hold(key, True) as (_, followed):
            yield followed

    @contextmanager
    def _hold(self, key: str, blocking: bool) -> Iterator[tuple[bool, bool]]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            seen = entry.turns
        acquired = entry.lock.acquire(blocking)
        try:
            yield acquired, acquired and entry.turns != seen
        finally:
            if acquired:
                entry.turns += 1
                entry.lock.release()
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
