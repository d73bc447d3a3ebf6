"""
In-memory store for pending logins (state values issued by /login, consumed by /login/complete).
TTL to avoid unbounded growth.
"""
import threading
import time

# Seconds a user has to finish logging in at the provider
FLOW_TTL = 600

_pending: dict[str, float] = {}
_lock = threading.Lock()


def store_state(state: str) -> None:
    now = time.monotonic()
    with _lock:
        _clean_expired(now)
        _pending[state] = now


def take_state(state: str) -> bool:
    """Consume state; True only if it was issued by us and has not expired. Each state works once."""
    with _lock:
        created_at = _pending.pop(state, None)
    if created_at is None:
        return False
    return (time.monotonic() - created_at) <= FLOW_TTL


def pending_count() -> int:
    with _lock:
        return len(_pending)


def _clean_expired(now: float) -> None:
    expired = [s for s, created_at in _pending.items() if (now - created_at) > FLOW_TTL]
    for s in expired:
        del _pending[s]
