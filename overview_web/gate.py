"""
Request gate: FastAPI dependency that guarantees a usable token before a protected route runs.
No session or no stored credentials -> NotAuthenticated (the app turns that into a redirect to /login).
"""
import logging
from dataclasses import dataclass

from fastapi import BackgroundTasks, Request

from overview_web.config import BACKGROUND_REFRESH
from overview_web.errors import NotAuthenticated
from overview_web.session import SESSION_COOKIE, decode_session
from overview_web.token_manager import TokenManager
from overview_web.token_store import TokenPair

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateResult:
    session_key: str
    # Validated for this request; already the refreshed pair if the gate refreshed
    tokens: TokenPair


def session_key_from_request(request: Request) -> str | None:
    return decode_session(request.cookies.get(SESSION_COOKIE))


def get_token_manager(request: Request) -> TokenManager:
    return request.app.state.tokens


def require_tokens(request: Request, background_tasks: BackgroundTasks) -> GateResult:
    """
    Dependency for protected routes. Near-expiry tokens are refreshed before the handler runs;
    with BACKGROUND_REFRESH a token that has not yet expired is used as-is and refreshed after the response.
    """
    session_key = session_key_from_request(request)
    if session_key is None:
        raise NotAuthenticated("no session cookie")
    manager = get_token_manager(request)
    if BACKGROUND_REFRESH:
        tokens = manager.current(session_key)
        if manager.needs_refresh(tokens) and not tokens.expired():
            background_tasks.add_task(manager.refresh_in_background, session_key)
            return GateResult(session_key=session_key, tokens=tokens)
    return GateResult(session_key=session_key, tokens=manager.ensure_valid(session_key))
