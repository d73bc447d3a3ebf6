"""
Volunteer overview web app.
Log in with Elvanto (OAuth2 web_server flow), then show published services grouped by type with the
volunteers assigned to each department/position.
GET /, /login, /login/complete, /logout, /api/directory, /dry-run; POST /reload. Port 8000.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from overview_web.config import (
    API_BASE,
    AUTH_URL,
    CLIENT_ID,
    CLIENT_SECRET,
    COOKIE_SECURE,
    DIRECTORY_TTL,
    DRY_RUN_FILE,
    HTTP_TIMEOUT,
    PUBLIC_DOMAIN,
    REDIRECT_URI,
    REFRESH_MARGIN,
    SCOPES,
    SESSION_MAX_AGE,
    STORE_BACKEND,
    TOKEN_URL,
)
from overview_web.database import engine, init_db
from overview_web.directory import ServiceType, directory_as_dicts, normalize
from overview_web.directory_cache import DirectoryCache
from overview_web.errors import (
    EmptyRefreshToken,
    FormatError,
    NotAuthenticated,
    ScheduleUnavailable,
    StoreError,
    TransportError,
    UpstreamRejected,
)
from overview_web.flow_store import store_state, take_state
from overview_web.gate import GateResult, require_tokens, session_key_from_request
from overview_web.login import build_authorize_url, generate_state
from overview_web.oauth_client import OAuthClient
from overview_web.pages import directory_page, logged_out_page, message_page
from overview_web.schedule_client import ScheduleClient
from overview_web.session import SESSION_COOKIE, encode_session
from overview_web.token_manager import TokenManager
from overview_web.token_store import create_store

logger = logging.getLogger(__name__)

if REFRESH_MARGIN <= HTTP_TIMEOUT:
    logger.warning(
        "OVERVIEW_REFRESH_MARGIN (%ss) should exceed OVERVIEW_HTTP_TIMEOUT (%ss); tokens may expire mid-request",
        REFRESH_MARGIN,
        HTTP_TIMEOUT,
    )


def create_http_client() -> httpx.Client:
    """Shared client for the token endpoint and the schedule API."""
    return httpx.Client(timeout=HTTP_TIMEOUT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the credential store and the shared HTTP client; close both on shutdown."""
    if STORE_BACKEND == "sql":
        init_db()
    http = create_http_client()
    oauth = OAuthClient(
        http,
        token_url=TOKEN_URL,
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
        redirect_uri=REDIRECT_URI,
    )
    app.state.tokens = TokenManager(create_store(STORE_BACKEND), oauth, refresh_margin=REFRESH_MARGIN)
    app.state.schedule = ScheduleClient(http, API_BASE)
    app.state.directories = DirectoryCache(DIRECTORY_TTL)
    try:
        yield
    finally:
        app.state.directories.clear()
        http.close()
        if STORE_BACKEND == "sql":
            engine.dispose()


app = FastAPI(title="Volunteer Overview", version="0.1.0", lifespan=lifespan)


def _clear_session_cookie(response) -> None:
    response.delete_cookie(SESSION_COOKIE, httponly=True, samesite="lax", secure=COOKIE_SECURE)


@app.exception_handler(NotAuthenticated)
async def not_authenticated_handler(request: Request, exc: NotAuthenticated):
    """The normal "please log in" branch, not an error page."""
    logger.debug("Redirecting to login: %s", exc)
    response = RedirectResponse(url="/login", status_code=302)
    _clear_session_cookie(response)
    return response


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Credential store failure: %s", exc)
    return HTMLResponse(message_page("Server error", "Stored credentials could not be read or written."), status_code=500)


@app.exception_handler(EmptyRefreshToken)
async def empty_refresh_token_handler(request: Request, exc: EmptyRefreshToken):
    return HTMLResponse(
        message_page("Server error", "The login provider did not issue a refresh token. Please try again later."),
        status_code=500,
    )


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "overview_web"}


@app.get("/login")
def start_login():
    """Issue a state value and redirect to the provider's authorize URL."""
    state = generate_state()
    store_state(state)
    url = build_authorize_url(
        auth_url=AUTH_URL,
        client_id=CLIENT_ID,
        redirect_uri=REDIRECT_URI,
        scopes=SCOPES,
        state=state,
    )
    return RedirectResponse(url=url, status_code=302)


@app.get("/login/complete", response_class=HTMLResponse)
def complete_login(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
):
    """
    Provider redirects here with ?code=...&state=... (or ?error=...). Exchange the code, store the tokens
    under a new session key and hand that key to the browser in the signed session cookie.
    """
    if error:
        if state:
            take_state(state)
        return HTMLResponse(message_page("Login error", error_description or error), status_code=400)
    if not state or not take_state(state):
        return HTMLResponse(
            message_page("Error", "Invalid or expired state. Please try logging in again.", link=("/login", "Log in")),
            status_code=400,
        )
    if not code:
        return HTMLResponse(message_page("Error", "Missing code parameter."), status_code=400)

    manager: TokenManager = request.app.state.tokens
    try:
        session_key, _ = manager.login(code)
    except UpstreamRejected as e:
        return HTMLResponse(
            message_page("Login failed", e.description or f"Login was rejected (HTTP {e.status}).", link=("/login", "Try again")),
            status_code=400,
        )
    except TransportError:
        return HTMLResponse(
            message_page("Login failed", "Could not reach the login provider.", link=("/login", "Try again")),
            status_code=502,
        )

    response = RedirectResponse(url="/", status_code=302)
    response.set_cookie(
        SESSION_COOKIE,
        encode_session(session_key),
        max_age=SESSION_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=COOKIE_SECURE,
    )
    return response


@app.get("/logout", response_class=HTMLResponse)
def logout(request: Request):
    """Forget the stored tokens and cached directory for this session and clear the cookie."""
    session_key = session_key_from_request(request)
    if session_key:
        request.app.state.tokens.logout(session_key)
        request.app.state.directories.invalidate(session_key)
    response = HTMLResponse(logged_out_page())
    _clear_session_cookie(response)
    return response


def _load_directory(request: Request, gate: GateResult) -> list[ServiceType]:
    """Cached directory for this session, or fetch + normalize. A 401 from the API ends the session."""
    cache: DirectoryCache = request.app.state.directories
    directory = cache.get(gate.session_key)
    if directory is not None:
        return directory
    try:
        raw = request.app.state.schedule.fetch_services(gate.tokens.access)
    except NotAuthenticated:
        logger.info("Schedule API rejected the token; ending session")
        request.app.state.tokens.logout(gate.session_key)
        cache.invalidate(gate.session_key)
        raise
    directory = normalize(raw)
    cache.put(gate.session_key, directory)
    return directory


@app.get("/", response_class=HTMLResponse)
def overview(request: Request, gate: GateResult = Depends(require_tokens)):
    """Directory of published services for the logged-in account."""
    try:
        directory = _load_directory(request, gate)
    except (FormatError, ScheduleUnavailable) as e:
        logger.warning("Could not load directory: %s", e)
        return HTMLResponse(message_page("Volunteer overview", "Could not load directory."), status_code=502)
    return HTMLResponse(directory_page(directory, PUBLIC_DOMAIN))


@app.get("/api/directory")
def api_directory(request: Request, gate: GateResult = Depends(require_tokens)):
    """Same directory as GET /, as JSON."""
    try:
        directory = _load_directory(request, gate)
    except (FormatError, ScheduleUnavailable) as e:
        logger.warning("Could not load directory: %s", e)
        return JSONResponse({"error": "could not load directory"}, status_code=502)
    return directory_as_dicts(directory)


@app.post("/reload")
def reload(request: Request, gate: GateResult = Depends(require_tokens)):
    """Drop the cached directory so the next view fetches the schedule again."""
    request.app.state.directories.invalidate(gate.session_key)
    return RedirectResponse(url="/", status_code=302)


@app.get("/dry-run", response_class=HTMLResponse)
def dry_run():
    """Render a captured schedule document (OVERVIEW_DRY_RUN_FILE) without logging in."""
    if not DRY_RUN_FILE:
        return HTMLResponse(message_page("Not found", "Dry run is not configured."), status_code=404)
    try:
        raw = Path(DRY_RUN_FILE).read_bytes()
    except OSError as e:
        logger.error("Could not read dry-run file %s: %s", DRY_RUN_FILE, e)
        return HTMLResponse(message_page("Volunteer overview", "Could not load directory."), status_code=500)
    try:
        directory = normalize(raw)
    except FormatError as e:
        logger.warning("Dry-run document rejected: %s", e)
        return HTMLResponse(message_page("Volunteer overview", "Could not load directory."), status_code=502)
    return HTMLResponse(directory_page(directory, PUBLIC_DOMAIN))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "overview_web.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
