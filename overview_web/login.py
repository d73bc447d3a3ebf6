"""
Login initiation helpers: state generation and the provider authorize URL.
"""
import secrets
from urllib.parse import urlencode


def generate_state() -> str:
    """Opaque value for CSRF protection; returned in the login completion redirect."""
    return secrets.token_urlsafe(32)


def build_authorize_url(
    *,
    auth_url: str,
    client_id: str,
    redirect_uri: str,
    scopes: tuple[str, ...] | list[str],
    state: str | None = None,
) -> str:
    """Build the provider authorize URL (web_server flow; scopes comma-joined)."""
    params = {
        "type": "web_server",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": ",".join(scopes),
    }
    if state:
        params["state"] = state
    return f"{auth_url}?{urlencode(params)}"
