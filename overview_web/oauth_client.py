"""
Client for the provider's token endpoint: authorization_code and refresh_token grants.
Returns TokenPair as reported by the provider; policy (empty refresh token, storage) lives in token_manager.
"""
import logging
from datetime import datetime, timedelta, timezone

import httpx

from overview_web.errors import TransportError, UpstreamRejected
from overview_web.token_store import TokenPair

logger = logging.getLogger(__name__)


def _parse_expiry(data: dict, now: datetime) -> datetime | None:
    """expires_in (seconds from now) wins; else expiry as RFC 3339 string or epoch seconds; else None."""
    expires_in = data.get("expires_in")
    if expires_in not in (None, ""):
        try:
            return now + timedelta(seconds=float(expires_in))
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric expires_in in token response")
    expiry = data.get("expiry")
    if isinstance(expiry, (int, float)) and not isinstance(expiry, bool):
        return datetime.fromtimestamp(expiry, tz=timezone.utc)
    if isinstance(expiry, str) and expiry:
        try:
            parsed = datetime.fromisoformat(expiry.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Ignoring unparseable expiry in token response")
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def parse_token_response(data: object, now: datetime | None = None) -> TokenPair:
    if not isinstance(data, dict):
        raise UpstreamRejected(200, "token response is not a JSON object")
    access = data.get("access_token")
    if not isinstance(access, str) or not access:
        raise UpstreamRejected(200, "token response has no access_token")
    refresh = data.get("refresh_token")
    return TokenPair(
        access=access,
        refresh=refresh if isinstance(refresh, str) else "",
        expiry=_parse_expiry(data, now or datetime.now(timezone.utc)),
    )


def _error_description(r: httpx.Response) -> str:
    if r.headers.get("content-type", "").startswith("application/json"):
        try:
            err = r.json()
        except ValueError:
            return ""
        if isinstance(err, dict):
            return str(err.get("error_description") or err.get("error") or "")
    return ""


class OAuthClient:
    def __init__(
        self,
        http: httpx.Client,
        *,
        token_url: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
    ):
        self._http = http
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri

    def exchange_code(self, code: str) -> TokenPair:
        return self._grant(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._redirect_uri,
            }
        )

    def refresh(self, refresh_token: str) -> TokenPair:
        return self._grant({"grant_type": "refresh_token", "refresh_token": refresh_token})

    def _grant(self, form: dict[str, str]) -> TokenPair:
        grant_type = form["grant_type"]
        form = {**form, "client_id": self._client_id, "client_secret": self._client_secret}
        try:
            r = self._http.post(self._token_url, data=form, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            logger.warning("%s grant: token endpoint unreachable: %s", grant_type, e.__class__.__name__)
            raise TransportError(f"token endpoint unreachable: {e.__class__.__name__}") from e
        if not r.is_success:
            desc = _error_description(r)
            logger.info("%s grant rejected: status=%s error=%s", grant_type, r.status_code, desc or "-")
            raise UpstreamRejected(r.status_code, desc)
        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamRejected(r.status_code, "token response is not JSON") from e
        return parse_token_response(data)
