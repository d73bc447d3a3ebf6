"""
Session keys and the signed session cookie.
The cookie holds an HS256 JWT {"sid", "v", "iat", "exp"}; anything that does not verify is "no session".
"""
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone

import jwt

from overview_web.config import SESSION_MAX_AGE, SESSION_SECRET

logger = logging.getLogger(__name__)

SESSION_COOKIE = "elvanto_overview"
SESSION_SCHEMA_VERSION = 1

if SESSION_SECRET is None:
    logger.warning("OVERVIEW_SESSION_SECRET not set; using a random secret (sessions end on restart)")
_secret = SESSION_SECRET or secrets.token_urlsafe(48)


def new_session_key() -> str:
    """Unguessable per-login handle; it is a capability for the stored tokens."""
    return secrets.token_urlsafe(32)


def fingerprint(session_key: str) -> str:
    """Short, non-reversible tag for log lines."""
    return hashlib.sha256(session_key.encode("utf-8")).hexdigest()[:10]


def encode_session(session_key: str, *, max_age: int = SESSION_MAX_AGE, secret: str | None = None) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sid": session_key,
        "v": SESSION_SCHEMA_VERSION,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=max_age)).timestamp()),
    }
    return jwt.encode(claims, secret or _secret, algorithm="HS256")


def decode_session(cookie: str | None, *, secret: str | None = None) -> str | None:
    """Return the session key from a cookie value, or None if missing, tampered, expired or from another schema."""
    if not cookie:
        return None
    try:
        claims = jwt.decode(
            cookie,
            secret or _secret,
            algorithms=["HS256"],
            options={"require": ["sid", "v", "exp"]},
        )
    except jwt.InvalidTokenError as e:
        logger.debug("Session cookie rejected: %s", e)
        return None
    if claims.get("v") != SESSION_SCHEMA_VERSION:
        logger.debug("Session cookie has schema version %r", claims.get("v"))
        return None
    sid = claims.get("sid")
    if not isinstance(sid, str) or not sid:
        return None
    return sid
