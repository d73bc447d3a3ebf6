"""
Overview web configuration. Every value comes from an OVERVIEW_* environment variable with a dev default.
No secrets in this file; client credentials and signing secrets come from env.
"""
import os


def _flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


# OAuth client registered with Elvanto
CLIENT_ID = os.environ.get("OVERVIEW_CLIENT_ID", "")
CLIENT_SECRET = os.environ.get("OVERVIEW_CLIENT_SECRET", "")

# Where Elvanto sends the user back with ?code=...
REDIRECT_URI = os.environ.get("OVERVIEW_REDIRECT_URI", "http://127.0.0.1:8000/login/complete")

# Requested scopes; Elvanto expects them comma-joined on the authorize URL
SCOPES = tuple(s.strip() for s in os.environ.get("OVERVIEW_SCOPE", "ManageServices").split(",") if s.strip())

AUTH_URL = os.environ.get("OVERVIEW_AUTH_URL", "https://api.elvanto.com/oauth")
TOKEN_URL = os.environ.get("OVERVIEW_TOKEN_URL", "https://api.elvanto.com/oauth/token")
API_BASE = os.environ.get("OVERVIEW_API_BASE", "https://api.elvanto.com/v1").rstrip("/")

# Account domain used for "open in Elvanto" links, e.g. https://mychurch.elvanto.com
PUBLIC_DOMAIN = os.environ.get("OVERVIEW_PUBLIC_DOMAIN", "").rstrip("/")

# Timeout (seconds) for every outbound call: token endpoint and schedule API
HTTP_TIMEOUT = float(os.environ.get("OVERVIEW_HTTP_TIMEOUT", "10"))

# Refresh when the access token has less than this many seconds left. Keep it above HTTP_TIMEOUT
# so a token cannot run out while a request is still using it.
REFRESH_MARGIN = float(os.environ.get("OVERVIEW_REFRESH_MARGIN", "60"))

# Refresh near-expiry (not yet expired) tokens after the response instead of before the handler
BACKGROUND_REFRESH = _flag("OVERVIEW_BACKGROUND_REFRESH")

# Credential store backend: "sql" (SQLAlchemy, survives restarts) or "memory"
STORE_BACKEND = os.environ.get("OVERVIEW_STORE_BACKEND", "sql").strip().lower()
DATABASE_URL = os.environ.get("OVERVIEW_DATABASE_URL", "sqlite:///./overview.db")

# Secret for encrypting stored tokens. If unset, a key is generated and kept in TOKEN_KEY_PATH.
TOKEN_SECRET = os.environ.get("OVERVIEW_TOKEN_SECRET", "").strip() or None
TOKEN_KEY_PATH = os.environ.get("OVERVIEW_TOKEN_KEY_PATH", ".overview_token.key")

# Session cookie signing secret. If unset, a random one is used and sessions end on restart.
SESSION_SECRET = os.environ.get("OVERVIEW_SESSION_SECRET", "").strip() or None
SESSION_MAX_AGE = int(os.environ.get("OVERVIEW_SESSION_MAX_AGE", str(30 * 24 * 3600)))
COOKIE_SECURE = _flag("OVERVIEW_COOKIE_SECURE")

# Normalized directories are reused for this long before the schedule is fetched again (hourly by default)
DIRECTORY_TTL = float(os.environ.get("OVERVIEW_DIRECTORY_TTL", "3600"))

# Captured getAll.json document served by /dry-run (no login needed)
DRY_RUN_FILE = os.environ.get("OVERVIEW_DRY_RUN_FILE", "").strip() or None
