"""
Pytest configuration for overview_web. Set env before any overview_web import:
in-memory SQLite, fixed secrets, non-secure cookies (TestClient talks plain http).
"""
import os
from pathlib import Path

import pytest

os.environ["OVERVIEW_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["OVERVIEW_STORE_BACKEND"] = "sql"
os.environ["OVERVIEW_TOKEN_SECRET"] = "test-token-secret-not-for-production"
os.environ["OVERVIEW_SESSION_SECRET"] = "test-session-secret-with-enough-bytes-for-hs256"
os.environ["OVERVIEW_COOKIE_SECURE"] = "0"
os.environ["OVERVIEW_CLIENT_ID"] = "overview-client"
os.environ["OVERVIEW_CLIENT_SECRET"] = "overview-secret"
os.environ["OVERVIEW_REDIRECT_URI"] = "http://testserver/login/complete"
os.environ["OVERVIEW_AUTH_URL"] = "https://provider.example/oauth"
os.environ["OVERVIEW_TOKEN_URL"] = "https://provider.example/oauth/token"
os.environ["OVERVIEW_API_BASE"] = "https://api.example/v1"
os.environ["OVERVIEW_PUBLIC_DOMAIN"] = "https://church.example"
os.environ["OVERVIEW_REFRESH_MARGIN"] = "60"
os.environ["OVERVIEW_HTTP_TIMEOUT"] = "10"
os.environ["OVERVIEW_BACKGROUND_REFRESH"] = "0"
os.environ.pop("OVERVIEW_DRY_RUN_FILE", None)

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def services_document() -> bytes:
    """Captured services/getAll.json response (4 services, 3 service types)."""
    return (DATA_DIR / "services.json").read_bytes()
