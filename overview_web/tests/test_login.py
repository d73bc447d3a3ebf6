"""Tests for login initiation: state values, authorize URL, pending-login store."""
import re
from urllib.parse import parse_qs, urlsplit

from overview_web import flow_store
from overview_web.flow_store import store_state, take_state
from overview_web.login import build_authorize_url, generate_state


def test_generate_state_length():
    s = generate_state()
    assert len(s) >= 32
    assert re.match(r"^[A-Za-z0-9_-]+$", s)


def test_build_authorize_url_includes_required_params():
    url = build_authorize_url(
        auth_url="https://api.example/oauth",
        client_id="client1",
        redirect_uri="https://overview.example/login/complete",
        scopes=("ManageServices", "ManagePeople"),
        state="mystate",
    )
    parts = urlsplit(url)
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://api.example/oauth"
    params = {k: v[0] for k, v in parse_qs(parts.query).items()}
    assert params == {
        "type": "web_server",
        "client_id": "client1",
        "redirect_uri": "https://overview.example/login/complete",
        "scope": "ManageServices,ManagePeople",
        "state": "mystate",
    }


def test_build_authorize_url_without_state():
    url = build_authorize_url(
        auth_url="https://api.example/oauth",
        client_id="c",
        redirect_uri="https://c/cb",
        scopes=["ManageServices"],
    )
    assert "state=" not in url


def test_state_can_be_used_once():
    store_state("once")
    assert take_state("once") is True
    assert take_state("once") is False


def test_unknown_state():
    assert take_state("never-issued") is False


def test_expired_state(monkeypatch):
    store_state("old")
    monkeypatch.setattr(flow_store, "FLOW_TTL", -1)
    assert take_state("old") is False


def test_expired_states_purged_on_store(monkeypatch):
    store_state("stale")
    monkeypatch.setattr(flow_store, "FLOW_TTL", -1)
    store_state("fresh")
    assert flow_store.pending_count() == 1
    take_state("fresh")
    assert flow_store.pending_count() == 0
