"""Tests for the signed session cookie."""
import jwt

from overview_web.session import (
    SESSION_SCHEMA_VERSION,
    decode_session,
    encode_session,
    fingerprint,
    new_session_key,
)


def test_new_session_keys_are_unguessable_and_distinct():
    keys = {new_session_key() for _ in range(50)}
    assert len(keys) == 50
    assert all(len(k) >= 40 for k in keys)


def test_cookie_carries_session_key():
    assert decode_session(encode_session("abc")) == "abc"


def test_missing_cookie():
    assert decode_session(None) is None
    assert decode_session("") is None


def test_tampered_cookie_rejected():
    cookie = encode_session("abc")
    header, payload, sig = cookie.split(".")
    assert decode_session(f"{header}.{payload}.{sig[::-1]}") is None
    assert decode_session("not-a-jwt") is None


def test_cookie_signed_with_other_secret_rejected():
    cookie = encode_session("abc", secret="another-secret-that-is-long-enough-for-hs256")
    assert decode_session(cookie) is None


def test_expired_cookie_rejected():
    assert decode_session(encode_session("abc", max_age=-10)) is None


def test_wrong_schema_version_rejected():
    secret = "explicit-secret-for-this-test-0123456789"
    cookie = jwt.encode({"sid": "abc", "v": SESSION_SCHEMA_VERSION + 1, "exp": 4102444800}, secret, algorithm="HS256")
    assert decode_session(cookie, secret=secret) is None


def test_non_string_sid_rejected():
    secret = "explicit-secret-for-this-test-0123456789"
    cookie = jwt.encode({"sid": 42, "v": SESSION_SCHEMA_VERSION, "exp": 4102444800}, secret, algorithm="HS256")
    assert decode_session(cookie, secret=secret) is None


def test_fingerprint_does_not_reveal_key():
    key = new_session_key()
    fp = fingerprint(key)
    assert len(fp) == 10
    assert fp not in key
