"""
Credential store: session key -> TokenPair.
Two backends with the same get/put/delete contract: in-memory (dev/tests) and SQL (tokens encrypted at rest).
"""
import hashlib
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from overview_web.errors import StoreCorrupt, StoreUnavailable
from overview_web.models import StoredCredential
from overview_web.token_cipher import TokenCipher

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenPair:
    access: str = field(repr=False)
    refresh: str = field(repr=False)
    # None: provider did not report an expiry; treated as never near expiry
    expiry: datetime | None = None

    def remaining(self, now: datetime | None = None) -> timedelta | None:
        if self.expiry is None:
            return None
        return self.expiry - (now or _utc_now())

    def expires_within(self, seconds: float, now: datetime | None = None) -> bool:
        """True if less than `seconds` of lifetime is left (always True once expired)."""
        left = self.remaining(now)
        return left is not None and left < timedelta(seconds=seconds)

    def expired(self, now: datetime | None = None) -> bool:
        return self.expires_within(0, now)


def hash_session_key(session_key: str) -> str:
    return hashlib.sha256(session_key.encode("utf-8")).hexdigest()


def _check_storable(pair: TokenPair) -> None:
    if not pair.refresh:
        raise ValueError("refusing to store a token pair without a refresh token")


class CredentialStore(Protocol):
    def get(self, session_key: str) -> TokenPair | None: ...

    def put(self, session_key: str, pair: TokenPair) -> None: ...

    def delete(self, session_key: str) -> None: ...


class MemoryCredentialStore:
    """Process-local store. Lost on restart; fine for a single worker or tests."""

    def __init__(self) -> None:
        self._pairs: dict[str, TokenPair] = {}
        self._lock = threading.Lock()

    def get(self, session_key: str) -> TokenPair | None:
        with self._lock:
            return self._pairs.get(hash_session_key(session_key))

    def put(self, session_key: str, pair: TokenPair) -> None:
        _check_storable(pair)
        with self._lock:
            self._pairs[hash_session_key(session_key)] = pair

    def delete(self, session_key: str) -> None:
        with self._lock:
            self._pairs.pop(hash_session_key(session_key), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pairs)


class SqlCredentialStore:
    """SQLAlchemy-backed store. One short session per operation; engine is shared process-wide."""

    def __init__(self, session_factory: sessionmaker[Session], cipher: TokenCipher):
        self._session_factory = session_factory
        self._cipher = cipher

    def get(self, session_key: str) -> TokenPair | None:
        try:
            with self._session_factory() as db:
                row = db.get(StoredCredential, hash_session_key(session_key))
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"credential store read failed: {e.__class__.__name__}") from e
        if row is None:
            return None
        try:
            access = self._cipher.decrypt(row.access_token_enc)
            refresh = self._cipher.decrypt(row.refresh_token_enc)
        except ValueError as e:
            raise StoreCorrupt("stored credential could not be decrypted") from e
        if not refresh:
            raise StoreCorrupt("stored credential has an empty refresh token")
        expiry = row.expires_at
        if expiry is not None and expiry.tzinfo is None:
            # SQLite drops the offset; we only ever write UTC
            expiry = expiry.replace(tzinfo=timezone.utc)
        return TokenPair(access=access, refresh=refresh, expiry=expiry)

    def put(self, session_key: str, pair: TokenPair) -> None:
        _check_storable(pair)
        key_hash = hash_session_key(session_key)
        access_enc = self._cipher.encrypt(pair.access)
        refresh_enc = self._cipher.encrypt(pair.refresh)
        try:
            with self._session_factory() as db:
                row = db.get(StoredCredential, key_hash)
                if row is None:
                    db.add(
                        StoredCredential(
                            key_hash=key_hash,
                            access_token_enc=access_enc,
                            refresh_token_enc=refresh_enc,
                            expires_at=pair.expiry,
                        )
                    )
                else:
                    row.access_token_enc = access_enc
                    row.refresh_token_enc = refresh_enc
                    row.expires_at = pair.expiry
                db.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"credential store write failed: {e.__class__.__name__}") from e

    def delete(self, session_key: str) -> None:
        try:
            with self._session_factory() as db:
                row = db.get(StoredCredential, hash_session_key(session_key))
                if row is not None:
                    db.delete(row)
                    db.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"credential store delete failed: {e.__class__.__name__}") from e


def create_store(backend: str) -> CredentialStore:
    """Build the configured backend. The SQL backend uses the shared engine from overview_web.database."""
    if backend == "memory":
        logger.info("Using in-memory credential store")
        return MemoryCredentialStore()
    if backend == "sql":
        from overview_web.config import TOKEN_KEY_PATH, TOKEN_SECRET
        from overview_web.database import SessionLocal
        from overview_web.token_cipher import create_cipher

        return SqlCredentialStore(SessionLocal, create_cipher(TOKEN_SECRET, TOKEN_KEY_PATH))
    raise ValueError(f"unknown credential store backend: {backend!r}")
