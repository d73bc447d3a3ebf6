"""
Token lifecycle: code exchange, expiry checks, refresh. All credential reads/writes go through here.

Per session: Unauthenticated -> Authenticated(valid) -> Authenticated(near expiry) -> (refresh) -> Authenticated(valid),
and back to Unauthenticated on logout. Refreshes for one session key are serialized (see locks.py).
A failed refresh keeps the old pair; an expired token is still tried and only a 401 from the API ends the session.
"""
import logging
from dataclasses import replace
from typing import Callable, Protocol

from overview_web.errors import EmptyRefreshToken, NotAuthenticated, OverviewError, TransportError, UpstreamRejected
from overview_web.locks import KeyedLocks
from overview_web.session import fingerprint, new_session_key
from overview_web.token_store import CredentialStore, TokenPair

logger = logging.getLogger(__name__)


class TokenGrantClient(Protocol):
    def exchange_code(self, code: str) -> TokenPair: ...

    def refresh(self, refresh_token: str) -> TokenPair: ...


class TokenManager:
    def __init__(
        self,
        store: CredentialStore,
        oauth: TokenGrantClient,
        *,
        refresh_margin: float = 60.0,
        session_key_factory: Callable[[], str] = new_session_key,
    ):
        self._store = store
        self._oauth = oauth
        self._margin = refresh_margin
        self._new_key = session_key_factory
        self._locks = KeyedLocks()

    @property
    def store(self) -> CredentialStore:
        return self._store

    def needs_refresh(self, pair: TokenPair) -> bool:
        return pair.expires_within(self._margin)

    def exchange(self, code: str) -> TokenPair:
        """Authorization-code grant. Raises EmptyRefreshToken before anything could be stored."""
        pair = self._oauth.exchange_code(code)
        if not pair.refresh:
            logger.error("Code exchange returned no refresh token; not storing credentials")
            raise EmptyRefreshToken()
        return pair

    def login(self, code: str) -> tuple[str, TokenPair]:
        """Exchange the code, mint a fresh session key and store the pair under it."""
        pair = self.exchange(code)
        session_key = self._new_key()
        self._store.put(session_key, pair)
        logger.info("Login completed session=%s expiry=%s", fingerprint(session_key), pair.expiry)
        return session_key, pair

    def logout(self, session_key: str) -> None:
        self._store.delete(session_key)
        logger.info("Logged out session=%s", fingerprint(session_key))

    def current(self, session_key: str) -> TokenPair:
        """Stored pair as-is, no expiry handling. Raises NotAuthenticated if none."""
        pair = self._store.get(session_key)
        if pair is None:
            raise NotAuthenticated("no stored credentials for session")
        return pair

    def refresh(self, session_key: str) -> TokenPair:
        """
        Refresh grant with the stored refresh token; the new pair replaces the stored one.
        On failure the stored pair is left as it was and the error is raised.
        """
        with self._locks.hold(session_key):
            return self._refresh_locked(session_key, self.current(session_key))

    def ensure_valid(self, session_key: str) -> TokenPair:
        """
        Pair that is safe to use for this request. Near expiry -> refresh once (other requests for the
        same session wait and reuse the result, success or failure). If the refresh fails the old pair is returned.
        """
        pair = self.current(session_key)
        if not self.needs_refresh(pair):
            return pair
        with self._locks.wait_turn(session_key) as followed:
            # Another request may have refreshed while we waited for the lock
            pair = self.current(session_key)
            if not self.needs_refresh(pair):
                return pair
            if followed:
                # The attempt we waited on failed; its refresh token must not be sent again
                logger.warning("Refresh just failed for session=%s; using existing token", fingerprint(session_key))
                return pair
            try:
                return self._refresh_locked(session_key, pair)
            except (UpstreamRejected, TransportError) as e:
                logger.warning(
                    "Refresh failed for session=%s (%s); using existing token", fingerprint(session_key), e
                )
                return pair

    def refresh_in_background(self, session_key: str) -> None:
        """
        Fire-and-forget refresh (run after the response). Skipped if a refresh for this session is
        already running. Errors are logged and dropped; they never reach a user.
        """
        with self._locks.hold(session_key, blocking=False) as acquired:
            if not acquired:
                logger.debug("Refresh already in flight for session=%s", fingerprint(session_key))
                return
            try:
                pair = self._store.get(session_key)
                if pair is None or not self.needs_refresh(pair):
                    return
                self._refresh_locked(session_key, pair)
            except OverviewError as e:
                logger.warning("Background refresh failed for session=%s: %s", fingerprint(session_key), e)

    def _refresh_locked(self, session_key: str, current: TokenPair) -> TokenPair:
        fresh = self._oauth.refresh(current.refresh)
        if not fresh.refresh:
            # Provider did not rotate the refresh token; the old one stays valid
            fresh = replace(fresh, refresh=current.refresh)
        self._store.put(session_key, fresh)
        logger.info("Refreshed token for session=%s expiry=%s", fingerprint(session_key), fresh.expiry)
        return fresh
