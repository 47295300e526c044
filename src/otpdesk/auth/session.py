"""Opaque session tokens for the two fixed identities.

A session is Active until it expires or is revoked; both are terminal.
There is no sliding expiration. Only the SHA-256 of a token is stored.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import threading
import time
from datetime import UTC, datetime, timedelta
from typing import Callable, Protocol

from otpdesk.auth.rate_limit import LoginThrottle
from otpdesk.errors import AuthError
from otpdesk.models import Identity, Principal, Role, SessionRecord

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 bits from the OS CSPRNG

# The single place where an identity is bound to a role.
ROLE_BY_IDENTITY: dict[Identity, Role] = {
    Identity.ADMIN: Role.ADMIN,
    Identity.VIEWER: Role.VIEWER,
}


class SessionRepository(Protocol):
    def insert(self, record: SessionRecord) -> None: ...

    def get(self, token_hash: str) -> SessionRecord | None: ...

    def delete(self, token_hash: str) -> bool: ...

    def delete_expired(self, now: datetime) -> int: ...


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionGuard:
    """Issues, resolves and revokes sessions."""

    def __init__(
        self,
        repo: SessionRepository,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("Session lifetime must be positive")
        self.repo = repo
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=UTC)

    def create_session(self, identity: Identity) -> str:
        """Start a session for an already verified identity; returns the token."""
        identity = Identity(identity)
        token = secrets.token_urlsafe(TOKEN_BYTES)
        self.repo.insert(
            SessionRecord(
                token_hash=hash_token(token),
                identity=identity,
                expires_at=self._now() + self.ttl,
            )
        )
        logger.info("Session created for %s", identity.value)
        return token

    def resolve(self, token: str | None) -> Principal | None:
        """Return the caller for ``token``, or None if unknown, expired or revoked."""
        if not token or not isinstance(token, str):
            return None
        token_hash = hash_token(token)
        record = self.repo.get(token_hash)
        if record is None:
            return None
        if self._now() >= record.expires_at:
            # Lazy collection; the caller cannot tell this apart from unknown.
            self.repo.delete(token_hash)
            return None
        return Principal(
            identity=record.identity,
            role=ROLE_BY_IDENTITY[record.identity],
            expires_at=record.expires_at,
        )

    def require(self, token: str | None) -> Principal:
        principal = self.resolve(token)
        if principal is None:
            raise AuthError("Not signed in or session expired")
        return principal

    def revoke(self, token: str | None) -> None:
        """Invalidate ``token``. Revoking an unknown token is not an error."""
        if not token or not isinstance(token, str):
            return
        if self.repo.delete(hash_token(token)):
            logger.info("Session revoked")

    def sweep(self) -> int:
        """Delete every expired session; returns how many were removed."""
        removed = self.repo.delete_expired(self._now())
        if removed:
            logger.info("Swept %d expired sessions", removed)
        return removed


class SessionSweeper:
    """Background thread running periodic housekeeping.

    Each pass deletes expired sessions and, when a login throttle is given,
    drops throttle sources whose attempts have all left the window.
    """

    def __init__(
        self,
        guard: SessionGuard,
        interval_seconds: float,
        throttle: LoginThrottle | None = None,
    ) -> None:
        self.guard = guard
        self.throttle = throttle
        self.interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="session-sweeper", daemon=True)
        self._thread.start()
        logger.info("Session sweeper started (every %ss)", self.interval)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10)
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> None:
        self.guard.sweep()
        if self.throttle is not None:
            dropped = self.throttle.purge()
            if dropped:
                logger.debug("Dropped %d idle login throttle sources", dropped)

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.run_once()
            except Exception:
                logger.warning("Session sweep failed", exc_info=True)
