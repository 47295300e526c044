"""login / logout / whoami, composed from the throttle, verifier and guard."""

from __future__ import annotations

import logging

from otpdesk.auth.passwords import CredentialVerifier
from otpdesk.auth.rate_limit import LoginThrottle
from otpdesk.auth.session import SessionGuard
from otpdesk.errors import AuthError
from otpdesk.models import Principal

logger = logging.getLogger(__name__)


class Authenticator:
    def __init__(self, verifier: CredentialVerifier, guard: SessionGuard, throttle: LoginThrottle) -> None:
        self.verifier = verifier
        self.guard = guard
        self.throttle = throttle

    def login(self, username: str, password: str, source: str) -> str:
        """Check credentials and return a new session token.

        Raises RateLimitedError before the password is even looked at once
        ``source`` is over its limit, and a generic AuthError otherwise.
        """
        self.throttle.acquire(source)
        identity = self.verifier.verify(username, password)
        if identity is None:
            logger.warning("Failed login for %r from %s", (username or "")[:64], source)
            raise AuthError("Invalid username or password")
        self.throttle.reset(source)
        logger.info("Login as %s from %s", identity.value, source)
        return self.guard.create_session(identity)

    def logout(self, token: str | None) -> None:
        self.guard.revoke(token)

    def who_am_i(self, token: str | None) -> Principal | None:
        return self.guard.resolve(token)
