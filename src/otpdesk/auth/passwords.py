"""Credential check for the two configured identities (argon2 verifiers)."""

from __future__ import annotations

import hmac
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from otpdesk.config import Settings
from otpdesk.models import Identity

_PH = PasswordHasher()


def hash_password(plain: str, hasher: PasswordHasher | None = None) -> str:
    if not plain:
        raise ValueError("Password must not be empty")
    return (hasher or _PH).hash(plain)


def verify_password(hash_value: str, plain: str, hasher: PasswordHasher | None = None) -> bool:
    if not hash_value or not plain:
        return False
    try:
        return (hasher or _PH).verify(hash_value, plain)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


class CredentialVerifier:
    """Maps (username, password) to one of the fixed identities.

    Unknown usernames still pay for one hash verification so the response
    time does not reveal which usernames exist.
    """

    def __init__(self, users: dict[Identity, tuple[str, str]], hasher: PasswordHasher | None = None) -> None:
        self._hasher = hasher or _PH
        self._users = {Identity(k): (u.strip(), h.strip()) for k, (u, h) in users.items()}
        self._dummy_hash = self._hasher.hash(secrets.token_urlsafe(16))

    @classmethod
    def from_settings(cls, settings: Settings, hasher: PasswordHasher | None = None) -> CredentialVerifier:
        return cls(
            {
                Identity.ADMIN: (settings.admin_username, settings.admin_password_hash),
                Identity.VIEWER: (settings.viewer_username, settings.viewer_password_hash),
            },
            hasher=hasher,
        )

    def verify(self, username: str, password: str) -> Identity | None:
        username = (username or "").strip()
        matched: Identity | None = None
        verifier = self._dummy_hash
        for identity, (name, hash_value) in self._users.items():
            if name and hmac.compare_digest(name.encode(), username.encode()):
                matched, verifier = identity, hash_value
        ok = verify_password(verifier, password or "", self._hasher)
        return matched if ok and matched is not None else None
