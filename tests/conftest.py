"""Shared fixtures: in-memory repositories, a controllable clock, fast argon2."""

from __future__ import annotations

import base64
import os
import threading
from datetime import datetime
from uuid import UUID

import pytest
from argon2 import PasswordHasher

from otpdesk.accounts import AccountStore
from otpdesk.auth.passwords import CredentialVerifier
from otpdesk.auth.rate_limit import LoginThrottle
from otpdesk.auth.service import Authenticator
from otpdesk.auth.session import SessionGuard
from otpdesk.config import Settings
from otpdesk.crypto import SecretVault
from otpdesk.models import AccountRecord, Identity, SessionRecord

ADMIN_USER, ADMIN_PASSWORD = "alice", "correct horse battery staple"
VIEWER_USER, VIEWER_PASSWORD = "bob", "viewer password 42"

# RFC 6238 appendix B seed for SHA1, and the secret used in most authenticator docs.
RFC_SECRET_B32 = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"
DEMO_SECRET_B32 = "JBSWY3DPEHPK3PXP"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = float(now)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryAccountRepository:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.rows: dict[UUID, AccountRecord] = {}

    def insert(self, record: AccountRecord) -> None:
        with self._lock:
            self.rows[record.id] = record.model_copy()

    def list_all(self) -> list[AccountRecord]:
        with self._lock:
            return sorted(self.rows.values(), key=lambda r: (r.created_at, str(r.id)))

    def get(self, account_id: UUID) -> AccountRecord | None:
        with self._lock:
            return self.rows.get(account_id)

    def delete(self, account_id: UUID) -> bool:
        with self._lock:
            return self.rows.pop(account_id, None) is not None


class InMemorySessionRepository:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.rows: dict[str, SessionRecord] = {}

    def insert(self, record: SessionRecord) -> None:
        with self._lock:
            self.rows[record.token_hash] = record

    def get(self, token_hash: str) -> SessionRecord | None:
        with self._lock:
            return self.rows.get(token_hash)

    def delete(self, token_hash: str) -> bool:
        with self._lock:
            return self.rows.pop(token_hash, None) is not None

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [k for k, r in self.rows.items() if r.expires_at <= now]
            for k in expired:
                del self.rows[k]
            return len(expired)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def master_key() -> bytes:
    return os.urandom(32)


@pytest.fixture
def vault(master_key) -> SecretVault:
    return SecretVault(master_key)


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture(scope="session")
def password_hashes(hasher) -> dict[str, str]:
    return {
        "admin": hasher.hash(ADMIN_PASSWORD),
        "viewer": hasher.hash(VIEWER_PASSWORD),
    }


@pytest.fixture
def verifier(hasher, password_hashes) -> CredentialVerifier:
    return CredentialVerifier(
        {
            Identity.ADMIN: (ADMIN_USER, password_hashes["admin"]),
            Identity.VIEWER: (VIEWER_USER, password_hashes["viewer"]),
        },
        hasher=hasher,
    )


@pytest.fixture
def session_repo() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def account_repo() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def guard(session_repo, clock) -> SessionGuard:
    return SessionGuard(session_repo, ttl_seconds=3600, clock=clock)


@pytest.fixture
def throttle(clock) -> LoginThrottle:
    return LoginThrottle(max_failures=5, window_seconds=900, clock=clock)


@pytest.fixture
def authenticator(verifier, guard, throttle) -> Authenticator:
    return Authenticator(verifier, guard, throttle)


@pytest.fixture
def store(account_repo, vault, guard, clock) -> AccountStore:
    return AccountStore(account_repo, vault, guard, clock=clock)


@pytest.fixture
def admin_token(guard) -> str:
    return guard.create_session(Identity.ADMIN)


@pytest.fixture
def viewer_token(guard) -> str:
    return guard.create_session(Identity.VIEWER)


@pytest.fixture
def settings(master_key, password_hashes) -> Settings:
    return Settings(
        _env_file=None,
        master_key=base64.b64encode(master_key).decode(),
        admin_username=ADMIN_USER,
        admin_password_hash=password_hashes["admin"],
        viewer_username=VIEWER_USER,
        viewer_password_hash=password_hashes["viewer"],
        session_sweep_interval_seconds=0,
        cookie_secure=False,
    )
