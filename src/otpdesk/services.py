"""Wiring: build the core components from settings once, at startup."""

from __future__ import annotations

from dataclasses import dataclass

from otpdesk.accounts import AccountRepository, AccountStore
from otpdesk.auth.passwords import CredentialVerifier
from otpdesk.auth.rate_limit import LoginThrottle
from otpdesk.auth.service import Authenticator
from otpdesk.auth.session import SessionGuard, SessionRepository
from otpdesk.config import Settings
from otpdesk.crypto import SecretVault


@dataclass
class Services:
    settings: Settings
    guard: SessionGuard
    authenticator: Authenticator
    accounts: AccountStore


def build_services(
    settings: Settings,
    account_repo: AccountRepository,
    session_repo: SessionRepository,
    verifier: CredentialVerifier | None = None,
) -> Services:
    """Validate configuration and assemble the core. Raises ConfigurationError."""
    settings.require_runtime()
    vault = SecretVault.from_settings(settings)
    guard = SessionGuard(session_repo, ttl_seconds=settings.session_ttl_seconds)
    throttle = LoginThrottle(
        max_failures=settings.login_max_failures,
        window_seconds=settings.login_window_seconds,
    )
    authenticator = Authenticator(verifier or CredentialVerifier.from_settings(settings), guard, throttle)
    accounts = AccountStore(account_repo, vault, guard, verify_window=settings.totp_verify_window)
    return Services(settings=settings, guard=guard, authenticator=authenticator, accounts=accounts)


def build_postgres_services(settings: Settings) -> Services:
    from otpdesk.storage import PostgresAccountRepository, PostgresSessionRepository

    return build_services(settings, PostgresAccountRepository(), PostgresSessionRepository())
