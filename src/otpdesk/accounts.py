"""Account store: list / add / remove / verify, gated by session and role.

Every operation resolves the caller first, then checks the role against
the operation, and only then touches storage. Plaintext secrets exist
only inside a single code computation.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any, Callable, Protocol
from uuid import UUID, uuid4

import pydantic

from otpdesk.auth import totp
from otpdesk.auth.otpauth import decode_base32, parse_uri
from otpdesk.auth.permissions import allow
from otpdesk.auth.session import SessionGuard
from otpdesk.crypto import SecretVault
from otpdesk.errors import Forbidden, IntegrityError, NotFoundError, ValidationError
from otpdesk.models import AccountCreate, AccountRecord, AccountSummary, Operation, Principal

logger = logging.getLogger(__name__)


class AccountRepository(Protocol):
    def insert(self, record: AccountRecord) -> None: ...

    def list_all(self) -> list[AccountRecord]: ...

    def get(self, account_id: UUID) -> AccountRecord | None: ...

    def delete(self, account_id: UUID) -> bool: ...


def validate_account_fields(data: Mapping[str, Any] | AccountCreate) -> AccountCreate:
    """Validate raw add-account input against the strict schema."""
    if isinstance(data, AccountCreate):
        return data
    if not isinstance(data, Mapping):
        raise ValidationError("account must be an object")
    try:
        return AccountCreate.model_validate(dict(data))
    except pydantic.ValidationError as e:
        details = []
        for err in e.errors():
            loc = ".".join(str(p) for p in err["loc"]) or "body"
            details.append(f"{loc}: {err['msg']}")
        first = e.errors()[0]["loc"] if e.errors() else ()
        raise ValidationError(
            "; ".join(details),
            field=str(first[0]) if first else None,
            details=details,
        ) from None


def _parse_id(account_id: UUID | str) -> UUID:
    if isinstance(account_id, UUID):
        return account_id
    try:
        return UUID(str(account_id))
    except ValueError:
        raise NotFoundError("Account not found") from None


def _summary(record: AccountRecord, code: totp.Code | None, error: str | None = None) -> AccountSummary:
    return AccountSummary(
        id=record.id,
        label=record.label,
        issuer=record.issuer,
        algorithm=record.algorithm,
        digits=record.digits,
        period=record.period,
        current_code=code.code if code else None,
        seconds_remaining=code.seconds_remaining if code else None,
        error=error,
    )


class AccountStore:
    def __init__(
        self,
        repo: AccountRepository,
        vault: SecretVault,
        guard: SessionGuard,
        clock: Callable[[], float] = time.time,
        verify_window: int = 1,
    ) -> None:
        self.repo = repo
        self.vault = vault
        self.guard = guard
        self._clock = clock
        self.verify_window = verify_window

    def _authorize(self, token: str | None, operation: Operation) -> Principal:
        principal = self.guard.require(token)
        if not allow(principal.role, operation):
            logger.warning("%s denied %s", principal.identity.value, operation.value)
            raise Forbidden(f"The {principal.role.value} role cannot {operation.value} accounts")
        return principal

    def _open(self, record: AccountRecord) -> bytes:
        try:
            return self.vault.open(record.sealed_secret, context=record.id.bytes)
        except IntegrityError:
            logger.error("Integrity check failed for account %s", record.id)
            raise IntegrityError(f"Stored secret for account {record.id} failed its integrity check") from None

    def _summarize(self, record: AccountRecord, now: float) -> AccountSummary:
        secret = self._open(record)
        code = totp.compute_code(secret, record.algorithm, record.digits, record.period, now)
        del secret
        return _summary(record, code)

    def list(self, token: str | None) -> list[AccountSummary]:
        """Every account with its live code, recomputed on each call.

        A row whose secret fails its integrity check is returned without a
        code and with ``error`` set; the other rows are unaffected and the
        row stays in storage.
        """
        self._authorize(token, Operation.READ)
        now = self._clock()
        summaries = []
        for record in self.repo.list_all():
            try:
                summaries.append(self._summarize(record, now))
            except IntegrityError as e:
                summaries.append(_summary(record, None, error=e.code))
        return summaries

    def add(self, token: str | None, fields: Mapping[str, Any] | AccountCreate) -> AccountSummary:
        principal = self._authorize(token, Operation.MUTATE)
        data = validate_account_fields(fields)
        secret = decode_base32(data.secret)
        return self._store(principal, data.label, secret, data.issuer, data.algorithm, data.digits, data.period)

    def add_from_uri(self, token: str | None, uri: str) -> AccountSummary:
        principal = self._authorize(token, Operation.MUTATE)
        parsed = parse_uri(uri)
        return self._store(
            principal, parsed.label, parsed.secret, parsed.issuer, parsed.algorithm, parsed.digits, parsed.period
        )

    def _store(self, principal, label, secret, issuer, algorithm, digits, period) -> AccountSummary:
        totp.validate_digits(digits)
        totp.validate_period(period)
        account_id = uuid4()
        record = AccountRecord(
            id=account_id,
            label=label,
            issuer=issuer,
            algorithm=algorithm,
            digits=digits,
            period=period,
            sealed_secret=self.vault.seal(secret, context=account_id.bytes),
        )
        now = self._clock()
        code = totp.compute_code(secret, algorithm, digits, period, now)
        del secret
        self.repo.insert(record)
        logger.info("Account %s (%s) added by %s", record.id, label, principal.identity.value)
        return _summary(record, code)

    def remove(self, token: str | None, account_id: UUID | str) -> None:
        principal = self._authorize(token, Operation.MUTATE)
        uid = _parse_id(account_id)
        if not self.repo.delete(uid):
            raise NotFoundError("Account not found")
        logger.info("Account %s removed by %s", uid, principal.identity.value)

    def verify(self, token: str | None, account_id: UUID | str, code: str) -> bool:
        """Check a supplied code for one account within the configured window."""
        self._authorize(token, Operation.READ)
        record = self.repo.get(_parse_id(account_id))
        if record is None:
            raise NotFoundError("Account not found")
        secret = self._open(record)
        ok = totp.verify_code(
            secret,
            code,
            record.algorithm,
            record.digits,
            record.period,
            at_time=self._clock(),
            window=self.verify_window,
        )
        del secret
        return ok
