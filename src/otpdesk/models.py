"""Pydantic models and enums for data flowing through the core."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Callable
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

DEFAULT_DIGITS = 6
DEFAULT_PERIOD = 30
MIN_DIGITS = 6
MAX_DIGITS = 8
MAX_PERIOD = 2**31 - 1  # INTEGER column


# === Enums ===


class Algorithm(StrEnum):
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    @property
    def digest(self) -> Callable[..., Any]:
        return _DIGESTS[self]


_DIGESTS = {
    Algorithm.SHA1: hashlib.sha1,
    Algorithm.SHA256: hashlib.sha256,
    Algorithm.SHA512: hashlib.sha512,
}


class Identity(StrEnum):
    """The two fixed user slots. There is no user table."""

    ADMIN = "admin"
    VIEWER = "viewer"


class Role(StrEnum):
    ADMIN = "admin"
    VIEWER = "viewer"


class Operation(StrEnum):
    READ = "read"
    MUTATE = "mutate"


# === Accounts ===


class AccountCreate(BaseModel):
    """Add-account input. Unknown keys and loosely typed values are rejected."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    label: StrictStr = Field(min_length=1, max_length=256)
    secret: StrictStr = Field(min_length=1, max_length=1024)
    issuer: StrictStr | None = Field(default=None, max_length=256)
    algorithm: Algorithm = Algorithm.SHA1
    digits: StrictInt = Field(default=DEFAULT_DIGITS, ge=MIN_DIGITS, le=MAX_DIGITS)
    period: StrictInt = Field(default=DEFAULT_PERIOD, gt=0, le=MAX_PERIOD)

    @field_validator("issuer")
    @classmethod
    def _blank_issuer_is_none(cls, v: str | None) -> str | None:
        return v or None

    @field_validator("algorithm", mode="before")
    @classmethod
    def _upper_algorithm(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class AccountRecord(BaseModel):
    """A persisted account. ``sealed_secret`` is vault ciphertext, never plaintext."""

    id: UUID = Field(default_factory=uuid4)
    label: str
    issuer: str | None = None
    algorithm: Algorithm = Algorithm.SHA1
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_PERIOD
    sealed_secret: bytes = Field(repr=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class AccountSummary(BaseModel):
    """What callers see for an account: metadata plus the live code."""

    id: UUID
    label: str
    issuer: str | None = None
    algorithm: Algorithm
    digits: int
    period: int
    current_code: str | None = None
    seconds_remaining: int | None = None
    # Set instead of a code when the stored secret fails its integrity check.
    error: str | None = None


# === Sessions ===


class SessionRecord(BaseModel):
    """A stored session, keyed by the SHA-256 of its token."""

    token_hash: str
    identity: Identity
    expires_at: datetime


@dataclass(frozen=True)
class Principal:
    """The resolved caller of an operation."""

    identity: Identity
    role: Role
    expires_at: datetime
