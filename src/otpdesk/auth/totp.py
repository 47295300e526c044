"""TOTP (Time-based One-Time Password) code engine.

Uses pyotp for the RFC 4226/6238 derivation: HMAC over the big-endian
time counter, dynamic truncation, modulo 10^digits. Everything here is
pure, so it is safe to call from any thread.
"""

from __future__ import annotations

import base64
import hmac
import time
from dataclasses import dataclass
from datetime import UTC, datetime

import pyotp

from otpdesk.errors import ValidationError
from otpdesk.models import DEFAULT_DIGITS, DEFAULT_PERIOD, MAX_DIGITS, MAX_PERIOD, MIN_DIGITS, Algorithm


@dataclass(frozen=True)
class Code:
    code: str
    seconds_remaining: int


def validate_digits(digits: int) -> int:
    if isinstance(digits, bool) or not isinstance(digits, int) or not MIN_DIGITS <= digits <= MAX_DIGITS:
        raise ValidationError(f"digits must be between {MIN_DIGITS} and {MAX_DIGITS}", field="digits")
    return digits


def validate_period(period: int) -> int:
    if isinstance(period, bool) or not isinstance(period, int) or not 0 < period <= MAX_PERIOD:
        raise ValidationError(f"period must be between 1 and {MAX_PERIOD} seconds", field="period")
    return period


def _timestamp(at_time: float | None) -> int:
    now = time.time() if at_time is None else at_time
    if now < 0:
        raise ValidationError("time must not be before the Unix epoch", field="at_time")
    return int(now)


def _totp(secret: bytes, algorithm: Algorithm, digits: int, period: int) -> pyotp.TOTP:
    if not secret:
        raise ValidationError("secret must not be empty", field="secret")
    validate_digits(digits)
    validate_period(period)
    b32 = base64.b32encode(secret).decode("ascii")
    return pyotp.TOTP(b32, digits=digits, digest=Algorithm(algorithm).digest, interval=period)


def compute_code(
    secret: bytes,
    algorithm: Algorithm = Algorithm.SHA1,
    digits: int = DEFAULT_DIGITS,
    period: int = DEFAULT_PERIOD,
    at_time: float | None = None,
) -> Code:
    """Compute the code for ``secret`` at ``at_time`` (Unix seconds, default now)."""
    ts = _timestamp(at_time)
    totp = _totp(secret, algorithm, digits, period)
    # Aware datetime keeps pyotp on the UTC path (no local-time round trip).
    code = totp.at(datetime.fromtimestamp(ts, tz=UTC))
    return Code(code=code, seconds_remaining=period - (ts % period))


def verify_code(
    secret: bytes,
    code: str,
    algorithm: Algorithm = Algorithm.SHA1,
    digits: int = DEFAULT_DIGITS,
    period: int = DEFAULT_PERIOD,
    at_time: float | None = None,
    window: int = 1,
) -> bool:
    """Verify a supplied code, accepting ``window`` periods either side of now."""
    if window < 0:
        raise ValidationError("window must not be negative", field="window")
    ts = _timestamp(at_time)
    totp = _totp(secret, algorithm, digits, period)
    code = (code or "").strip()
    if len(code) != digits or not code.isdigit():
        return False
    counter = ts // period
    matched = False
    for offset in range(-window, window + 1):
        if counter + offset < 0:
            continue
        # No early exit: every candidate in the window is compared.
        if hmac.compare_digest(code, totp.generate_otp(counter + offset)):
            matched = True
    return matched
