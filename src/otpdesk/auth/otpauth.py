"""Parse ``otpauth://`` provisioning URIs (manual paste or decoded QR).

Only ``totp`` URIs are accepted. Validation is strict: an unknown
algorithm or an out-of-range digit count is an error, never a default.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from urllib.parse import parse_qs, unquote, urlsplit

from otpdesk.errors import MalformedURIError, ValidationError
from otpdesk.models import DEFAULT_DIGITS, DEFAULT_PERIOD, MAX_DIGITS, MAX_PERIOD, MIN_DIGITS, Algorithm


@dataclass(frozen=True)
class ParsedAccount:
    label: str
    secret: bytes = field(repr=False)
    issuer: str | None = None
    algorithm: Algorithm = Algorithm.SHA1
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_PERIOD


def decode_base32(secret: str) -> bytes:
    """Decode a Base32 secret, tolerating spaces, lower case and missing padding."""
    cleaned = "".join(secret.split()).replace("-", "").upper().rstrip("=")
    if not cleaned:
        raise ValidationError("secret must not be empty", field="secret")
    cleaned += "=" * (-len(cleaned) % 8)
    try:
        raw = base64.b32decode(cleaned)
    except (binascii.Error, ValueError):
        raise ValidationError("secret is not valid Base32", field="secret") from None
    if not raw:
        raise ValidationError("secret decodes to zero bytes", field="secret")
    return raw


def _single(params: dict[str, list[str]], name: str) -> str | None:
    values = params.get(name)
    if not values:
        return None
    if len(values) > 1:
        raise MalformedURIError(f"parameter '{name}' given more than once", field=name)
    return values[0]


def _positive_int(raw: str, name: str) -> int:
    if not (raw.isascii() and raw.isdigit()):
        raise MalformedURIError(f"{name} must be a positive integer", field=name)
    return int(raw)


def parse_uri(uri: str) -> ParsedAccount:
    """Parse a provisioning URI into account fields or raise MalformedURIError."""
    if not isinstance(uri, str) or not uri.strip():
        raise MalformedURIError("URI is empty")
    parts = urlsplit(uri.strip())

    if parts.scheme.lower() != "otpauth":
        raise MalformedURIError("URI scheme must be otpauth")
    kind = parts.netloc.lower()
    if kind == "hotp":
        raise MalformedURIError("HOTP (counter-based) accounts are not supported")
    if kind != "totp":
        raise MalformedURIError("URI type must be totp")

    label = unquote(parts.path.lstrip("/")).strip()
    label_issuer = None
    if ":" in label:
        label_issuer, label = (s.strip() for s in label.split(":", 1))
    if not label:
        raise MalformedURIError("URI has no account label", field="label")

    params = parse_qs(parts.query, keep_blank_values=True)

    secret = _single(params, "secret")
    if not secret:
        raise MalformedURIError("URI has no secret", field="secret")
    try:
        secret_bytes = decode_base32(secret)
    except ValidationError as e:
        raise MalformedURIError(e.message, field="secret") from None

    issuer = (_single(params, "issuer") or "").strip() or label_issuer or None

    algorithm = Algorithm.SHA1
    raw_algorithm = _single(params, "algorithm")
    if raw_algorithm is not None:
        try:
            algorithm = Algorithm(raw_algorithm.strip().upper())
        except ValueError:
            raise MalformedURIError(f"unsupported algorithm '{raw_algorithm}'", field="algorithm") from None

    digits = DEFAULT_DIGITS
    raw_digits = _single(params, "digits")
    if raw_digits is not None:
        digits = _positive_int(raw_digits.strip(), "digits")
        if not MIN_DIGITS <= digits <= MAX_DIGITS:
            raise MalformedURIError(f"digits must be between {MIN_DIGITS} and {MAX_DIGITS}", field="digits")

    period = DEFAULT_PERIOD
    raw_period = _single(params, "period")
    if raw_period is not None:
        period = _positive_int(raw_period.strip(), "period")
        if not 0 < period <= MAX_PERIOD:
            raise MalformedURIError(f"period must be between 1 and {MAX_PERIOD}", field="period")

    return ParsedAccount(
        label=label,
        secret=secret_bytes,
        issuer=issuer,
        algorithm=algorithm,
        digits=digits,
        period=period,
    )
