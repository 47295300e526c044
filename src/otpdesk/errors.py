"""Error taxonomy shared by the core, the HTTP layer and the CLI.

Messages are written for the caller. None of them may carry secret bytes,
sealed blobs, session tokens or key material.
"""

from __future__ import annotations


class OtpDeskError(Exception):
    """Base class for every error raised on purpose by otpdesk."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or self.__class__.__doc__ or self.code

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ConfigurationError(OtpDeskError):
    """The deployment configuration is missing or malformed."""

    code = "configuration_error"


class ValidationError(OtpDeskError):
    """The supplied input is invalid."""

    status_code = 422
    code = "validation_error"

    def __init__(self, message: str = "", *, field: str | None = None, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.field = field
        self.details = details or ([message] if message else [])

    def to_dict(self) -> dict:
        out = super().to_dict()
        if self.field:
            out["field"] = self.field
        out["details"] = self.details
        return out


class MalformedURIError(ValidationError):
    """The provisioning URI could not be parsed."""

    code = "malformed_uri"


class AuthError(OtpDeskError):
    """Authentication failed."""

    status_code = 401
    code = "unauthenticated"


class Forbidden(OtpDeskError):
    """You are signed in but your role does not allow this operation."""

    status_code = 403
    code = "forbidden"


class NotFoundError(OtpDeskError):
    """The requested account does not exist."""

    status_code = 404
    code = "not_found"


class IntegrityError(OtpDeskError):
    """Stored secret failed its integrity check."""

    code = "integrity_error"


class RateLimitedError(OtpDeskError):
    """Too many failed login attempts. Try again later."""

    status_code = 429
    code = "rate_limited"

    def __init__(self, message: str = "", *, retry_after: int = 0) -> None:
        super().__init__(message)
        self.retry_after = max(0, int(retry_after))

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["retry_after"] = self.retry_after
        return out
