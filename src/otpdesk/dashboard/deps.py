"""Request helpers shared by the route modules."""

from __future__ import annotations

import hmac
import secrets

from fastapi import Request, Response

from otpdesk.config import Settings
from otpdesk.errors import Forbidden
from otpdesk.services import Services

CSRF_HEADER = "X-CSRF-Token"


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services not initialized")
    return services


def bearer_token(request: Request) -> str | None:
    auth = request.headers.get("authorization", "")
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def session_token(request: Request) -> str | None:
    """Bearer header first, then the session cookie."""
    settings = get_services(request).settings
    return bearer_token(request) or request.cookies.get(settings.session_cookie_name) or None


def _cookie_session(request: Request, settings: Settings) -> str | None:
    """The session cookie, when it is what authenticates the request."""
    if bearer_token(request):
        return None
    return request.cookies.get(settings.session_cookie_name) or None


def _check_csrf(request: Request, settings: Settings) -> None:
    cookie = request.cookies.get(settings.csrf_cookie_name, "")
    header = request.headers.get(CSRF_HEADER, "")
    if not cookie or not header or not hmac.compare_digest(cookie.encode(), header.encode()):
        raise Forbidden("Missing or invalid CSRF token")


def require_csrf(request: Request) -> None:
    """Double-submit check for cookie-authenticated mutations.

    The session is resolved first, so a stale cookie is an AuthError.
    """
    services = get_services(request)
    token = _cookie_session(request, services.settings)
    if token is None:
        return
    services.guard.require(token)
    _check_csrf(request, services.settings)


def require_logout_csrf(request: Request) -> None:
    """CSRF check for logout; only a live cookie session needs one."""
    services = get_services(request)
    token = _cookie_session(request, services.settings)
    if token is None or services.guard.resolve(token) is None:
        return
    _check_csrf(request, services.settings)


def require_session(request: Request) -> None:
    get_services(request).guard.require(session_token(request))


def client_source(request: Request, settings: Settings) -> str:
    """The key used for login throttling."""
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


def set_session_cookies(response: Response, token: str, settings: Settings) -> str:
    csrf = secrets.token_urlsafe(32)
    max_age = settings.session_ttl_seconds
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )
    response.set_cookie(
        settings.csrf_cookie_name,
        csrf,
        max_age=max_age,
        httponly=False,
        secure=settings.cookie_secure,
        samesite="strict",
    )
    return csrf


def clear_session_cookies(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.session_cookie_name)
    response.delete_cookie(settings.csrf_cookie_name)
