"""Sign-in, sign-out and the current identity."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from otpdesk.dashboard.deps import (
    clear_session_cookies,
    client_source,
    get_services,
    require_logout_csrf,
    session_token,
    set_session_cookies,
)
from otpdesk.errors import AuthError

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    username: str
    password: str


@router.post("/api/auth/login")
def login(body: LoginRequest, request: Request, response: Response):
    services = get_services(request)
    source = client_source(request, services.settings)
    token = services.authenticator.login(body.username, body.password, source)
    principal = services.guard.require(token)
    csrf = set_session_cookies(response, token, services.settings)
    return {
        "token": token,
        "csrf_token": csrf,
        "identity": principal.identity,
        "role": principal.role,
        "expires_at": principal.expires_at,
    }


@router.post("/api/auth/logout", dependencies=[Depends(require_logout_csrf)])
def logout(request: Request, response: Response):
    services = get_services(request)
    services.authenticator.logout(session_token(request))
    clear_session_cookies(response, services.settings)
    return {"ok": True}


@router.get("/api/auth/me")
def who_am_i(request: Request):
    principal = get_services(request).authenticator.who_am_i(session_token(request))
    if principal is None:
        raise AuthError("Not signed in or session expired")
    return {
        "identity": principal.identity,
        "role": principal.role,
        "expires_at": principal.expires_at,
    }
