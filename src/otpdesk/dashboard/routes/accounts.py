"""Account API: live codes for everyone signed in, changes for admin only."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response
from pydantic import BaseModel

from otpdesk.dashboard.deps import get_services, require_csrf, session_token
from otpdesk.models import AccountSummary

router = APIRouter(tags=["accounts"])


class ImportRequest(BaseModel):
    uri: str


class VerifyRequest(BaseModel):
    code: str


@router.get("/api/accounts", response_model=list[AccountSummary])
def list_accounts(request: Request):
    return get_services(request).accounts.list(session_token(request))


@router.post(
    "/api/accounts",
    status_code=201,
    response_model=AccountSummary,
    dependencies=[Depends(require_csrf)],
)
def create_account(request: Request, body: dict[str, Any] = Body(...)):
    return get_services(request).accounts.add(session_token(request), body)


@router.post(
    "/api/accounts/import",
    status_code=201,
    response_model=AccountSummary,
    dependencies=[Depends(require_csrf)],
)
def import_account(body: ImportRequest, request: Request):
    """Add an account from an otpauth:// URI (pasted or decoded from a QR code)."""
    return get_services(request).accounts.add_from_uri(session_token(request), body.uri)


@router.delete(
    "/api/accounts/{account_id}",
    status_code=204,
    dependencies=[Depends(require_csrf)],
)
def delete_account(account_id: str, request: Request):
    get_services(request).accounts.remove(session_token(request), account_id)
    return Response(status_code=204)


@router.post("/api/accounts/{account_id}/verify")
def verify_code(account_id: str, body: VerifyRequest, request: Request):
    valid = get_services(request).accounts.verify(session_token(request), account_id, body.code)
    return {"valid": valid}
