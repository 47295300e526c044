"""Liveness and configuration status (booleans only, never values)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from otpdesk import __version__
from otpdesk.dashboard.deps import get_services, require_session

router = APIRouter(tags=["health"])

# Settings to report on (attribute name → display label)
CONFIGURED = {
    "master_key": "Master encryption key",
    "admin_password_hash": "Admin password verifier",
    "viewer_password_hash": "Viewer password verifier",
}


@router.get("/api/health")
def health(request: Request):
    services = get_services(request)
    sweeper = getattr(request.app.state, "sweeper", None)
    return {
        "ok": True,
        "version": __version__,
        "session_sweeper": bool(sweeper and sweeper.is_running),
        "configured": _configured(services.settings),
    }


@router.get("/api/health/db", dependencies=[Depends(require_session)])
def health_db():
    return _test_db()


def _configured(settings) -> dict[str, dict]:
    result = {}
    for attr, label in CONFIGURED.items():
        value = getattr(settings, attr, "")
        result[attr] = {"label": label, "configured": bool(value and value.strip())}
    return result


def _test_db() -> dict:
    try:
        from otpdesk.db import execute_one
        row = execute_one("SELECT 1 AS ok")
        if row and row["ok"] == 1:
            return {"ok": True, "message": "Database connected"}
        return {"ok": False, "message": "Database query failed"}
    except Exception as e:
        return {"ok": False, "message": type(e).__name__}
