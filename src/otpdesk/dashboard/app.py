"""FastAPI application: REST API over the account store and sessions."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from otpdesk import __version__
from otpdesk.auth.session import SessionSweeper
from otpdesk.errors import IntegrityError, OtpDeskError, RateLimitedError
from otpdesk.services import Services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    owns_pool = False
    if getattr(app.state, "services", None) is None:
        from otpdesk.config import settings
        from otpdesk.db import close_pool, init_pool
        from otpdesk.services import build_postgres_services

        # Fails fast on a missing or malformed key before anything else starts.
        app.state.services = build_postgres_services(settings)
        init_pool()
        owns_pool = True

    services: Services = app.state.services
    interval = services.settings.session_sweep_interval_seconds
    sweeper = None
    if interval > 0:
        sweeper = SessionSweeper(services.guard, interval, throttle=services.authenticator.throttle)
        sweeper.start()
    app.state.sweeper = sweeper
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.stop()
        if owns_pool:
            close_pool()


async def otpdesk_error_handler(request: Request, exc: OtpDeskError) -> JSONResponse:
    headers = {}
    if isinstance(exc, RateLimitedError):
        headers["Retry-After"] = str(exc.retry_after)
    if isinstance(exc, IntegrityError):
        body = {"error": exc.code, "message": "A stored secret failed its integrity check"}
    else:
        body = exc.to_dict()
    if exc.status_code >= 500:
        logger.error("%s on %s %s", exc.code, request.method, request.url.path)
    return JSONResponse(body, status_code=exc.status_code, headers=headers)


def create_app(services: Services | None = None) -> FastAPI:
    app = FastAPI(
        title="otpdesk",
        description="Shared TOTP codes behind an admin/viewer login",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services
    app.add_exception_handler(OtpDeskError, otpdesk_error_handler)

    from otpdesk.dashboard.routes import accounts, auth, health

    app.include_router(auth.router)
    app.include_router(accounts.router)
    app.include_router(health.router)
    return app


app = create_app()
