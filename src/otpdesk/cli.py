"""CLI entry point for otpdesk.

Usage:
    otpdesk server            # Start the API (FastAPI on port 8080)
    otpdesk init-db           # Create tables
    otpdesk generate-key      # Print a fresh OTPDESK_MASTER_KEY
    otpdesk hash-password     # Print an argon2 verifier for a password
    otpdesk sweep-sessions    # Delete expired sessions (cron-friendly)
    otpdesk status            # Show configuration status
    otpdesk db-check          # Verify database connectivity
"""

from __future__ import annotations

import base64
import logging
import os
import sys

import click
from rich.console import Console

from otpdesk.errors import ConfigurationError

console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


@click.group()
def main() -> None:
    """otpdesk: shared TOTP codes behind an admin/viewer login."""
    from otpdesk.config import settings

    _configure_logging(settings.log_level)


@main.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8080, type=int, show_default=True)
def server(host: str, port: int) -> None:
    """Start the API server."""
    import uvicorn

    from otpdesk.config import settings

    try:
        settings.require_runtime()
    except ConfigurationError as e:
        console.print(f"[red]Refusing to start: {e.message}[/red]")
        sys.exit(1)

    from otpdesk.dashboard.app import app

    console.print(f"Starting otpdesk on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


@main.command()
def init_db() -> None:
    """Create the accounts and sessions tables."""
    from otpdesk.db import close_pool, init_pool
    from otpdesk.storage import init_schema

    init_pool(min_size=1, max_size=1)
    try:
        init_schema()
    finally:
        close_pool()
    console.print("[green]Schema ready[/green]")


@main.command()
def generate_key() -> None:
    """Print a new random master key (base64, 32 bytes)."""
    click.echo(base64.b64encode(os.urandom(32)).decode())


@main.command()
@click.password_option("--password", prompt=True, confirmation_prompt=True)
def hash_password(password: str) -> None:
    """Print an argon2 verifier for OTPDESK_*_PASSWORD_HASH."""
    from otpdesk.auth.passwords import hash_password as _hash

    click.echo(_hash(password))


@main.command()
def sweep_sessions() -> None:
    """Delete expired sessions."""
    from otpdesk.auth.session import SessionGuard
    from otpdesk.config import settings
    from otpdesk.db import close_pool, init_pool
    from otpdesk.storage import PostgresSessionRepository

    init_pool(min_size=1, max_size=1)
    try:
        guard = SessionGuard(PostgresSessionRepository(), ttl_seconds=settings.session_ttl_seconds)
        removed = guard.sweep()
    finally:
        close_pool()
    console.print(f"Removed {removed} expired sessions")


@main.command()
def status() -> None:
    """Show configuration status (never prints secret values)."""
    from otpdesk.config import settings

    console.print("[bold]otpdesk status[/bold]")
    console.print(f"  Database: {settings.database_url.split('@')[-1]}")
    console.print(f"  Admin user: {settings.admin_username}")
    console.print(f"  Viewer user: {settings.viewer_username}")
    console.print(f"  Session lifetime: {settings.session_ttl_seconds}s")
    console.print(f"  Login limit: {settings.login_max_failures} per {settings.login_window_seconds}s")
    try:
        settings.require_runtime()
        console.print("  Configuration: [green]OK[/green]")
    except ConfigurationError as e:
        console.print(f"  Configuration: [red]{e.message}[/red]")


@main.command()
def db_check() -> None:
    """Verify database connectivity."""
    from otpdesk.db import close_pool, execute_one, init_pool
    from otpdesk.storage import PostgresAccountRepository, PostgresSessionRepository

    init_pool(min_size=1, max_size=1)
    try:
        row = execute_one("SELECT 1 AS ok")
        if row and row["ok"] == 1:
            console.print("[green]Database connection OK[/green]")
            console.print(f"  accounts: {PostgresAccountRepository().count()}")
            console.print(f"  sessions: {PostgresSessionRepository().count()}")
        else:
            console.print("[red]Database check failed[/red]")
    finally:
        close_pool()


if __name__ == "__main__":
    main()
