"""Database connection pool and helpers."""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from typing import Any

import psycopg
import psycopg.rows
import psycopg_pool

from otpdesk.config import settings

_pool: psycopg_pool.ConnectionPool | None = None


def init_pool(min_size: int | None = None, max_size: int | None = None) -> psycopg_pool.ConnectionPool:
    """Create and open the connection pool."""
    global _pool
    if _pool is not None:
        return _pool
    _pool = psycopg_pool.ConnectionPool(
        conninfo=settings.database_url,
        min_size=min_size or settings.db_pool_min_size,
        max_size=max_size or settings.db_pool_max_size,
        kwargs={"row_factory": psycopg.rows.dict_row},
        open=False,
    )
    _pool.open()
    return _pool


def close_pool() -> None:
    global _pool
    if _pool is not None:
        _pool.close()
        _pool = None


@contextlib.contextmanager
def get_conn() -> Iterator[psycopg.Connection[dict[str, Any]]]:
    """Borrow a connection from the pool; commits on clean exit."""
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")
    with _pool.connection() as conn:
        yield conn


def execute(query: str, params: tuple[Any, ...] | None = None) -> list[dict[str, Any]]:
    """Execute a query and return all rows as dicts."""
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(query, params)
            if cur.description is None:
                return []
            return cur.fetchall()


def execute_one(query: str, params: tuple[Any, ...] | None = None) -> dict[str, Any] | None:
    """Execute a query and return a single row."""
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(query, params)
            if cur.description is None:
                return None
            return cur.fetchone()


def rowcount(query: str, params: tuple[Any, ...] | None = None) -> int:
    """Execute a write and return the number of affected rows."""
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(query, params)
            return cur.rowcount

