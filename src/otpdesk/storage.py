"""Postgres-backed repositories for accounts and sessions.

Every write is a single-statement, single-row change, so a concurrent
reader never observes a half-written row.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from otpdesk import db
from otpdesk.models import AccountRecord, SessionRecord

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    id            UUID PRIMARY KEY,
    label         TEXT NOT NULL CHECK (label <> ''),
    issuer        TEXT,
    algorithm     TEXT NOT NULL CHECK (algorithm IN ('SHA1', 'SHA256', 'SHA512')),
    digits        SMALLINT NOT NULL CHECK (digits BETWEEN 6 AND 8),
    period        INTEGER NOT NULL CHECK (period > 0),
    sealed_secret BYTEA NOT NULL,
    created_at    TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS sessions (
    token_hash TEXT PRIMARY KEY,
    identity   TEXT NOT NULL CHECK (identity IN ('admin', 'viewer')),
    expires_at TIMESTAMPTZ NOT NULL
);

CREATE INDEX IF NOT EXISTS sessions_expires_at_idx ON sessions (expires_at);
"""

_ACCOUNT_COLUMNS = "id, label, issuer, algorithm, digits, period, sealed_secret, created_at"


def init_schema() -> None:
    """Create tables if they do not exist yet."""
    with db.get_conn() as conn:
        conn.execute(SCHEMA)
    logger.info("Schema ready")


def _account(row: dict) -> AccountRecord:
    return AccountRecord(
        id=row["id"],
        label=row["label"],
        issuer=row["issuer"],
        algorithm=row["algorithm"],
        digits=row["digits"],
        period=row["period"],
        sealed_secret=bytes(row["sealed_secret"]),
        created_at=row["created_at"],
    )


class PostgresAccountRepository:
    def insert(self, record: AccountRecord) -> None:
        db.execute(
            f"""INSERT INTO accounts ({_ACCOUNT_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)""",
            (
                record.id,
                record.label,
                record.issuer,
                record.algorithm.value,
                record.digits,
                record.period,
                record.sealed_secret,
                record.created_at,
            ),
        )

    def list_all(self) -> list[AccountRecord]:
        rows = db.execute(f"SELECT {_ACCOUNT_COLUMNS} FROM accounts ORDER BY created_at, id")
        return [_account(r) for r in rows]

    def get(self, account_id: UUID) -> AccountRecord | None:
        row = db.execute_one(f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE id = %s", (account_id,))
        return _account(row) if row else None

    def delete(self, account_id: UUID) -> bool:
        return db.rowcount("DELETE FROM accounts WHERE id = %s", (account_id,)) > 0

    def count(self) -> int:
        row = db.execute_one("SELECT COUNT(*) AS cnt FROM accounts")
        return int(row["cnt"]) if row else 0


class PostgresSessionRepository:
    def insert(self, record: SessionRecord) -> None:
        db.execute(
            "INSERT INTO sessions (token_hash, identity, expires_at) VALUES (%s, %s, %s)",
            (record.token_hash, record.identity.value, record.expires_at),
        )

    def get(self, token_hash: str) -> SessionRecord | None:
        row = db.execute_one(
            "SELECT token_hash, identity, expires_at FROM sessions WHERE token_hash = %s",
            (token_hash,),
        )
        return SessionRecord(**row) if row else None

    def delete(self, token_hash: str) -> bool:
        return db.rowcount("DELETE FROM sessions WHERE token_hash = %s", (token_hash,)) > 0

    def delete_expired(self, now: datetime) -> int:
        return db.rowcount("DELETE FROM sessions WHERE expires_at <= %s", (now,))

    def count(self) -> int:
        row = db.execute_one("SELECT COUNT(*) AS cnt FROM sessions")
        return int(row["cnt"]) if row else 0
