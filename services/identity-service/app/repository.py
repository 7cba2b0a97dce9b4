"""Database repository for identity/account data."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from psycopg import errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account, normalize_email
from .domain.contracts import NewAccount
from .domain.errors import ConflictError

logger = logging.getLogger(__name__)

ACTIVE_EMAIL_INDEX = "ux_users_active_email"

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS users (
    user_id BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
    display_name VARCHAR(100) NOT NULL,
    email VARCHAR(255) NOT NULL,
    password_hash VARCHAR(255) NOT NULL,
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    CONSTRAINT users_updated_after_created CHECK (updated_at >= created_at)
);
CREATE UNIQUE INDEX IF NOT EXISTS {ACTIVE_EMAIL_INDEX}
    ON users (lower(email)) WHERE is_active;
"""

_COLUMNS = "user_id, display_name, email, password_hash, created_at, updated_at, is_active"


class AccountRepository:
    """Postgres-backed credential store.

    Reads only ever see active rows. Email uniqueness among active accounts is
    enforced by a partial unique index, so concurrent registrations of the same
    address resolve to one insert and one ``ConflictError``.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def ensure_schema(self) -> None:
        """Create the users table and its active-email index when missing."""
        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
                conn.commit()
        logger.info("users schema ensured")

    def find_by_email(self, email: str) -> Account | None:
        """Return the active account owning ``email`` or ``None``."""
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM users
                    WHERE lower(email) = %s AND is_active
                    """,
                    (normalize_email(email),),
                )
                row = cur.fetchone()
        if not row:
            return None
        return self._map_record(row)

    def find_by_id(self, user_id: int) -> Account | None:
        """Return the active account with ``user_id`` or ``None``."""
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM users
                    WHERE user_id = %s AND is_active
                    """,
                    (user_id,),
                )
                row = cur.fetchone()
        if not row:
            return None
        return self._map_record(row)

    def create(self, payload: NewAccount) -> Account:
        """Insert an active account and return it with its assigned id and timestamps."""
        now = datetime.now(timezone.utc)
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                try:
                    cur.execute(
                        f"""
                        INSERT INTO users (display_name, email, password_hash, created_at, updated_at, is_active)
                        VALUES (%s, %s, %s, %s, %s, TRUE)
                        RETURNING {_COLUMNS}
                        """,
                        (
                            payload.display_name,
                            normalize_email(payload.email),
                            payload.password_hash,
                            now,
                            now,
                        ),
                    )
                except errors.UniqueViolation as exc:
                    conn.rollback()
                    raise ConflictError("email already belongs to an active account") from exc
                record = cur.fetchone()
                conn.commit()
        return self._map_record(record)

    def soft_delete(self, user_id: int) -> bool:
        """Deactivate the active account with ``user_id``; ``False`` when none matched."""
        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE users
                    SET is_active = FALSE, updated_at = GREATEST(%s, created_at)
                    WHERE user_id = %s AND is_active
                    """,
                    (datetime.now(timezone.utc), user_id),
                )
                deleted = cur.rowcount == 1
                conn.commit()
        return deleted

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            user_id=row[0],
            display_name=row[1],
            email=row[2],
            password_hash=row[3],
            created_at=row[4],
            updated_at=row[5],
            is_active=row[6],
        )
