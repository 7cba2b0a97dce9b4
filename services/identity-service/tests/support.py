"""Shared test doubles for the identity service suite."""

from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from datetime import datetime, timezone

from psycopg_pool import PoolTimeout

from app.domain.account import Account, normalize_email
from app.domain.contracts import NewAccount
from app.domain.errors import ConflictError

TEST_SECRET = "test-secret-with-at-least-32-bytes!!"
TEST_ISSUER = "identity-service.test"
TEST_TTL_SECONDS = 3600
POOL_TIMEOUT_TEXT = "couldn't get a connection after 5.00 sec"


class FakeRepository:
    """In-memory credential store mimicking the Postgres partial unique index."""

    def __init__(self) -> None:
        self._rows: dict[int, Account] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> Account | None:
        normalized = normalize_email(email)
        with self._lock:
            for account in self._rows.values():
                if account.is_active and account.email == normalized:
                    return account
        return None

    def find_by_id(self, user_id: int) -> Account | None:
        with self._lock:
            account = self._rows.get(user_id)
        if account is None or not account.is_active:
            return None
        return account

    def create(self, payload: NewAccount) -> Account:
        normalized = normalize_email(payload.email)
        now = datetime.now(timezone.utc)
        with self._lock:
            if any(a.is_active and a.email == normalized for a in self._rows.values()):
                raise ConflictError("email already belongs to an active account")
            account = Account(
                user_id=next(self._ids),
                display_name=payload.display_name,
                email=normalized,
                password_hash=payload.password_hash,
                created_at=now,
                updated_at=now,
            )
            self._rows[account.user_id] = account
        return account

    def soft_delete(self, user_id: int) -> bool:
        with self._lock:
            account = self._rows.get(user_id)
            if account is None or not account.is_active:
                return False
            self._rows[user_id] = replace(
                account,
                is_active=False,
                updated_at=max(datetime.now(timezone.utc), account.created_at),
            )
        return True

    def all_rows(self) -> list[Account]:
        with self._lock:
            return list(self._rows.values())


class FakeClock:
    """Controllable UNIX-time source for token expiry tests."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ExplodingRepository(FakeRepository):
    """Store whose every call times out waiting for a pooled connection."""

    def find_by_email(self, email):
        raise PoolTimeout(POOL_TIMEOUT_TEXT)

    def find_by_id(self, user_id):
        raise PoolTimeout(POOL_TIMEOUT_TEXT)

    def create(self, payload):
        raise PoolTimeout(POOL_TIMEOUT_TEXT)

    def soft_delete(self, user_id):
        raise PoolTimeout(POOL_TIMEOUT_TEXT)
