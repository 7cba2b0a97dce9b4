"""Domain-level contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from .account import Account
from .errors import AuthErrorCode


@dataclass(slots=True)
class NewAccount:
    """Validated inputs required to persist an account."""

    display_name: str
    email: str
    password_hash: str


class CredentialStore(Protocol):
    """Persistence operations the authentication service relies on.

    Every read is scoped to active accounts; deleted rows are invisible.
    """

    def find_by_email(self, email: str) -> Account | None: ...

    def find_by_id(self, user_id: int) -> Account | None: ...

    def create(self, payload: NewAccount) -> Account:
        """Persist ``payload``; raise ``ConflictError`` if the email is taken."""
        ...

    def soft_delete(self, user_id: int) -> bool: ...


@dataclass(slots=True)
class RegisterResult:
    success: bool
    message: str
    user_id: int | None = None
    email: str | None = None
    name: str | None = None
    error: AuthErrorCode | None = None


@dataclass(slots=True)
class LoginResult:
    success: bool
    message: str
    token: str | None = None
    user_id: int | None = None
    email: str | None = None
    name: str | None = None
    expires_at: datetime | None = None
    error: AuthErrorCode | None = None


@dataclass(slots=True, frozen=True)
class Identity:
    """Caller identity recovered from verified token claims."""

    user_id: int
    email: str
    name: str | None
