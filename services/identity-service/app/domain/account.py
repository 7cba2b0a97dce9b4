from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered user identity."""

    user_id: int
    display_name: str
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime
    is_active: bool = True


def normalize_email(email: str) -> str:
    """Return the canonical form used for storage and comparison."""
    return email.strip().lower()
