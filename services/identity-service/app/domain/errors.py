"""Error taxonomy shared by the store, the security helpers and the service."""

from __future__ import annotations

from enum import Enum


GENERIC_INTERNAL_MESSAGE = "internal server error"


class AuthErrorCode(str, Enum):
    duplicate_email = "duplicate_email"
    invalid_credentials = "invalid_credentials"
    internal_error = "internal_error"


class IdentityError(Exception):
    """Base class for identity-service failures."""


class ValidationError(IdentityError):
    """Input reached the service in a shape the boundary should have rejected."""


class ConflictError(IdentityError):
    """Raised by the store when an active account already owns the email."""


class InvalidTokenError(IdentityError):
    """Bearer token or its claims cannot establish an identity."""


class InternalError(IdentityError):
    """Opaque failure; never carries lower-layer detail to callers."""

    def __init__(self) -> None:
        super().__init__(GENERIC_INTERNAL_MESSAGE)
