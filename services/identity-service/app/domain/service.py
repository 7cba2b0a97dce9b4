"""Authentication service orchestrating the credential store, hasher and token issuer."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .account import normalize_email
from .contracts import CredentialStore, Identity, LoginResult, NewAccount, RegisterResult
from .errors import (
    GENERIC_INTERNAL_MESSAGE,
    AuthErrorCode,
    ConflictError,
    InternalError,
    InvalidTokenError,
    ValidationError,
)
from ..metrics import DELETIONS, LOGINS, REGISTRATIONS
from ..security.passwords import PasswordHasher
from ..security.tokens import TokenIssuer

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "email already in use"
INVALID_CREDENTIALS_MESSAGE = "invalid email or password"
REGISTERED_MESSAGE = "user registered successfully"
LOGGED_IN_MESSAGE = "login successful"

# Verified against when the email is unknown so both login failure paths pay
# for one bcrypt comparison.
_DUMMY_PASSWORD = "identity-service-dummy-password"


class AuthService:
    """Registration, login, deletion and identity workflows.

    Business outcomes (duplicate email, bad credentials) come back as
    structured results. Unexpected lower-layer failures are logged and
    reduced to the generic internal-error outcome.
    """

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
    ) -> None:
        """Store collaborators and precompute the dummy hash used on unknown emails."""
        self._store = store
        self._hasher = hasher
        self._tokens = tokens
        self._dummy_hash = hasher.hash(_DUMMY_PASSWORD)

    def register(self, name: str, email: str, password: str, confirm_password: str) -> RegisterResult:
        """Create an active account for ``email``; no token is issued."""
        if not name or not name.strip():
            raise ValidationError("name is required")
        if password != confirm_password:
            raise ValidationError("passwords do not match")

        normalized = normalize_email(email)
        try:
            if self._store.find_by_email(normalized) is not None:
                return self._duplicate_email()
            password_hash = self._hasher.hash(password)
            account = self._store.create(
                NewAccount(display_name=name, email=normalized, password_hash=password_hash)
            )
        except ConflictError:
            # lost a race against a concurrent registration
            return self._duplicate_email()
        except Exception:
            logger.exception("registration failed")
            REGISTRATIONS.labels(outcome="error").inc()
            return RegisterResult(
                success=False,
                message=GENERIC_INTERNAL_MESSAGE,
                error=AuthErrorCode.internal_error,
            )

        logger.info("registered user %s", account.user_id)
        REGISTRATIONS.labels(outcome="success").inc()
        return RegisterResult(
            success=True,
            message=REGISTERED_MESSAGE,
            user_id=account.user_id,
            email=account.email,
            name=account.display_name,
        )

    def login(self, email: str, password: str) -> LoginResult:
        """Authenticate by email/password and issue a bearer token.

        Unknown emails and wrong passwords produce the same result so callers
        cannot tell which addresses are registered.
        """
        normalized = normalize_email(email)
        try:
            account = self._store.find_by_email(normalized)
            if account is None:
                self._hasher.verify(password, self._dummy_hash)
                return self._invalid_credentials()
            if not self._hasher.verify(password, account.password_hash):
                return self._invalid_credentials()
            issued = self._tokens.issue(account)
        except Exception:
            logger.exception("login failed")
            LOGINS.labels(outcome="error").inc()
            return LoginResult(
                success=False,
                message=GENERIC_INTERNAL_MESSAGE,
                error=AuthErrorCode.internal_error,
            )

        logger.info("user %s logged in", account.user_id)
        LOGINS.labels(outcome="success").inc()
        return LoginResult(
            success=True,
            message=LOGGED_IN_MESSAGE,
            token=issued.token,
            user_id=account.user_id,
            email=account.email,
            name=account.display_name,
            expires_at=issued.expires_at,
        )

    def delete_account(self, user_id: int) -> bool:
        """Soft-delete the active account; ``False`` when none exists."""
        try:
            deleted = self._store.soft_delete(user_id)
        except Exception as exc:
            logger.exception("account deletion failed for user %s", user_id)
            DELETIONS.labels(outcome="error").inc()
            raise InternalError() from exc

        if deleted:
            logger.info("user %s deleted", user_id)
            DELETIONS.labels(outcome="deleted").inc()
        else:
            DELETIONS.labels(outcome="not_found").inc()
        return deleted

    def get_current_identity(self, claims: Mapping[str, Any]) -> Identity:
        """Build the caller identity from already-verified token claims."""
        user_id = _parse_user_id(claims.get("userId"))
        email = claims.get("email")
        if not isinstance(email, str) or not email:
            raise InvalidTokenError("token is missing the email claim")
        name = claims.get("name")
        if name is not None and not isinstance(name, str):
            raise InvalidTokenError("token name claim is malformed")
        return Identity(user_id=user_id, email=email, name=name)

    def _duplicate_email(self) -> RegisterResult:
        REGISTRATIONS.labels(outcome="duplicate").inc()
        return RegisterResult(
            success=False,
            message=DUPLICATE_EMAIL_MESSAGE,
            error=AuthErrorCode.duplicate_email,
        )

    def _invalid_credentials(self) -> LoginResult:
        LOGINS.labels(outcome="invalid").inc()
        return LoginResult(
            success=False,
            message=INVALID_CREDENTIALS_MESSAGE,
            error=AuthErrorCode.invalid_credentials,
        )


def _parse_user_id(raw: Any) -> int:
    """Accept a positive int or its unsigned decimal string form."""
    if raw is None:
        raise InvalidTokenError("token is missing the userId claim")
    if isinstance(raw, bool):
        raise InvalidTokenError("token userId claim is malformed")
    if isinstance(raw, int):
        user_id = raw
    elif isinstance(raw, str) and raw.isascii() and raw.isdigit():
        user_id = int(raw)
    else:
        raise InvalidTokenError("token userId claim is malformed")
    # store identities start at 1
    if user_id < 1:
        raise InvalidTokenError("token userId claim is malformed")
    return user_id
