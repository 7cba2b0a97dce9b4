"""Issuing and validating the service's bearer JWTs."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

import jwt

from ..domain.account import Account
from ..domain.errors import InvalidTokenError

_REQUIRED_CLAIMS = ["userId", "iat", "exp", "iss"]


@dataclass(slots=True, frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


class TokenIssuer:
    """Signs and verifies time-bounded identity tokens.

    One instance is built from settings when the application starts and is
    shared read-only by every request; the key and algorithm never change
    for the lifetime of the process.

    Parameters
    ----------
    secret:
        HMAC key used to sign tokens.
    ttl_seconds:
        Validity window measured from issuance.
    issuer:
        Value written to and required in the ``iss`` claim.
    algorithm:
        JWS algorithm, ``HS256`` by default.
    clock:
        Callable returning the current UNIX time; ``time.time`` unless overridden.
    """

    __slots__ = ("_secret", "_ttl", "_issuer", "_algorithm", "_clock")

    def __init__(
        self,
        *,
        secret: str,
        ttl_seconds: int,
        issuer: str,
        algorithm: str = "HS256",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        if ttl_seconds <= 0:
            raise ValueError("token ttl must be positive")
        self._secret = secret
        self._ttl = ttl_seconds
        self._issuer = issuer
        self._algorithm = algorithm
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def _now(self) -> int:
        return int(self._clock())

    def expiry(self) -> datetime:
        """Return the expiry a token issued right now would carry."""
        return datetime.fromtimestamp(self._now() + self._ttl, tz=timezone.utc)

    def issue(self, account: Account) -> IssuedToken:
        """Create a signed JWT carrying the account's identity claims."""
        now = self._now()
        expires_at = now + self._ttl
        payload: dict[str, Any] = {
            "iss": self._issuer,
            "userId": str(account.user_id),
            "email": account.email,
            "name": account.display_name,
            "iat": now,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return IssuedToken(token=token, expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc))

    def verify(self, token: str) -> dict[str, Any]:
        """Decode ``token`` and return its claims.

        Raises
        ------
        InvalidTokenError
            When the signature or issuer does not match, a required claim is
            missing, or the current time is at or past ``exp``.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={"require": _REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
        except jwt.PyJWTError as exc:
            raise InvalidTokenError("invalid token") from exc

        try:
            expires_at = int(claims["exp"])
        except (TypeError, ValueError) as exc:
            raise InvalidTokenError("invalid token") from exc
        # expiry is checked against the injected clock rather than PyJWT's
        if self._now() >= expires_at:
            raise InvalidTokenError("token expired")
        return claims
