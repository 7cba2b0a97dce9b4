"""HTTP route definitions for the identity service."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, EmailStr, Field, model_validator

from ..domain.contracts import Identity, LoginResult, RegisterResult
from ..domain.errors import AuthErrorCode, InternalError, InvalidTokenError
from ..domain.service import AuthService
from ..security.tokens import TokenIssuer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])

_bearer_scheme = HTTPBearer(auto_error=False)


class RegisterRequest(BaseModel):
    """Payload accepted when registering a new account."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    confirm_password: str

    @model_validator(mode="after")
    def _check_consistency(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("passwords do not match")
        if not self.name.strip():
            raise ValueError("name must not be blank")
        if len(self.email) > 255:
            raise ValueError("email must be at most 255 characters")
        return self


class LoginRequest(BaseModel):
    """Credentials submitted to obtain a bearer token."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)


class RegisterResponse(BaseModel):
    """Outcome of a registration attempt."""

    success: bool
    message: str
    user_id: int | None = None
    email: str | None = None
    name: str | None = None

    @classmethod
    def from_domain(cls, result: RegisterResult) -> "RegisterResponse":
        return cls(
            success=result.success,
            message=result.message,
            user_id=result.user_id,
            email=result.email,
            name=result.name,
        )


class LoginResponse(BaseModel):
    """Outcome of a login attempt; token fields are set only on success."""

    success: bool
    message: str
    token: str | None = None
    token_type: str | None = None
    user_id: int | None = None
    email: str | None = None
    name: str | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_domain(cls, result: LoginResult) -> "LoginResponse":
        return cls(
            success=result.success,
            message=result.message,
            token=result.token,
            token_type="bearer" if result.token else None,
            user_id=result.user_id,
            email=result.email,
            name=result.name,
            expires_at=result.expires_at,
        )


class IdentityResponse(BaseModel):
    """Identity of the caller as carried by its bearer token."""

    success: bool = True
    user_id: int
    email: str
    name: str | None = None

    @classmethod
    def from_domain(cls, identity: Identity) -> "IdentityResponse":
        return cls(user_id=identity.user_id, email=identity.email, name=identity.name)


class MessageResponse(BaseModel):
    success: bool
    message: str


def get_service(request: Request) -> AuthService:
    """Resolve the `AuthService` stored on the FastAPI application state."""
    service: AuthService = request.app.state.auth_service
    return service


def get_token_issuer(request: Request) -> TokenIssuer:
    """Resolve the process-wide `TokenIssuer` stored on the application state."""
    issuer: TokenIssuer = request.app.state.token_issuer
    return issuer


def get_token_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> dict[str, Any]:
    """Verify the bearer token and return its claims, answering 401 otherwise."""
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized
    try:
        return issuer.verify(credentials.credentials)
    except InvalidTokenError as exc:
        logger.info("rejected bearer token: %s", exc)
        raise unauthorized from exc


_REGISTER_STATUS = {
    AuthErrorCode.duplicate_email: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.internal_error: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_LOGIN_STATUS = {
    AuthErrorCode.invalid_credentials: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.internal_error: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": RegisterResponse}, 500: {"model": RegisterResponse}},
)
def register(
    payload: RegisterRequest,
    service: AuthService = Depends(get_service),
) -> RegisterResponse | JSONResponse:
    """Register an account; the caller must log in separately to get a token."""
    result = service.register(payload.name, payload.email, payload.password, payload.confirm_password)
    body = RegisterResponse.from_domain(result)
    if not result.success:
        status_code = _REGISTER_STATUS.get(result.error, status.HTTP_400_BAD_REQUEST)
        return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
    return body


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": LoginResponse}, 500: {"model": LoginResponse}},
)
def login(
    payload: LoginRequest,
    service: AuthService = Depends(get_service),
) -> LoginResponse | JSONResponse:
    """Exchange email/password for a signed bearer token."""
    result = service.login(payload.email, payload.password)
    body = LoginResponse.from_domain(result)
    if not result.success:
        status_code = _LOGIN_STATUS.get(result.error, status.HTTP_401_UNAUTHORIZED)
        return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
    return body


@router.delete(
    "/user",
    response_model=MessageResponse,
    responses={400: {"model": MessageResponse}, 404: {"model": MessageResponse}},
)
def delete_user(
    claims: dict[str, Any] = Depends(get_token_claims),
    service: AuthService = Depends(get_service),
) -> MessageResponse | JSONResponse:
    """Soft-delete the account identified by the bearer token."""
    try:
        identity = service.get_current_identity(claims)
    except InvalidTokenError:
        return _message(status.HTTP_400_BAD_REQUEST, "user could not be identified")
    try:
        deleted = service.delete_account(identity.user_id)
    except InternalError as exc:
        return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    if not deleted:
        return _message(status.HTTP_404_NOT_FOUND, "user not found or already deleted")
    return MessageResponse(success=True, message="user deleted successfully")


@router.get(
    "/me",
    response_model=IdentityResponse,
    responses={400: {"model": MessageResponse}},
)
def current_user(
    claims: dict[str, Any] = Depends(get_token_claims),
    service: AuthService = Depends(get_service),
) -> IdentityResponse | JSONResponse:
    """Return the identity carried by the bearer token without touching the store."""
    try:
        identity = service.get_current_identity(claims)
    except InvalidTokenError:
        return _message(status.HTTP_400_BAD_REQUEST, "invalid token")
    return IdentityResponse.from_domain(identity)


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=MessageResponse(success=False, message=message).model_dump(),
    )
