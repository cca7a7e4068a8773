"""Authentication endpoints.

Register, confirm email, login, logout and the forgot/reset password flow.
Routes only translate HTTP to AuthService calls and AuthResult failures
back to APIError; all decisions live in the service.

Security considerations:
- login: identical 401 for unknown email and wrong password
- forgot-password: identical 200 for unknown and known email
- register/login/forgot-password/reset-password are rate limited per IP
"""

from collections.abc import Callable

from fastapi import APIRouter, Query, Request
from pydantic import ConfigDict, EmailStr, Field

from app.api.deps import AuthServiceDep, CurrentClaims
from app.core.config import settings
from app.core.errors import (
    APIError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from app.core.rate_limiting import limiter
from app.core.responses import CamelModel, MessageResponse
from app.services.auth_service import AuthErrorKind, AuthResult

router = APIRouter()


# ===================================================================
# Request models
# ===================================================================


class RegisterRequest(CamelModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    confirm_password: str = Field(min_length=1, max_length=128)
    full_name: str | None = Field(None, max_length=200)


class LoginRequest(CamelModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class ForgotPasswordRequest(CamelModel):
    """Request body for POST /auth/forgot-password."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class ResetPasswordRequest(CamelModel):
    """Request body for POST /auth/reset-password."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    token: str = Field(min_length=1, max_length=1024)
    new_password: str = Field(min_length=1, max_length=128)
    confirm_password: str = Field(min_length=1, max_length=128)


# ===================================================================
# Response models
# ===================================================================


class RegisterResponse(MessageResponse):
    user_id: str


class LoginResponse(MessageResponse):
    access_token: str
    user_id: str
    email: str


# ===================================================================
# Failure mapping
# ===================================================================

_FAILURE_ERRORS: dict[AuthErrorKind, Callable[[str], APIError]] = {
    AuthErrorKind.VALIDATION: ValidationError,
    AuthErrorKind.PASSWORD_MISMATCH: lambda m: ValidationError(
        m, code="PASSWORD_MISMATCH"
    ),
    AuthErrorKind.DUPLICATE_EMAIL: lambda m: ValidationError(
        m, code="DUPLICATE_EMAIL"
    ),
    AuthErrorKind.INVALID_CREDENTIALS: lambda m: UnauthorizedError(
        m, code="INVALID_CREDENTIALS"
    ),
    AuthErrorKind.INVALID_TOKEN: lambda m: ValidationError(m, code="INVALID_TOKEN"),
    AuthErrorKind.INVALID_OR_EXPIRED_TOKEN: lambda m: ValidationError(
        m, code="INVALID_TOKEN"
    ),
    AuthErrorKind.INVALID_EMAIL: lambda m: ValidationError(m, code="INVALID_EMAIL"),
    AuthErrorKind.USER_NOT_FOUND: lambda _m: NotFoundError(
        "User", code="USER_NOT_FOUND"
    ),
    AuthErrorKind.EMAIL_NOT_CONFIRMED: lambda m: ForbiddenError(
        m, code="EMAIL_NOT_CONFIRMED"
    ),
    AuthErrorKind.EMAIL_SERVICE_UNAVAILABLE: lambda m: ServiceUnavailableError(
        m, code="EMAIL_SERVICE_UNAVAILABLE"
    ),
    AuthErrorKind.UNEXPECTED: InternalError,
}


def _raise_for_failure(result: AuthResult) -> None:
    """Raise the APIError matching a failed AuthResult; no-op on success."""
    if result.error is not None:
        raise _FAILURE_ERRORS[result.error](result.message)


# ===================================================================
# POST /auth/register
# ===================================================================


@router.post("/register")
@limiter.limit(lambda: settings.rate_limit_register)
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    auth: AuthServiceDep,
) -> RegisterResponse:
    """Register a new account and send a confirmation email.

    The account can log in right away unless REQUIRE_CONFIRMED_EMAIL is
    set. Email delivery failures do not fail registration.

    Rate limit: 3 per hour per IP.
    """
    result = await auth.register(
        body.email, body.password, body.confirm_password, body.full_name
    )
    _raise_for_failure(result)
    return RegisterResponse(message=result.message, user_id=result.user_id)


# ===================================================================
# GET /auth/confirm-email
# ===================================================================


@router.get("/confirm-email")
async def confirm_email(
    auth: AuthServiceDep,
    user_id: str = Query("", alias="userId", max_length=64),
    code: str = Query("", max_length=1024),
) -> MessageResponse:
    """Confirm an email address from the link sent at registration."""
    result = await auth.confirm_email(user_id, code)
    _raise_for_failure(result)
    return MessageResponse(message=result.message)


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
@limiter.limit(lambda: settings.rate_limit_login)
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    auth: AuthServiceDep,
) -> LoginResponse:
    """Exchange email + password for a bearer token.

    Security: unknown email and wrong password return the same 401 body.

    Rate limit: 5 per 15 minutes per IP.
    """
    result = await auth.login(body.email, body.password)
    _raise_for_failure(result)
    return LoginResponse(
        message=result.message,
        access_token=result.access_token,
        user_id=result.user_id,
        email=result.email,
    )


# ===================================================================
# POST /auth/logout
# ===================================================================


@router.post("/logout")
async def logout(claims: CurrentClaims, auth: AuthServiceDep) -> MessageResponse:
    """Acknowledge logout for a valid bearer token.

    The token is not revoked; the client discards it.
    """
    result = await auth.logout(claims)
    return MessageResponse(message=result.message)


# ===================================================================
# POST /auth/forgot-password
# ===================================================================


@router.post("/forgot-password")
@limiter.limit(lambda: settings.rate_limit_password_reset)
async def forgot_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ForgotPasswordRequest,
    auth: AuthServiceDep,
) -> MessageResponse:
    """Email a password reset link.

    Security: same 200 response whether or not the account exists.
    Returns 503 only when the email provider fails for an existing
    account (unless MASK_FORGOT_PASSWORD_EMAIL_ERRORS is set).

    Rate limit: 5 per hour per IP.
    """
    result = await auth.forgot_password(body.email)
    _raise_for_failure(result)
    return MessageResponse(message=result.message)


# ===================================================================
# GET /auth/validate-reset-token
# ===================================================================


@router.get("/validate-reset-token")
async def validate_reset_token(
    auth: AuthServiceDep,
    email: str = Query("", max_length=255),
    code: str = Query("", max_length=1024),
) -> MessageResponse:
    """Check a reset link before showing the new-password form."""
    result = await auth.validate_reset_token(email, code)
    _raise_for_failure(result)
    return MessageResponse(message=result.message)


# ===================================================================
# POST /auth/reset-password
# ===================================================================


@router.post("/reset-password")
@limiter.limit(lambda: settings.rate_limit_password_reset)
async def reset_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ResetPasswordRequest,
    auth: AuthServiceDep,
) -> MessageResponse:
    """Set a new password using the token from the reset email.

    Invalidates every outstanding reset and confirmation link for the
    account. Issued bearer tokens stay valid until they expire.

    Rate limit: 5 per hour per IP.
    """
    result = await auth.reset_password(
        body.email, body.token, body.new_password, body.confirm_password
    )
    _raise_for_failure(result)
    return MessageResponse(message=result.message)
