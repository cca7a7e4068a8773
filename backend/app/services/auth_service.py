"""Authentication workflow service.

Sequences the credential store, password hasher, bearer token issuer,
purpose token service and email sender into the account lifecycle:

    register -> confirm_email -> login -> logout
    forgot_password -> validate_reset_token -> reset_password

Expected failures (bad password, duplicate email, stale token, ...) come
back as an AuthResult carrying an AuthErrorKind. Unexpected collaborator
exceptions are logged and returned as AuthErrorKind.UNEXPECTED, so nothing
raw ever reaches the HTTP layer.

Anti-enumeration rules:
- login answers identically for unknown email and wrong password
- forgot_password answers identically for unknown and known email; only an
  email transport failure (after the account lookup) is reported
  differently, and mask_forgot_password_email_errors flattens even that
"""

import functools
import html
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Concatenate, ParamSpec, Protocol
from urllib.parse import quote, urlencode

import structlog

from app.core.access_tokens import AccessTokenClaims, AccessTokenIssuer
from app.core.config import Settings
from app.core.email import EmailDeliveryError, EmailError, EmailSender
from app.core.logging import sanitize_for_log
from app.core.passwords import PasswordHasher, password_policy_errors
from app.core.purpose_tokens import PurposeTokenService, TokenPurpose
from app.models.user import User

logger = structlog.get_logger()

P = ParamSpec("P")

# =============================================================================
# Messages
# =============================================================================

_PASSWORD_MISMATCH_MSG = "Passwords do not match."  # nosec B105
_DUPLICATE_EMAIL_MSG = "Registration failed: an account with this email already exists."
_INVALID_CREDENTIALS_MSG = "Invalid email or password."
_INVALID_EMAIL_MSG = "Invalid email address."
_INVALID_RESET_TOKEN_MSG = (  # nosec B105
    "Password reset link is invalid or has expired. Please request a new one."
)
_FORGOT_PASSWORD_MSG = (  # nosec B105
    "If an account with that email exists, "
    "you will receive a password reset email shortly."
)
_EMAIL_UNAVAILABLE_MSG = (
    "Email service is currently unavailable. Please try again in a few minutes."
)


# =============================================================================
# Result types
# =============================================================================


class AuthErrorKind(Enum):
    """Why an auth operation did not succeed."""

    VALIDATION = "validation"
    PASSWORD_MISMATCH = "password_mismatch"
    DUPLICATE_EMAIL = "duplicate_email"
    USER_NOT_FOUND = "user_not_found"
    INVALID_TOKEN = "invalid_token"
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    INVALID_EMAIL = "invalid_email"
    INVALID_OR_EXPIRED_TOKEN = "invalid_or_expired_token"
    EMAIL_SERVICE_UNAVAILABLE = "email_service_unavailable"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class AuthResult:
    """Outcome of an auth operation.

    Attributes:
        message: User-facing message. Never contains internal detail.
        error: None on success, otherwise the failure kind.
        user_id: Set by register and login.
        email: Set by login.
        access_token: Bearer token, set by login.
    """

    message: str
    error: AuthErrorKind | None = None
    user_id: str | None = None
    email: str | None = None
    access_token: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, message: str, **data: str) -> "AuthResult":
        return cls(message=message, **data)

    @classmethod
    def failure(cls, error: AuthErrorKind, message: str) -> "AuthResult":
        return cls(message=message, error=error)


# =============================================================================
# Collaborators
# =============================================================================


class CredentialStore(Protocol):
    """Persistence for user accounts."""

    async def find_by_email(self, email: str) -> User | None: ...

    async def find_by_id(self, user_id: str) -> User | None: ...

    async def create(
        self, *, email: str, password_hash: str, full_name: str | None
    ) -> User | None:
        """Insert an account; None when the email is already taken."""
        ...

    async def update_password(self, user_id: str, password_hash: str) -> User | None:
        """Store a new hash and rotate the security stamp."""
        ...

    async def confirm_email(self, user_id: str) -> User | None: ...


@dataclass(frozen=True)
class AuthPolicy:
    """Tunable behavior of the auth workflow.

    Attributes:
        backend_url: Base URL for email confirmation links.
        frontend_url: Base URL for password reset links.
        access_token_ttl: Bearer token lifetime.
        password_min_length: Minimum password length.
        require_confirmed_email: Refuse login until the email is confirmed.
        mask_forgot_password_email_errors: Report email failures in
            forgot_password as the generic success message.
    """

    backend_url: str = "http://localhost:8000"
    frontend_url: str = "http://localhost:5160"
    access_token_ttl: timedelta = timedelta(minutes=60)
    password_min_length: int = 6
    require_confirmed_email: bool = False
    mask_forgot_password_email_errors: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthPolicy":
        return cls(
            backend_url=settings.backend_url.rstrip("/"),
            frontend_url=settings.frontend_url.rstrip("/"),
            access_token_ttl=timedelta(minutes=settings.access_token_ttl_minutes),
            password_min_length=settings.password_min_length,
            require_confirmed_email=settings.require_confirmed_email,
            mask_forgot_password_email_errors=settings.mask_forgot_password_email_errors,
        )


def _operation_boundary(
    failure_message: str,
) -> Callable[
    [Callable[Concatenate["AuthService", P], Awaitable[AuthResult]]],
    Callable[Concatenate["AuthService", P], Awaitable[AuthResult]],
]:
    """Turn unexpected exceptions into an UNEXPECTED result.

    The exception is logged with its traceback; the caller only sees
    failure_message.
    """

    def decorator(
        func: Callable[Concatenate["AuthService", P], Awaitable[AuthResult]],
    ) -> Callable[Concatenate["AuthService", P], Awaitable[AuthResult]]:
        @functools.wraps(func)
        async def wrapper(
            self: "AuthService", *args: P.args, **kwargs: P.kwargs
        ) -> AuthResult:
            try:
                return await func(self, *args, **kwargs)
            except Exception:
                logger.exception("Auth operation failed", operation=func.__name__)
                return AuthResult.failure(AuthErrorKind.UNEXPECTED, failure_message)

        return wrapper

    return decorator


# =============================================================================
# Service
# =============================================================================


class AuthService:
    """Auth workflow orchestrator.

    Stateless between calls; build one per request with that request's
    credential store.
    """

    def __init__(
        self,
        *,
        store: CredentialStore,
        hasher: PasswordHasher,
        access_tokens: AccessTokenIssuer,
        purpose_tokens: PurposeTokenService,
        email_sender: EmailSender,
        policy: AuthPolicy | None = None,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.access_tokens = access_tokens
        self.purpose_tokens = purpose_tokens
        self.email_sender = email_sender
        self.policy = policy or AuthPolicy()

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    @_operation_boundary("An error occurred during registration.")
    async def register(
        self,
        email: str,
        password: str,
        confirm_password: str,
        full_name: str | None = None,
    ) -> AuthResult:
        """Create an unconfirmed account and send the confirmation link.

        Email delivery problems are logged only; the account exists either
        way and the caller gets the same success result.
        """
        if password != confirm_password:
            return AuthResult.failure(
                AuthErrorKind.PASSWORD_MISMATCH, _PASSWORD_MISMATCH_MSG
            )

        problems = password_policy_errors(password, self.policy.password_min_length)
        if problems:
            return AuthResult.failure(
                AuthErrorKind.VALIDATION, f"Registration failed: {' '.join(problems)}"
            )

        normalized = email.strip().lower()
        if await self.store.find_by_email(normalized) is not None:
            logger.warning(
                "Registration rejected: email already registered",
                email=sanitize_for_log(normalized),
            )
            return AuthResult.failure(
                AuthErrorKind.DUPLICATE_EMAIL, _DUPLICATE_EMAIL_MSG
            )

        user = await self.store.create(
            email=normalized,
            password_hash=self.hasher.hash(password),
            full_name=(full_name or "").strip() or normalized,
        )
        if user is None:
            # Lost a concurrent registration race on the unique constraint
            logger.warning(
                "Registration rejected: concurrent duplicate",
                email=sanitize_for_log(normalized),
            )
            return AuthResult.failure(
                AuthErrorKind.DUPLICATE_EMAIL, _DUPLICATE_EMAIL_MSG
            )

        await self._send_confirmation_email(user)

        logger.info("User registered", user_id=user.id)
        return AuthResult.ok(
            "Registration successful. Please check your email to confirm your account.",
            user_id=user.id,
        )

    async def _send_confirmation_email(self, user: User) -> None:
        code = self.purpose_tokens.generate(user, TokenPurpose.EMAIL_CONFIRMATION)
        params = urlencode({"userId": user.id, "code": code}, quote_via=quote)
        link = f"{self.policy.backend_url}/api/auth/confirm-email?{params}"
        body = (
            "<h2>Welcome to SheroShayari!</h2>"
            "<p>Thank you for registering. Please confirm your email by "
            "clicking the link below:</p>"
            f"<p><a href='{html.escape(link, quote=True)}'>Confirm Email</a></p>"
            "<p>If you did not register, please ignore this email.</p>"
        )
        try:
            await self.email_sender.send_email(user.email, "Confirm your email", body)
        except Exception:
            logger.warning(
                "Confirmation email not sent", user_id=user.id, exc_info=True
            )

    @_operation_boundary("An error occurred during email confirmation.")
    async def confirm_email(self, user_id: str, code: str) -> AuthResult:
        """Mark an account confirmed if the code matches."""
        if not user_id.strip() or not code.strip():
            return AuthResult.failure(
                AuthErrorKind.VALIDATION, "Invalid email confirmation request."
            )

        user = await self.store.find_by_id(user_id)
        if user is None:
            return AuthResult.failure(AuthErrorKind.USER_NOT_FOUND, "User not found.")

        if not self.purpose_tokens.verify(user, TokenPurpose.EMAIL_CONFIRMATION, code):
            logger.warning("Email confirmation token rejected", user_id=user.id)
            return AuthResult.failure(
                AuthErrorKind.INVALID_TOKEN, "Email confirmation failed."
            )

        await self.store.confirm_email(user.id)
        logger.info("Email confirmed", user_id=user.id)
        return AuthResult.ok("Email confirmed successfully. You can now log in.")

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    @_operation_boundary("An error occurred during login.")
    async def login(self, email: str, password: str) -> AuthResult:
        """Check credentials and issue a bearer token.

        Security: unknown email and wrong password produce the same result,
        and both pay for one bcrypt comparison.
        """
        user = await self.store.find_by_email(email)

        if user is None:
            self.hasher.verify_dummy(password)
            logger.warning("Failed login attempt", email=sanitize_for_log(email))
            return AuthResult.failure(
                AuthErrorKind.INVALID_CREDENTIALS, _INVALID_CREDENTIALS_MSG
            )

        if not self.hasher.verify(password, user.password_hash):
            logger.warning("Failed login attempt", email=sanitize_for_log(email))
            return AuthResult.failure(
                AuthErrorKind.INVALID_CREDENTIALS, _INVALID_CREDENTIALS_MSG
            )

        if self.policy.require_confirmed_email and not user.email_confirmed:
            return AuthResult.failure(
                AuthErrorKind.EMAIL_NOT_CONFIRMED,
                "Please confirm your email before logging in.",
            )

        token = self.access_tokens.issue(
            user.id,
            user.email,
            user.full_name or user.email,
            ttl=self.policy.access_token_ttl,
        )
        logger.info("User logged in", user_id=user.id)
        return AuthResult.ok(
            "Login successful.",
            access_token=token,
            user_id=user.id,
            email=user.email,
        )

    async def logout(self, claims: AccessTokenClaims) -> AuthResult:
        """Acknowledge a logout.

        Bearer tokens are not tracked server-side, so the token stays valid
        until it expires; the client is responsible for discarding it.
        """
        logger.info("User logged out", user_id=claims.sub)
        return AuthResult.ok("Logged out successfully.")

    # -------------------------------------------------------------------------
    # Password reset
    # -------------------------------------------------------------------------

    @_operation_boundary(
        "An error occurred while processing your request. Please try again later."
    )
    async def forgot_password(self, email: str) -> AuthResult:
        """Send a password reset link if the account exists.

        Always returns the generic message, except when the email provider
        is down for an existing account (EMAIL_SERVICE_UNAVAILABLE) and
        masking is off.
        """
        normalized = email.strip().lower()
        user = await self.store.find_by_email(normalized)
        if user is None:
            logger.info(
                "Password reset requested for unknown email",
                email=sanitize_for_log(normalized),
            )
            return AuthResult.ok(_FORGOT_PASSWORD_MSG)

        code = self.purpose_tokens.generate(user, TokenPurpose.PASSWORD_RESET)
        params = urlencode({"email": user.email, "code": code}, quote_via=quote)
        link = f"{self.policy.frontend_url}/reset-password?{params}"
        name = html.escape(user.full_name or user.email)
        body = (
            "<h2>Password Reset Request</h2>"
            f"<p>Hello {name},</p>"
            "<p>We received a request to reset your password. "
            "Click the link below to create a new password:</p>"
            f"<p><a href='{html.escape(link, quote=True)}'>Reset Password</a></p>"
            "<p>This link will expire in 24 hours.</p>"
            "<p>If you did not request a password reset, please ignore this email.</p>"
            "<p>Best regards,<br/>SheroShayari Team</p>"
        )

        try:
            await self.email_sender.send_email(
                user.email, "Reset your password - SheroShayari", body
            )
        except EmailError as exc:
            logger.error(
                "Password reset email not sent",
                user_id=user.id,
                error_type=type(exc).__name__,
            )
            if self.policy.mask_forgot_password_email_errors:
                return AuthResult.ok(_FORGOT_PASSWORD_MSG)
            if isinstance(exc, EmailDeliveryError):
                return AuthResult.failure(
                    AuthErrorKind.EMAIL_SERVICE_UNAVAILABLE, _EMAIL_UNAVAILABLE_MSG
                )
            raise

        logger.info("Password reset email sent", user_id=user.id)
        return AuthResult.ok(_FORGOT_PASSWORD_MSG)

    @_operation_boundary("Error validating token.")
    async def validate_reset_token(self, email: str, code: str) -> AuthResult:
        """Check a reset link without changing anything."""
        if not email.strip() or not code.strip():
            return AuthResult.failure(
                AuthErrorKind.VALIDATION, "Missing email or code."
            )

        user = await self.store.find_by_email(email)
        if user is None:
            return AuthResult.failure(AuthErrorKind.INVALID_EMAIL, _INVALID_EMAIL_MSG)

        if not self.purpose_tokens.verify(user, TokenPurpose.PASSWORD_RESET, code):
            logger.warning("Password reset token rejected", user_id=user.id)
            return AuthResult.failure(
                AuthErrorKind.INVALID_OR_EXPIRED_TOKEN, _INVALID_RESET_TOKEN_MSG
            )

        return AuthResult.ok("Token is valid.")

    @_operation_boundary("An error occurred during password reset.")
    async def reset_password(
        self,
        email: str,
        token: str,
        new_password: str,
        confirm_password: str,
    ) -> AuthResult:
        """Replace the password using a reset token.

        Success rotates the security stamp, so this token and every other
        outstanding purpose token for the user stop working.
        """
        if new_password != confirm_password:
            return AuthResult.failure(
                AuthErrorKind.PASSWORD_MISMATCH, _PASSWORD_MISMATCH_MSG
            )

        user = await self.store.find_by_email(email)
        if user is None:
            return AuthResult.failure(AuthErrorKind.INVALID_EMAIL, _INVALID_EMAIL_MSG)

        if not self.purpose_tokens.verify(user, TokenPurpose.PASSWORD_RESET, token):
            logger.warning("Password reset token rejected", user_id=user.id)
            return AuthResult.failure(
                AuthErrorKind.INVALID_OR_EXPIRED_TOKEN, _INVALID_RESET_TOKEN_MSG
            )

        problems = password_policy_errors(new_password, self.policy.password_min_length)
        if problems:
            return AuthResult.failure(
                AuthErrorKind.VALIDATION, f"Password reset failed: {' '.join(problems)}"
            )

        await self.store.update_password(user.id, self.hasher.hash(new_password))
        logger.info("Password reset", user_id=user.id)
        return AuthResult.ok(
            "Your password has been reset successfully. "
            "You can now log in with your new password."
        )
