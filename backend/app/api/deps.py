"""Shared dependencies for API endpoints.

Wires the auth collaborators (hasher, token services, email sender,
credential store) into an AuthService per request, and validates bearer
tokens for authenticated routes.

Tests swap any collaborator through app.dependency_overrides.
"""

from typing import Annotated

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access_tokens import AccessTokenClaims, AccessTokenIssuer, TokenError
from app.core.config import settings
from app.core.database import get_db
from app.core.email import EmailSender, get_email_sender
from app.core.errors import UnauthorizedError
from app.core.passwords import PasswordHasher
from app.core.purpose_tokens import PurposeTokenService
from app.repositories.credential_store import SqlCredentialStore
from app.services.auth_service import AuthPolicy, AuthService

logger = structlog.get_logger()

# auto_error=False: a missing header must produce our 401 envelope,
# not FastAPI's default 403.
_bearer_scheme = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=settings.password_hash_rounds)


def get_access_token_issuer() -> AccessTokenIssuer:
    return AccessTokenIssuer.from_settings(settings)


def get_purpose_token_service() -> PurposeTokenService:
    return PurposeTokenService.from_settings(settings)


def get_auth_policy() -> AuthPolicy:
    return AuthPolicy.from_settings(settings)


def provide_email_sender() -> EmailSender:
    """Return the process-wide email sender."""
    return get_email_sender()


def get_auth_service(
    db: DbSession,
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    access_tokens: Annotated[AccessTokenIssuer, Depends(get_access_token_issuer)],
    purpose_tokens: Annotated[PurposeTokenService, Depends(get_purpose_token_service)],
    email_sender: Annotated[EmailSender, Depends(provide_email_sender)],
    policy: Annotated[AuthPolicy, Depends(get_auth_policy)],
) -> AuthService:
    """Build an AuthService bound to the request's database session."""
    return AuthService(
        store=SqlCredentialStore(db),
        hasher=hasher,
        access_tokens=access_tokens,
        purpose_tokens=purpose_tokens,
        email_sender=email_sender,
        policy=policy,
    )


def get_current_claims(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)
    ],
    access_tokens: Annotated[AccessTokenIssuer, Depends(get_access_token_issuer)],
) -> AccessTokenClaims:
    """Validate the bearer token on the request.

    Security: every failure (missing header, wrong scheme, bad signature,
    expired, wrong issuer/audience, malformed) yields the same 401. The
    specific reason is logged, never returned.

    Raises:
        UnauthorizedError: For any auth failure.
    """
    if credentials is None:
        raise UnauthorizedError()

    result = access_tokens.validate(credentials.credentials)
    if isinstance(result, TokenError):
        logger.info("Bearer token rejected", reason=result.value)
        raise UnauthorizedError()

    return result


# Reusable type aliases for dependency injection
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
CurrentClaims = Annotated[AccessTokenClaims, Depends(get_current_claims)]
