"""Rate limiting configuration using slowapi.

Security: Slows down credential stuffing on login and abuse of the
email-sending endpoints (register, forgot-password).

Requests carrying a valid bearer token are keyed on the token subject
(per-user) so users behind a shared IP don't throttle each other.
Everything else is keyed on the client IP.

Usage in routers:
    from app.core.rate_limiting import limiter

    @router.post("/login")
    @limiter.limit(lambda: settings.rate_limit_login)
    async def login(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.core.access_tokens import AccessTokenIssuer, TokenError
from app.core.config import settings
from app.core.responses import ErrorResponse

_BEARER_PREFIX = "bearer "


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - Valid bearer token: "user:{sub}"
    - No/invalid token: "unauth:{ip}"

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    header = request.headers.get("authorization", "")
    if header.lower().startswith(_BEARER_PREFIX):
        claims = AccessTokenIssuer.from_settings(settings).validate(
            header[len(_BEARER_PREFIX) :].strip()
        )
        if not isinstance(claims, TokenError):
            return f"user:{claims.sub}"

    return f"unauth:{get_remote_address(request)}"


# Global limiter instance
# Configured with in-memory storage (suitable for single-instance deployment)
# For multi-instance, configure Redis storage via RATELIMIT_STORAGE_URL
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Security: Returns 429 Too Many Requests with standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Window length of the exceeded limit ("5/15minute" -> 900); the
    # counter for a fixed window resets within that many seconds.
    try:
        retry_after = str(int(exc.limit.limit.get_expiry()))
    except (AttributeError, TypeError, ValueError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content=ErrorResponse(
            code="RATE_LIMITED",
            message=f"Rate limit exceeded: {exc.detail}",
        ).model_dump(by_alias=True),
        headers={"Retry-After": retry_after},
    )
