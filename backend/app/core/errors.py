"""API error classes.

WHY CUSTOM ERROR CLASSES:
- Consistent error response format across all endpoints
- Easy to map to HTTP status codes in exception handlers
- Auth failures stay deliberately vague (no account enumeration)
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "INVALID_TOKEN").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, password policy failures,
    mismatched confirmation fields, etc. Pass a custom code for more
    specific conditions (e.g., "PASSWORD_MISMATCH").
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
        code: str = "VALIDATION_ERROR",
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required or credentials rejected (401).

    Security: Same message for unknown email and wrong password.
    """

    def __init__(
        self,
        message: str = "Authentication required",
        code: str = "UNAUTHORIZED",
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=401,
        )


class ForbiddenError(APIError):
    """Not allowed to proceed (403).

    Use when credentials are valid but the account may not sign in yet.
    """

    def __init__(self, message: str = "Access denied", code: str = "FORBIDDEN") -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=403,
        )


class NotFoundError(APIError):
    """Resource not found (404).

    Only the email confirmation link uses this. Password reset endpoints
    answer 400 for unknown accounts instead.
    """

    def __init__(self, resource: str, code: str = "NOT_FOUND") -> None:
        super().__init__(
            code=code,
            message=f"{resource} not found.",
            status_code=404,
        )


class ServiceUnavailableError(APIError):
    """Infrastructure dependency unavailable (503).

    Use for transport failures of external services (email provider).
    Never use for conditions that depend on whether an account exists.
    """

    def __init__(
        self,
        message: str = "Service temporarily unavailable. Please try again later.",
        code: str = "SERVICE_UNAVAILABLE",
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=503,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
