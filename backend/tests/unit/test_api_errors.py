"""Tests for API error classes.

Each error carries a code, a message and the HTTP status the global
handler returns.
"""

from app.core.errors import (
    APIError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
    ValidationError,
)


class TestAPIError:
    """Tests for the base APIError class."""

    def test_api_error_has_required_attributes(self):
        """APIError stores code, message, status and details."""
        error = APIError(
            code="TEST_ERROR",
            message="Test message",
            status_code=418,
            details=[{"field": "email"}],
        )
        assert error.code == "TEST_ERROR"
        assert error.message == "Test message"
        assert error.status_code == 418
        assert error.details == [{"field": "email"}]

    def test_api_error_defaults_to_500(self):
        """APIError defaults to 500 status."""
        error = APIError(code="X", message="y")
        assert error.status_code == 500
        assert error.details is None

    def test_api_error_is_exception(self):
        """APIError can be raised and its message is the str()."""
        error = APIError(code="X", message="Something broke")
        assert isinstance(error, Exception)
        assert str(error) == "Something broke"


class TestValidationError:
    """Tests for ValidationError."""

    def test_validation_error_defaults(self):
        """ValidationError is 400 VALIDATION_ERROR."""
        error = ValidationError("Invalid input")
        assert error.status_code == 400
        assert error.code == "VALIDATION_ERROR"

    def test_validation_error_custom_code(self):
        """A specific code can replace VALIDATION_ERROR."""
        error = ValidationError("Passwords do not match.", code="PASSWORD_MISMATCH")
        assert error.code == "PASSWORD_MISMATCH"
        assert error.status_code == 400

    def test_validation_error_with_details(self):
        """ValidationError carries field details."""
        details = [{"loc": ["body", "email"], "msg": "bad", "type": "value_error"}]
        error = ValidationError("Invalid input", details=details)
        assert error.details == details


class TestUnauthorizedError:
    """Tests for UnauthorizedError."""

    def test_unauthorized_error_defaults(self):
        """UnauthorizedError is a vague 401."""
        error = UnauthorizedError()
        assert error.status_code == 401
        assert error.code == "UNAUTHORIZED"
        assert error.message == "Authentication required"

    def test_unauthorized_error_custom(self):
        error = UnauthorizedError("Invalid email or password.", code="INVALID_CREDENTIALS")
        assert error.code == "INVALID_CREDENTIALS"
        assert error.message == "Invalid email or password."


class TestForbiddenError:
    """Tests for ForbiddenError."""

    def test_forbidden_error_has_403_status(self):
        error = ForbiddenError("Confirm first", code="EMAIL_NOT_CONFIRMED")
        assert error.status_code == 403
        assert error.code == "EMAIL_NOT_CONFIRMED"


class TestNotFoundError:
    """Tests for NotFoundError."""

    def test_not_found_message_names_resource(self):
        """Message is built from the resource name."""
        error = NotFoundError("User", code="USER_NOT_FOUND")
        assert error.status_code == 404
        assert error.code == "USER_NOT_FOUND"
        assert error.message == "User not found."


class TestServiceUnavailableError:
    """Tests for ServiceUnavailableError."""

    def test_service_unavailable_has_503_status(self):
        error = ServiceUnavailableError()
        assert error.status_code == 503
        assert error.code == "SERVICE_UNAVAILABLE"


class TestInternalError:
    """Tests for InternalError."""

    def test_internal_error_defaults(self):
        error = InternalError()
        assert error.status_code == 500
        assert error.code == "INTERNAL_ERROR"
        assert error.message == "An unexpected error occurred"
