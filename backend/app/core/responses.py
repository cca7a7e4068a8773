"""Response envelope models.

Every auth endpoint answers with a ``{"success": ..., "message": ...}``
body. Success payloads add their own fields; errors add a machine-readable
code and optional field-level details.

JSON keys are camelCase to match the single-page client.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that serializes field names as camelCase.

    Accepts both snake_case and camelCase on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class MessageResponse(CamelModel):
    """Standard success envelope.

    Usage:
        @router.post("/logout")
        async def logout(...) -> MessageResponse:
            return MessageResponse(message="Logged out successfully.")
    """

    success: bool = True
    message: str


class ErrorResponse(CamelModel):
    """Standard error envelope.

    Usage in exception handlers:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                code=exc.code, message=exc.message
            ).model_dump(by_alias=True),
        )

    Attributes:
        success: Always False.
        code: Machine-readable error code (e.g., "INVALID_TOKEN").
        message: Human-readable error message.
        details: Optional list of field-level errors (for validation).
    """

    success: bool = False
    code: str
    message: str
    details: list[dict] | None = None
