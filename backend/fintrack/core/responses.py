"""Response envelope models.

Success bodies use {"data": ...}, errors use {"error": {...}}.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Standard response envelope for single resources.

    All success responses use {"data": ...} envelope.

    Usage:
        @router.get("/session")
        async def get_session(...) -> DataResponse[Session]:
            return DataResponse(data=session)
    """

    data: T


class ErrorDetail(BaseModel):
    """Error detail for response body.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        details: Optional list of field-level errors (for validation).
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope.

    All errors use {"error": {...}} envelope.

    Usage in exception handlers:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=ErrorDetail(code=exc.code, message=exc.message)
            ).model_dump(),
        )
    """

    error: ErrorDetail


class ActionResult(BaseModel):
    """Outcome of an auth action: ``{"success": true}`` or ``{"error": msg}``.

    ``code`` carries the machine-readable error code on failure.
    ``status_code`` is the HTTP status the action maps to; it is not part
    of the serialized body.
    """

    success: bool | None = None
    error: str | None = None
    code: str | None = None
    status_code: int = Field(200, exclude=True)

    @classmethod
    def ok(cls) -> "ActionResult":
        return cls(success=True)

    @classmethod
    def failure(cls, message: str, *, code: str, status_code: int) -> "ActionResult":
        return cls(error=message, code=code, status_code=status_code)

    @property
    def is_success(self) -> bool:
        return bool(self.success)
