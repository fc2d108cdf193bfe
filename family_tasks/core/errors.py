"""Error types and classification for task store and recurrence operations."""

from enum import Enum
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError


ModelT = TypeVar("ModelT", bound=BaseModel)


class FamilyTasksError(Exception):
    """Base class for all family-tasks errors."""


class NotFoundError(FamilyTasksError):
    """A task or periodic task id does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ValidationError(FamilyTasksError):
    """Input was rejected before any mutation took place."""


class CorruptRecordError(FamilyTasksError):
    """A stored document could not be decoded."""

    def __init__(self, collection: str, doc_id: str, reason: str) -> None:
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"Corrupt record in {collection}/{doc_id}: {reason}")


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_CORRUPT_RECORD = "ERR_CORRUPT_RECORD"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    http_status: int


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, severity and HTTP status
    """
    if isinstance(exception, NotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message=str(exception),
            suggestion="Refresh the list; the item may have been deleted.",
            severity=ErrorSeverity.LOW,
            http_status=404,
        )

    if isinstance(exception, ValidationError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception),
            suggestion="Check the title, the date range and the recurrence days.",
            severity=ErrorSeverity.LOW,
            http_status=400,
        )

    if isinstance(exception, CorruptRecordError):
        return ErrorResponse(
            code=ErrorCode.ERR_CORRUPT_RECORD,
            message="A stored record could not be read.",
            suggestion="Restore the record from a backup or delete it.",
            severity=ErrorSeverity.HIGH,
            http_status=500,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, check the server logs.",
        severity=ErrorSeverity.MEDIUM,
        http_status=500,
    )


def parse_payload(model: type[ModelT], data: object) -> ModelT:
    """Validate `data` into `model`, translating pydantic errors into ValidationError.

    Raises:
        ValidationError: With a short "field: reason" summary of what was rejected
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(summarize_validation_error(e)) from e


def summarize_validation_error(error: PydanticValidationError) -> str:
    """Render a pydantic error as "field: reason; field: reason"."""
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ()))
        reason = str(item.get("msg", "invalid value")).removeprefix("Value error, ")
        parts.append(f"{location}: {reason}" if location else reason)
    return "; ".join(parts)
