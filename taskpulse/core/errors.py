"""Error types and structured error responses."""

from enum import Enum

from pydantic import BaseModel


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Analytics errors
    ERR_AGGREGATION_FAILED = "ERR_AGGREGATION_FAILED"
    ERR_STATISTICS_FAILED = "ERR_STATISTICS_FAILED"

    # Listing errors
    ERR_LISTING_FAILED = "ERR_LISTING_FAILED"

    # Task errors
    ERR_TASK_UPDATE_FAILED = "ERR_TASK_UPDATE_FAILED"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Fixed-message error payload returned by the HTTP layer."""

    code: str
    message: str
    severity: ErrorSeverity = ErrorSeverity.MEDIUM


class TaskPulseError(Exception):
    """Base class for errors raised by taskpulse services."""

    code: str = ErrorCode.ERR_UNKNOWN


class AggregationError(TaskPulseError):
    """Raised when per-user rollups cannot be computed."""

    code = ErrorCode.ERR_AGGREGATION_FAILED


class StatisticsError(TaskPulseError):
    """Raised when task statistics cannot be computed."""

    code = ErrorCode.ERR_STATISTICS_FAILED


class ListingError(TaskPulseError):
    """Raised when a task listing page cannot be fetched."""

    code = ErrorCode.ERR_LISTING_FAILED


class TaskUpdateError(TaskPulseError):
    """Raised when the task update collaborator rejects or fails a write."""

    code = ErrorCode.ERR_TASK_UPDATE_FAILED


class InvalidTransitionError(TaskPulseError, ValueError):
    """Raised when a task update would break the task lifecycle."""

    code = ErrorCode.ERR_INVALID_STATE_TRANSITION


def error_response_for(exception: Exception, message: str) -> ErrorResponse:
    """Build the fixed-message response for an exception.

    The exception only selects the code and severity; its text never reaches the caller.
    """
    if isinstance(exception, TaskPulseError):
        severity = ErrorSeverity.LOW if isinstance(exception, InvalidTransitionError) else ErrorSeverity.HIGH
        return ErrorResponse(code=exception.code, message=message, severity=severity)

    return ErrorResponse(code=ErrorCode.ERR_UNKNOWN, message=message, severity=ErrorSeverity.HIGH)
