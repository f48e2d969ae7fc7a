"""Exception types and user-facing error classification."""

from enum import Enum

from pydantic import BaseModel

from homekeep.core.config import constants


class HomekeepError(Exception):
    """Base class for scheduling engine errors."""


class UnsupportedFrequencyError(HomekeepError, ValueError):
    """Raised when a frequency value is not one of the known recurrence rules."""

    def __init__(self, frequency: str) -> None:
        self.frequency = frequency
        super().__init__(f"Unsupported frequency: {frequency!r}")


class InvalidStateTransitionError(HomekeepError, ValueError):
    """Raised when an occurrence is asked to leave a terminal state."""

    def __init__(self, occurrence_id: str, current: str, target: str) -> None:
        self.occurrence_id = occurrence_id
        self.current = current
        self.target = target
        super().__init__(f"Cannot move occurrence {occurrence_id} from {current} to {target}")


class DuplicateRecordError(HomekeepError, RuntimeError):
    """Raised when an insert violates a UNIQUE constraint."""


class StaleRecordError(HomekeepError):
    """Raised when a conditional update finds the row no longer in the expected state."""

    def __init__(self, collection: str, record_id: str, expected: dict[str, object]) -> None:
        self.collection = collection
        self.record_id = record_id
        self.expected = expected
        super().__init__(f"{collection} record {record_id} no longer matches {expected}")


class ErrorSeverity(Enum):
    """How loudly a failure should be surfaced."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Stable machine-readable codes returned to API clients."""

    ERR_UNSUPPORTED_FREQUENCY = "ERR_UNSUPPORTED_FREQUENCY"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"
    ERR_CONFLICT = "ERR_CONFLICT"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_INVALID_INPUT = "ERR_INVALID_INPUT"
    ERR_STORAGE = "ERR_STORAGE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Error body sent to API clients."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    status_code: int


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Map an exception to the error body and HTTP status clients should see.

    Args:
        exception: Anything raised while handling a request

    Returns:
        ErrorResponse with code, message, suggestion, severity and HTTP status
    """
    if isinstance(exception, UnsupportedFrequencyError):
        return ErrorResponse(
            code=ErrorCode.ERR_UNSUPPORTED_FREQUENCY,
            message=f"'{exception.frequency}' is not a supported frequency.",
            suggestion="Use daily, weekly, biweekly, monthly, semi_monthly, quarterly, "
            "semi_annual, annual or a seasonal_* frequency.",
            severity=ErrorSeverity.LOW,
            status_code=constants.HTTP_UNPROCESSABLE,
        )

    if isinstance(exception, InvalidStateTransitionError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_STATE_TRANSITION,
            message=f"This occurrence is already {exception.current}.",
            suggestion="Refresh today's tasks and try again.",
            severity=ErrorSeverity.LOW,
            status_code=constants.HTTP_CONFLICT,
        )

    if isinstance(exception, StaleRecordError | DuplicateRecordError):
        return ErrorResponse(
            code=ErrorCode.ERR_CONFLICT,
            message="Someone else changed this at the same time.",
            suggestion="Refresh and try again.",
            severity=ErrorSeverity.LOW,
            status_code=constants.HTTP_CONFLICT,
        )

    if isinstance(exception, KeyError):
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message="The requested task or occurrence was not found.",
            suggestion="It may have been removed. Refresh and try again.",
            severity=ErrorSeverity.LOW,
            status_code=constants.HTTP_NOT_FOUND,
        )

    if isinstance(exception, ValueError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_INPUT,
            message=str(exception),
            suggestion="Check the submitted values and try again.",
            severity=ErrorSeverity.LOW,
            status_code=constants.HTTP_UNPROCESSABLE,
        )

    if isinstance(exception, RuntimeError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORAGE,
            message="Failed to save progress.",
            suggestion="Please try again. If the problem persists, check the database.",
            severity=ErrorSeverity.HIGH,
            status_code=constants.HTTP_SERVER_ERROR,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="Something went wrong on our side.",
        suggestion="Please try again later.",
        severity=ErrorSeverity.MEDIUM,
        status_code=constants.HTTP_SERVER_ERROR,
    )
