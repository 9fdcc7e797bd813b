"""Error taxonomy for the relief kernel."""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorType(str, Enum):
    """Machine-readable error categories."""

    INCOMPLETE_DRAFT = "INCOMPLETE_DRAFT"
    INVALID_FIELD_VALUE = "INVALID_FIELD_VALUE"
    ADJUDICATION_UNAVAILABLE = "ADJUDICATION_UNAVAILABLE"
    TURN_IN_PROGRESS = "TURN_IN_PROGRESS"
    MISSING_EVALUATION_CONTEXT = "MISSING_EVALUATION_CONTEXT"


class ReliefKernelError(Exception):
    """
    Base exception for all relief kernel errors.

    Attributes:
        error_type: Category from ErrorType
        message: Human-readable explanation
        recoverable: Whether the caller can continue and retry later
        details: Optional structured context for logs and API responses
    """

    error_type: ErrorType
    recoverable: bool = True

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.error_type.value}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "details": self.details,
        }


class IncompleteDraftError(ReliefKernelError):
    """evaluate() was called before the Expenses section reported complete."""

    error_type = ErrorType.INCOMPLETE_DRAFT

    def __init__(self, active_section: Optional[str] = None):
        self.active_section = active_section
        super().__init__(
            "Draft is not ready for decisioning; continue collecting "
            f"'{active_section}'." if active_section else
            "Draft is not ready for decisioning.",
            details={"active_section": active_section},
        )


class InvalidFieldValueError(ReliefKernelError):
    """An update carried a value the draft cannot accept. The draft is unchanged."""

    error_type = ErrorType.INVALID_FIELD_VALUE

    def __init__(self, field: str, value: Any, reason: str = "invalid value"):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(
            f"Field '{field}' rejected value {value!r}: {reason}",
            details={"field": field, "value": repr(value), "reason": reason},
        )


class AdjudicationUnavailableError(ReliefKernelError):
    """
    The secondary adjudicator timed out, failed or answered malformed.

    Internal only: the refiner converts it into a degraded Decision.
    """

    error_type = ErrorType.ADJUDICATION_UNAVAILABLE

    def __init__(self, message: str, original_exception: Optional[BaseException] = None):
        self.original_exception = original_exception
        super().__init__(
            message,
            details={
                "original_exception": repr(original_exception) if original_exception else None
            },
        )


class TurnInProgressError(ReliefKernelError):
    """Another turn or refinement is outstanding against this draft."""

    error_type = ErrorType.TURN_IN_PROGRESS

    def __init__(self, session_key: str):
        super().__init__(
            f"A turn is already in progress for session {session_key}.",
            details={"session": session_key},
        )


class MissingEvaluationContextError(ReliefKernelError):
    """refine() needs the balance and policy from a prior evaluate()."""

    error_type = ErrorType.MISSING_EVALUATION_CONTEXT

    def __init__(self, session_key: str):
        super().__init__(
            f"No evaluation has been run for session {session_key}; call evaluate() first.",
            details={"session": session_key},
        )
