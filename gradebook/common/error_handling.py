"""
Error Handling for the Grading Engine

This module provides the exception hierarchy used by the sampler, the
submission state machine and the definition services, along with structured
error information for callers that need to render a warning instead of a
stack trace.

The aggregation engine deliberately raises none of these: reports must render
even for a classroom with no data.
"""

import json
import logging
import traceback
from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Configure logging
logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for errors"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCode(Enum):
    """Standard error codes for the grading engine"""
    UNKNOWN_ERROR = "unknown_error"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND_ERROR = "not_found_error"

    # Sampler errors
    INSUFFICIENT_POOL = "insufficient_pool"

    # Submission lifecycle errors
    DUPLICATE_SUBMISSION = "duplicate_submission"
    GRADING_STATE = "grading_state"


class ErrorInfo(BaseModel):
    """Structured information about an error"""
    model_config = ConfigDict(use_enum_values=True)

    code: ErrorCode
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Optional[Dict[str, Any]] = None
    exception_type: Optional[str] = None
    stack_trace: Optional[List[str]] = None
    context: Optional[Dict[str, Any]] = None

    @field_validator('stack_trace', mode='before')
    @classmethod
    def validate_stack_trace(cls, v):
        """Format stack trace if it's a string"""
        if isinstance(v, str):
            return v.splitlines()
        return v


class GradebookError(Exception):
    """Base exception class for all grading engine errors"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.severity = severity
        self.details = details or {}
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.now()

    def to_error_info(self, include_stack_trace: bool = False) -> ErrorInfo:
        """Convert the exception to an ErrorInfo object"""
        stack_trace = None
        if include_stack_trace:
            stack_trace = traceback.format_exc().splitlines()

        details = dict(self.details)
        if self.cause is not None:
            details["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause)
            }

        return ErrorInfo(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            severity=self.severity,
            details=details,
            exception_type=type(self).__name__,
            stack_trace=stack_trace,
            context=self.context
        )

    def to_dict(self, include_stack_trace: bool = False) -> Dict[str, Any]:
        """Convert the exception to a dictionary"""
        return self.to_error_info(include_stack_trace).model_dump(mode="json")

    def to_json(self, include_stack_trace: bool = False) -> str:
        """Convert the exception to a JSON string"""
        return json.dumps(self.to_dict(include_stack_trace))

    def __str__(self) -> str:
        base_str = f"{self.code.value}: {self.message}"
        if self.details:
            base_str += f" (details: {self.details})"
        if self.cause:
            base_str += f" caused by {type(self.cause).__name__}: {str(self.cause)}"
        return base_str


class ValidationError(GradebookError):
    """
    Error raised when input validation fails.

    Covers malformed questions, mix percentages that do not sum to 100 and a
    generation request with no enabled source.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            severity=ErrorSeverity.WARNING,
            details=details,
            cause=cause,
            context=context
        )


class NotFoundError(GradebookError):
    """Error raised when a requested record does not exist in the store"""

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            message=f"{resource_type} with ID {resource_id} not found",
            code=ErrorCode.NOT_FOUND_ERROR,
            severity=ErrorSeverity.WARNING,
            details={"resource_type": resource_type, "resource_id": resource_id}
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class InsufficientPoolError(GradebookError):
    """
    Error raised when the enabled sources cannot supply the requested count.

    The shortfall is reported so the caller can show how many questions are
    missing instead of generating a short test.
    """

    def __init__(
        self,
        requested: int,
        available: int,
        per_source: Optional[Dict[str, int]] = None
    ):
        shortfall = max(0, requested - available)
        super().__init__(
            message=f"Requested {requested} questions but only {available} are available",
            code=ErrorCode.INSUFFICIENT_POOL,
            severity=ErrorSeverity.WARNING,
            details={
                "requested": requested,
                "available": available,
                "shortfall": shortfall,
                "per_source": per_source or {}
            }
        )
        self.requested = requested
        self.available = available
        self.shortfall = shortfall


class DuplicateSubmissionError(GradebookError):
    """Error raised when an already submitted attempt is submitted again"""

    def __init__(self, submission_id: str, submitted_at: Optional[datetime] = None):
        super().__init__(
            message=f"Submission {submission_id} has already been submitted",
            code=ErrorCode.DUPLICATE_SUBMISSION,
            severity=ErrorSeverity.WARNING,
            details={
                "submission_id": submission_id,
                "submitted_at": submitted_at.isoformat() if submitted_at else None
            }
        )
        self.submission_id = submission_id


class GradingStateError(GradebookError):
    """
    Error raised when manual grading is not allowed for a submission.

    Grading needs a submitted attempt on a test with at least one free-text
    question.
    """

    def __init__(self, submission_id: str, reason: str):
        super().__init__(
            message=f"Submission {submission_id} cannot be graded: {reason}",
            code=ErrorCode.GRADING_STATE,
            severity=ErrorSeverity.WARNING,
            details={"submission_id": submission_id, "reason": reason}
        )
        self.submission_id = submission_id
        self.reason = reason


def log_error(
    error: Exception,
    log: Optional[logging.Logger] = None,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log an error with structured information.

    Args:
        error: The exception to log
        log: Logger to use (defaults to this module's logger)
        context: Additional context to include
    """
    log = log or logger

    if isinstance(error, GradebookError):
        info = error.to_dict()
        if context:
            info["context"] = {**(info.get("context") or {}), **context}
        level = {
            ErrorSeverity.DEBUG: logging.DEBUG,
            ErrorSeverity.INFO: logging.INFO,
            ErrorSeverity.WARNING: logging.WARNING,
            ErrorSeverity.ERROR: logging.ERROR,
            ErrorSeverity.CRITICAL: logging.CRITICAL,
        }[error.severity]
        log.log(level, f"{error.code.value}: {error.message}", extra={"data": info})
    else:
        log.error(
            f"Unhandled {type(error).__name__}: {error}",
            extra={"data": {"context": context or {}}}
        )
