import sqlite3
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error categories raised by the warehouse batch."""

    SOURCE_UNAVAILABLE = "SOURCE_001"
    CONSTRAINT_VIOLATION = "DATA_001"
    TYPE_MISMATCH = "DATA_002"
    STEP_FAILED = "EXECUTION_001"
    BATCH_CANCELLED = "EXECUTION_002"


class Severity(Enum):
    ERROR = "ERROR"
    FATAL = "FATAL"


class WarehouseError(Exception):
    """
    Base exception for warehouse batch failures.

    Attributes:
        message: Error message
        error_code: Category from ErrorCode
        step: Name of the step that failed, if any
        severity: Severity of the failure
        details: Additional diagnostic fields (e.g. SQLite error code)
        cause: Underlying exception
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.STEP_FAILED,
        step: Optional[str] = None,
        severity: Severity = Severity.ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.step = step
        self.severity = severity
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        msg = f"[{self.error_code.value}] {self.message}"
        if self.step:
            msg = f"{msg} (step: {self.step})"
        if self.cause is not None:
            msg = f"{msg} (caused by: {type(self.cause).__name__}: {self.cause})"
        return msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a dictionary for logging or reporting."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "step": self.step,
            "severity": self.severity.value,
            "details": self.details,
        }


class SourceUnavailableError(WarehouseError):
    """A bronze source table is missing or unreadable."""

    def __init__(self, message: str, step: Optional[str] = None, **kwargs):
        kwargs.setdefault("severity", Severity.FATAL)
        super().__init__(message, error_code=ErrorCode.SOURCE_UNAVAILABLE, step=step, **kwargs)


class StepFailedError(WarehouseError):
    """A silver load step failed (constraint/type violation or other error)."""

    @classmethod
    def from_exception(cls, step: str, exc: BaseException) -> "StepFailedError":
        """
        Wrap an exception raised inside a step, keeping SQLite diagnostics.

        sqlite3.IntegrityError maps to CONSTRAINT_VIOLATION, ValueError and
        TypeError to TYPE_MISMATCH, anything else to STEP_FAILED.
        """
        if isinstance(exc, sqlite3.IntegrityError):
            code = ErrorCode.CONSTRAINT_VIOLATION
        elif isinstance(exc, (ValueError, TypeError, sqlite3.InterfaceError)):
            code = ErrorCode.TYPE_MISMATCH
        else:
            code = ErrorCode.STEP_FAILED

        details = {"exception": type(exc).__name__}
        # Available on Python 3.11+
        if getattr(exc, "sqlite_errorcode", None) is not None:
            details["sqlite_errorcode"] = exc.sqlite_errorcode
            details["sqlite_errorname"] = exc.sqlite_errorname

        return cls(
            f"Step {step} failed: {exc}",
            error_code=code,
            step=step,
            severity=Severity.ERROR,
            details=details,
            cause=exc,
        )


class BatchCancelledError(WarehouseError):
    """The batch was cancelled between steps."""

    def __init__(self, step: Optional[str] = None):
        super().__init__(
            f"Batch cancelled before step {step}" if step else "Batch cancelled",
            error_code=ErrorCode.BATCH_CANCELLED,
            step=step,
            severity=Severity.ERROR,
        )
