"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines the exception hierarchy shared by the risk service.

- Provides clear exception hierarchy
- Maps each error category onto an HTTP status
- Includes context for debugging

============================================================
EXCEPTION HIERARCHY
============================================================
DokaniException (base)
├── ConfigurationError
├── ValidationError          -> 400
└── DependencyError          -> 500
    └── DatabaseError

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels for alerting."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ============================================================
# ERROR CLASSIFICATION
# ============================================================

class ErrorClassification(Enum):
    """Classification of error recoverability."""

    RECOVERABLE = "recoverable"
    """Caller can fix the request and try again."""

    TRANSIENT = "transient"
    """Temporary error, retrying the whole operation may succeed."""

    NON_RECOVERABLE = "non_recoverable"
    """Permanent error, requires intervention."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class DokaniException(Exception):
    """
    Base exception for all risk service errors.

    All exceptions carry:
    - severity: for alerting
    - context: for debugging
    - classification: for retry decisions made by callers
    - status_code: HTTP status used by the API layer
    - timestamp: when the error occurred
    """

    default_severity: Severity = Severity.MEDIUM
    default_classification: ErrorClassification = ErrorClassification.RECOVERABLE
    status_code: int = 500
    public_message: Optional[str] = None

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        classification: Optional[ErrorClassification] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.classification = classification or self.default_classification
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    @property
    def is_retryable(self) -> bool:
        """Check if the caller may retry the whole operation."""
        return self.classification == ErrorClassification.TRANSIENT

    @property
    def client_message(self) -> str:
        """Message safe to return to API clients."""
        return self.public_message or self.message

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging/storage."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "classification": self.classification.value,
            "status_code": self.status_code,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def to_log_format(self) -> str:
        """Format exception for structured logging."""
        ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        line = f"[{self.severity.value.upper()}] {type(self).__name__}: {self.message}"
        if ctx_str:
            line += f" | {ctx_str}"
        return line


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(DokaniException):
    """Error in configuration."""

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.NON_RECOVERABLE

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        actual_value: Optional[Any] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if config_key:
            context["config_key"] = config_key
        if actual_value is not None:
            context["actual_value"] = str(actual_value)[:100]

        super().__init__(message, context=context, **kwargs)


# ============================================================
# REQUEST ERRORS
# ============================================================

class ValidationError(DokaniException):
    """Request is missing required fields or carries invalid values."""

    default_severity = Severity.LOW
    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        actual: Optional[Any] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if field:
            context["field"] = field
        if actual is not None:
            context["actual"] = str(actual)[:100]

        super().__init__(message, context=context, **kwargs)


# ============================================================
# DEPENDENCY ERRORS
# ============================================================

class DependencyError(DokaniException):
    """
    A backing dependency (database, query) failed.

    Surfaces to clients as a generic internal error. The
    operation was aborted and nothing was persisted.
    """

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.TRANSIENT
    status_code = 500
    public_message = "Internal error while processing risk assessment"

    def __init__(
        self,
        message: str,
        dependency: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if dependency:
            context["dependency"] = dependency
        if operation:
            context["operation"] = operation

        super().__init__(message, context=context, **kwargs)


class DatabaseError(DependencyError):
    """Database operation failed."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if table:
            context["table"] = table

        super().__init__(
            message,
            dependency="database",
            operation=operation,
            context=context,
            **kwargs,
        )


# ============================================================
# HELPERS
# ============================================================

def wrap_exception(
    exc: Exception,
    wrapper_class: type = DependencyError,
    message: Optional[str] = None,
    **kwargs,
) -> DokaniException:
    """Wrap a standard exception in a DokaniException."""
    msg = message or f"{type(exc).__name__}: {exc}"
    return wrapper_class(message=msg, cause=exc, **kwargs)


__all__ = [
    "Severity",
    "ErrorClassification",
    "DokaniException",
    "ConfigurationError",
    "ValidationError",
    "DependencyError",
    "DatabaseError",
    "wrap_exception",
]
