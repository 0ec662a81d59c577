"""
Error handling for the fanout executor.

This module provides the exception taxonomy shared by schedules, retries and
the bounded executor, plus a small ErrorHandler that categorizes and logs
terminal failures.
"""

import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fanout.utils.logger import get_logger

logger = get_logger(__name__)


class ErrorSeverity(str, Enum):
    """Error severity levels for categorization and alerting"""

    LOW = "low"  # Expected outcomes, logging only
    MEDIUM = "medium"  # Operation failures surfaced to the caller
    HIGH = "high"  # Misconfiguration or broken invariants
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error categories for systematic handling"""

    CONFIGURATION = "configuration"  # Invalid schedule/executor settings
    CANCELLATION = "cancellation"  # Token observed as triggered
    OPERATION = "operation"  # Raised by a caller-supplied operation
    NETWORK = "network"
    TIMEOUT = "timeout"
    SYSTEM = "system"


class ErrorContext:
    """Container for error context information"""

    def __init__(
        self,
        error: BaseException,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        technical_details: Optional[Dict[str, Any]] = None,
        batch_id: Optional[str] = None,
        task_index: Optional[int] = None,
    ):
        self.error = error
        self.severity = severity
        self.category = category
        self.technical_details = technical_details or {}
        self.batch_id = batch_id
        self.task_index = task_index
        self.timestamp = datetime.now(timezone.utc)
        self.error_id = f"err_{int(self.timestamp.timestamp())}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert error context to dictionary for logging/serialization"""
        return {
            "error_id": self.error_id,
            "timestamp": self.timestamp.isoformat(),
            "error_type": type(self.error).__name__,
            "error_message": str(self.error),
            "severity": self.severity.value,
            "category": self.category.value,
            "technical_details": self.technical_details,
            "batch_id": self.batch_id,
            "task_index": self.task_index,
            "traceback": "".join(
                traceback.format_exception(
                    type(self.error), self.error, self.error.__traceback__
                )
            )
            if self.severity in [ErrorSeverity.HIGH, ErrorSeverity.CRITICAL]
            else None,
        }


# === Custom Exception Classes ===


class FanoutError(Exception):
    """Base exception for fanout errors"""

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        technical_details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.severity = severity
        self.category = category
        self.technical_details = technical_details or {}

    @property
    def kind(self) -> str:
        return type(self).__name__


class ScheduleConfigurationError(FanoutError, ValueError):
    """Raised when a schedule is constructed with invalid parameters"""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.CONFIGURATION,
            **kwargs,
        )


class ExecutorConfigurationError(FanoutError, ValueError):
    """Raised when the bounded executor is given an invalid limit"""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.CONFIGURATION,
            **kwargs,
        )


class OperationCancelledError(FanoutError):
    """Raised when a suspension point observes a triggered cancellation token"""

    def __init__(
        self, message: str = "Operation cancelled", reason: Any = None, **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.CANCELLATION,
            **kwargs,
        )
        self.reason = reason


class DeadlineExceededError(OperationCancelledError):
    """Cancellation caused by a wall-clock deadline"""

    def __init__(self, seconds: float, **kwargs):
        super().__init__(
            f"Deadline of {seconds:g}s exceeded",
            technical_details={"deadline_seconds": seconds},
            **kwargs,
        )
        self.category = ErrorCategory.TIMEOUT
        self.seconds = seconds


class RetryableError(FanoutError):
    """Operation failed but may be retried (transient failure)"""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.OPERATION)
        super().__init__(message, **kwargs)


class FatalError(FanoutError):
    """Operation failed and must not be retried (bad input, invariant broken)"""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.OPERATION)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, **kwargs)


# === Error Handler Class ===


class ErrorHandler:
    """Centralized categorization and logging of terminal failures"""

    def __init__(self):
        self._error_counts: Dict[str, int] = {}

    def handle_error(
        self, error: BaseException, context: Optional[Dict[str, Any]] = None
    ) -> ErrorContext:
        """
        Handle an error with appropriate categorization and logging.

        Args:
            error: The exception that terminated a task or batch
            context: Additional context information (batch_id, task_index, ...)

        Returns:
            ErrorContext with detailed error information
        """
        context = context or {}
        error_context = self._categorize_error(error, context)
        self._log_error(error_context)
        self._track_frequency(error_context)
        return error_context

    def _categorize_error(
        self, error: BaseException, context: Dict[str, Any]
    ) -> ErrorContext:
        """Categorize error and determine severity"""

        if isinstance(error, FanoutError):
            return ErrorContext(
                error=error,
                severity=error.severity,
                category=error.category,
                technical_details={**error.technical_details, **context},
                batch_id=context.get("batch_id"),
                task_index=context.get("task_index"),
            )

        error_mappings = {
            ConnectionError: (ErrorSeverity.MEDIUM, ErrorCategory.NETWORK),
            TimeoutError: (ErrorSeverity.MEDIUM, ErrorCategory.TIMEOUT),
            ValueError: (ErrorSeverity.LOW, ErrorCategory.OPERATION),
            KeyError: (ErrorSeverity.LOW, ErrorCategory.OPERATION),
        }

        severity, category = ErrorSeverity.MEDIUM, ErrorCategory.SYSTEM
        for error_type, mapping in error_mappings.items():
            if isinstance(error, error_type):
                severity, category = mapping
                break

        return ErrorContext(
            error=error,
            severity=severity,
            category=category,
            technical_details=context,
            batch_id=context.get("batch_id"),
            task_index=context.get("task_index"),
        )

    def _log_error(self, error_context: ErrorContext) -> None:
        """Log error with appropriate level and context"""

        log_data = {
            "error_id": error_context.error_id,
            "error_type": type(error_context.error).__name__,
            "error": str(error_context.error),
            "category": error_context.category.value,
            "severity": error_context.severity.value,
            "batch_id": error_context.batch_id,
            "task_index": error_context.task_index,
        }

        if error_context.severity == ErrorSeverity.CRITICAL:
            logger.critical("operation_error", **log_data)
        elif error_context.severity == ErrorSeverity.HIGH:
            logger.error("operation_error", **log_data)
        elif error_context.severity == ErrorSeverity.MEDIUM:
            logger.warning("operation_error", **log_data)
        else:  # LOW
            logger.info("operation_error", **log_data)

    def _track_frequency(self, error_context: ErrorContext) -> None:
        error_key = (
            f"{type(error_context.error).__name__}:{error_context.category.value}"
        )
        self._error_counts[error_key] = self._error_counts.get(error_key, 0) + 1

        if self._error_counts[error_key] > 5:
            logger.warning(
                "high_frequency_error",
                error_key=error_key,
                count=self._error_counts[error_key],
                error_id=error_context.error_id,
            )

    def error_count(self, error_type: str, category: ErrorCategory) -> int:
        return self._error_counts.get(f"{error_type}:{category.value}", 0)
