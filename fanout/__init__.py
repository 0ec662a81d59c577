"""
fanout: bounded concurrent execution of async operations with composable
retry schedules and cooperative cancellation.
"""

from fanout.utils.error_handler import (
    DeadlineExceededError,
    ExecutorConfigurationError,
    FanoutError,
    FatalError,
    OperationCancelledError,
    RetryableError,
    ScheduleConfigurationError,
)
from fanout.utils.resilience import (
    BatchResult,
    BatchState,
    BoundedExecutor,
    CancellationToken,
    RetryingOperation,
    Schedule,
    ScheduleDriver,
    both,
    cancel_after,
    current_token,
    default_retry_schedule,
    either,
    exponential,
    is_retryable,
    recurs,
    retry,
    retry_on,
    retry_unless,
    run_bounded,
    sleep_or_cancel,
    spaced,
    up_to,
    while_input,
)

__version__ = "0.1.0"

__all__ = [
    "BoundedExecutor",
    "BatchResult",
    "BatchState",
    "run_bounded",
    "CancellationToken",
    "cancel_after",
    "current_token",
    "sleep_or_cancel",
    "RetryingOperation",
    "retry",
    "is_retryable",
    "retry_on",
    "retry_unless",
    "Schedule",
    "ScheduleDriver",
    "exponential",
    "spaced",
    "recurs",
    "up_to",
    "either",
    "both",
    "while_input",
    "default_retry_schedule",
    "FanoutError",
    "RetryableError",
    "FatalError",
    "OperationCancelledError",
    "DeadlineExceededError",
    "ScheduleConfigurationError",
    "ExecutorConfigurationError",
]
