"""
Resilience utilities: retry schedules, cancellation tokens, bounded fan-out.

Schedules describe when to retry, RetryingOperation applies them to one
async call, and BoundedExecutor runs many calls with a concurrency cap,
ordered results and fail-fast cancellation. All modules are async-first,
structured-logging enabled, and report through observer hooks that export
Prometheus metrics.

Keep modules small, composable, and configuration-driven via `fanout.core.config`.
"""

from .cancellation import CancellationToken, cancel_after, current_token, sleep_or_cancel
from .executor import BatchResult, BatchState, BoundedExecutor, run_bounded
from .retry import RetryingOperation, is_retryable, retry, retry_on, retry_unless
from .schedule import (
    Schedule,
    ScheduleDriver,
    both,
    default_retry_schedule,
    either,
    exponential,
    recurs,
    spaced,
    up_to,
    while_input,
)

__all__ = [
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
    "CancellationToken",
    "cancel_after",
    "current_token",
    "sleep_or_cancel",
    "RetryingOperation",
    "retry",
    "is_retryable",
    "retry_on",
    "retry_unless",
    "BoundedExecutor",
    "BatchResult",
    "BatchState",
    "run_bounded",
]
