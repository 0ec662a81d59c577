from .events import (
    AttemptFailed,
    BatchFinished,
    RetryContext,
    RetryDecision,
    TaskFinished,
    TaskOutcome,
    TaskStarted,
)
from .metrics import MetricsObserver, executor_metrics
from .observers import LoggingObserver
from .registry import Observers, get_default_observers

__all__ = [
    "AttemptFailed",
    "BatchFinished",
    "RetryContext",
    "RetryDecision",
    "TaskFinished",
    "TaskOutcome",
    "TaskStarted",
    "Observers",
    "get_default_observers",
    "LoggingObserver",
    "MetricsObserver",
    "executor_metrics",
]
