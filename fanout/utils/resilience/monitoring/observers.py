from __future__ import annotations

from typing import Any, Optional

from fanout.utils.error_handler import ErrorHandler
from fanout.utils.logger import add_task_context, get_logger

from .events import (
    AttemptFailed,
    BatchFinished,
    RetryDecision,
    TaskFinished,
    TaskOutcome,
    TaskStarted,
)

logger = get_logger(__name__)


class LoggingObserver:
    """Render executor and retry events as structured log lines."""

    def __init__(self, error_handler: Optional[ErrorHandler] = None) -> None:
        self.error_handler = error_handler or ErrorHandler()

    def __call__(self, event: Any) -> None:
        if isinstance(event, TaskStarted):
            logger.debug("task_started", **add_task_context(event.batch_id, event.index))

        elif isinstance(event, AttemptFailed):
            context = {
                "operation": event.operation,
                "attempt": event.context.attempt,
                "elapsed_s": round(event.elapsed, 3),
                "error": str(event.context.error),
                "error_type": type(event.context.error).__name__,
            }
            if event.batch_id is not None:
                context.update(add_task_context(event.batch_id, event.index))
            if event.decision == RetryDecision.RETRY:
                logger.warning(
                    "retry_scheduled", next_delay_s=round(event.delay or 0.0, 3), **context
                )
            else:
                logger.error("retry_stopped", decision=event.decision.value, **context)

        elif isinstance(event, TaskFinished):
            level = logger.info if event.outcome == TaskOutcome.FAILED else logger.debug
            level(
                "task_finished",
                outcome=event.outcome.value,
                duration_s=round(event.duration, 3),
                **add_task_context(event.batch_id, event.index),
            )

        elif isinstance(event, BatchFinished):
            logger.info(
                "batch_finished",
                state=event.state,
                total=event.total,
                completed=event.completed,
                duration_s=round(event.duration, 3),
                batch_id=event.batch_id,
            )
            if event.error is not None:
                self.error_handler.handle_error(
                    event.error, {"batch_id": event.batch_id, "state": event.state}
                )
