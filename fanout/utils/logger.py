"""
Structured logging for fanout using structlog.

The library itself only calls `get_logger`; host applications opt in to the
renderer setup with `configure_logging`. Executor tasks bind their batch id
and index through `task_log_context`, so every line logged inside a task
(including lines from the wrapped operation) carries them.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from fanout.core.config import settings


def _add_app_name(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("app", settings.APP_NAME)
    return event_dict


def build_processors(json_logs: bool) -> list[Processor]:
    """Processor chain; task context merged from contextvars comes first."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_app_name,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]
    if json_logs:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors += [
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]
    return processors


def configure_logging(
    level: Optional[str] = None, json_logs: Optional[bool] = None
) -> None:
    """
    Configure structlog for the host application.

    Args:
        level: Log level name; defaults to settings.LOG_LEVEL
        json_logs: Force the JSON renderer on or off; by default JSON is used
            outside development
    """
    log_level = (level or settings.LOG_LEVEL).upper()
    if json_logs is None:
        json_logs = not settings.is_development

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    structlog.configure(
        processors=build_processors(json_logs),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def add_task_context(batch_id: str, index: Optional[int] = None) -> Dict[str, Any]:
    """Log fields identifying a batch, and optionally one task within it."""
    context: Dict[str, Any] = {"batch_id": batch_id}
    if index is not None:
        context["task_index"] = index
    return context


@contextmanager
def task_log_context(batch_id: str, index: Optional[int] = None) -> Iterator[None]:
    """Bind batch/task fields to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(**add_task_context(batch_id, index)):
        yield
