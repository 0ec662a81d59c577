from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterator, Optional

from .token import CancellationToken


@dataclass(frozen=True)
class TaskScope:
    """Identity and cancellation token of the task currently executing."""

    batch_id: str
    index: int
    token: CancellationToken


_current_scope: ContextVar[Optional[TaskScope]] = ContextVar(
    "fanout_task_scope", default=None
)


def current_scope() -> Optional[TaskScope]:
    return _current_scope.get()


def current_token() -> Optional[CancellationToken]:
    """Token of the enclosing executor task, if any."""
    scope = _current_scope.get()
    return scope.token if scope is not None else None


@contextmanager
def task_scope(scope: TaskScope) -> Iterator[TaskScope]:
    reset = _current_scope.set(scope)
    try:
        yield scope
    finally:
        _current_scope.reset(reset)
