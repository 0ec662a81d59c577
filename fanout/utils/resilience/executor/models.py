"""
Bookkeeping records owned by the bounded executor.

A batch moves RUNNING -> SUCCEEDED | FAILED | CANCELLED exactly once. Each
task has one write-once result slot; a task leaves the pending queue at most
once.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Generic, Iterable, List, Optional, TypeVar

I = TypeVar("I")
O = TypeVar("O")


class BatchState(str, Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self is not BatchState.RUNNING


class SlotState(str, Enum):
    EMPTY = "empty"
    VALUE = "value"
    ERROR = "error"


@dataclass(frozen=True)
class Task(Generic[I]):
    """One submitted input, tagged with its position in the caller's sequence."""

    index: int
    input: I


@dataclass
class ResultSlot(Generic[O]):
    state: SlotState = SlotState.EMPTY
    value: Optional[O] = None
    error: Optional[BaseException] = None

    def write_value(self, value: O) -> None:
        self._ensure_empty()
        self.state = SlotState.VALUE
        self.value = value

    def write_error(self, error: BaseException) -> None:
        self._ensure_empty()
        self.state = SlotState.ERROR
        self.error = error

    def _ensure_empty(self) -> None:
        if self.state is not SlotState.EMPTY:
            raise RuntimeError(f"Result slot already holds a {self.state.value}")


class PendingQueue(Generic[I]):
    """FIFO of tasks not yet dispatched."""

    def __init__(self, tasks: Iterable[Task[I]] = ()) -> None:
        self._tasks: Deque[Task[I]] = deque(tasks)
        self.dispatched = 0

    def pop(self) -> Task[I]:
        task = self._tasks.popleft()
        self.dispatched += 1
        return task

    def clear(self) -> List[Task[I]]:
        """Drop every undispatched task, returning them in order."""
        remaining = list(self._tasks)
        self._tasks.clear()
        return remaining

    def __len__(self) -> int:
        return len(self._tasks)

    def __bool__(self) -> bool:
        return bool(self._tasks)


@dataclass
class BatchResult(Generic[O]):
    """Terminal outcome of one executor batch."""

    batch_id: str
    state: BatchState
    results: Optional[List[O]] = None
    error: Optional[BaseException] = None
    slots: List[ResultSlot[O]] = field(default_factory=list, repr=False)

    @property
    def ok(self) -> bool:
        return self.state is BatchState.SUCCEEDED

    def unwrap(self) -> List[O]:
        """Return the ordered results, or raise the batch error."""
        if self.state is BatchState.SUCCEEDED:
            return list(self.results or [])
        if self.error is not None:
            raise self.error
        raise RuntimeError(f"Batch {self.batch_id} finished in state {self.state.value}")

    def summary(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "state": self.state.value,
            "completed": sum(1 for s in self.slots if s.state is SlotState.VALUE),
            "total": len(self.slots),
            "error": None if self.error is None else repr(self.error),
        }
