"""
Structured events emitted by retries and the bounded executor.

Events are plain immutable records. Observers subscribe through
`registry.Observers`; nothing in the core waits on them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TaskOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    DISCARDED = "discarded"  # finished after the batch reached a terminal state
    ABANDONED = "abandoned"  # still running when the drain timeout expired


class RetryDecision(str, Enum):
    RETRY = "retry"
    FATAL = "fatal"  # classified as non-retryable
    EXHAUSTED = "exhausted"  # schedule halted


@dataclass(frozen=True)
class RetryContext:
    """One failed attempt: which attempt it was and what it raised."""

    attempt: int
    error: BaseException


@dataclass(frozen=True)
class TaskStarted:
    batch_id: str
    index: int


@dataclass(frozen=True)
class AttemptFailed:
    operation: str
    context: RetryContext
    decision: RetryDecision
    elapsed: float
    delay: Optional[float] = None
    batch_id: Optional[str] = None
    index: Optional[int] = None


@dataclass(frozen=True)
class TaskFinished:
    batch_id: str
    index: int
    outcome: TaskOutcome
    duration: float
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class BatchFinished:
    batch_id: str
    state: str
    total: int
    completed: int
    duration: float
    error: Optional[BaseException] = None
