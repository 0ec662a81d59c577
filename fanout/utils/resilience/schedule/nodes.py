"""
Schedule nodes.

A schedule is an immutable description of a recurrence policy. The set of
node kinds is closed; `evaluator.decide` is the only interpreter.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Optional, Tuple, Union

from fanout.utils.error_handler import ScheduleConfigurationError

Duration = Union[float, int, timedelta]


def to_seconds(value: Duration, name: str = "duration") -> float:
    """Normalize a duration to seconds, rejecting negative or NaN values."""
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = float(value)
    else:
        raise ScheduleConfigurationError(
            f"{name} must be a number of seconds or a timedelta, got {value!r}"
        )
    if math.isnan(seconds) or seconds < 0:
        raise ScheduleConfigurationError(f"{name} must be >= 0, got {value!r}")
    return seconds


class Schedule:
    """Base class for schedule nodes; provides the fluent combinators."""

    __slots__ = ()

    def either(self, other: "Schedule") -> "Either":
        return either(self, other)

    def both(self, other: "Schedule") -> "Both":
        return both(self, other)

    def up_to(self, max_elapsed: Duration) -> "UpTo":
        return up_to(self, max_elapsed)

    def while_input(self, predicate: Callable[[Any], bool]) -> "WhileInput":
        return while_input(self, predicate)

    def __or__(self, other: "Schedule") -> "Either":
        if not isinstance(other, Schedule):
            return NotImplemented
        return either(self, other)

    def __and__(self, other: "Schedule") -> "Both":
        if not isinstance(other, Schedule):
            return NotImplemented
        return both(self, other)


@dataclass(frozen=True)
class Exponential(Schedule):
    base: float
    factor: float
    max_delay: Optional[float] = None


@dataclass(frozen=True)
class Spaced(Schedule):
    interval: float


@dataclass(frozen=True)
class Recurs(Schedule):
    times: int


@dataclass(frozen=True)
class UpTo(Schedule):
    inner: Schedule
    max_elapsed: float


@dataclass(frozen=True)
class Either(Schedule):
    left: Schedule
    right: Schedule


@dataclass(frozen=True)
class Both(Schedule):
    left: Schedule
    right: Schedule


@dataclass(frozen=True)
class WhileInput(Schedule):
    inner: Schedule
    predicate: Callable[[Any], bool]


# === Constructors ===


def exponential(
    base: Duration, factor: float = 2.0, max_delay: Optional[Duration] = None
) -> Exponential:
    """Delay `base * factor**n` on the n-th recurrence (n starts at 0)."""
    if isinstance(factor, bool) or not isinstance(factor, (int, float)):
        raise ScheduleConfigurationError(f"factor must be a number, got {factor!r}")
    if math.isnan(factor) or math.isinf(factor) or factor <= 0:
        raise ScheduleConfigurationError(f"factor must be > 0, got {factor!r}")
    cap = None if max_delay is None else to_seconds(max_delay, "max_delay")
    return Exponential(to_seconds(base, "base"), float(factor), cap)


def spaced(interval: Duration) -> Spaced:
    """Constant delay of `interval` between recurrences."""
    return Spaced(to_seconds(interval, "interval"))


def recurs(times: int) -> Recurs:
    """Recur `times` times with no delay, then halt."""
    if isinstance(times, bool) or not isinstance(times, int) or times < 0:
        raise ScheduleConfigurationError(
            f"times must be a non-negative int, got {times!r}"
        )
    return Recurs(times)


def up_to(schedule: Schedule, max_elapsed: Duration) -> UpTo:
    """Halt once the cumulative elapsed time would exceed `max_elapsed`."""
    _require_schedule(schedule)
    return UpTo(schedule, to_seconds(max_elapsed, "max_elapsed"))


def either(first: Schedule, second: Schedule, *more: Schedule) -> Either:
    """Continue while any member continues, using the shortest delay."""
    members = (first, second) + more
    for member in members:
        _require_schedule(member)
    return _fold(Either, members)


def both(first: Schedule, second: Schedule, *more: Schedule) -> Both:
    """Continue only while every member continues, using the longest delay."""
    members = (first, second) + more
    for member in members:
        _require_schedule(member)
    return _fold(Both, members)


def while_input(schedule: Schedule, predicate: Callable[[Any], bool]) -> WhileInput:
    """Halt immediately for inputs that fail `predicate`."""
    _require_schedule(schedule)
    if not callable(predicate):
        raise ScheduleConfigurationError(
            f"predicate must be callable, got {predicate!r}"
        )
    return WhileInput(schedule, predicate)


def _require_schedule(value: Any) -> None:
    if not isinstance(value, Schedule):
        raise ScheduleConfigurationError(f"expected a Schedule, got {value!r}")


def _fold(node: Callable[[Schedule, Schedule], Schedule], members: Tuple[Schedule, ...]):
    result = node(members[0], members[1])
    for member in members[2:]:
        result = node(result, member)
    return result
