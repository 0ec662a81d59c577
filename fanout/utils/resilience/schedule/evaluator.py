"""
Pure interpreter for schedule nodes.

`decide(schedule, input, state, elapsed)` maps an input and the current state
to a Decision. It never blocks, never mutates its arguments, and never raises
for well-formed schedules.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Union

from .nodes import (
    Both,
    Either,
    Exponential,
    Recurs,
    Schedule,
    Spaced,
    UpTo,
    WhileInput,
)


@dataclass(frozen=True)
class Halt:
    """Stop recurring."""

    def __repr__(self) -> str:
        return "HALT"


@dataclass(frozen=True)
class Continue:
    """Recur after `delay` seconds, carrying `state` to the next decision."""

    delay: float
    state: Any


Decision = Union[Halt, Continue]

HALT = Halt()


@dataclass(frozen=True)
class _Budget:
    spent: float
    inner: Any


@dataclass(frozen=True)
class _Pair:
    left: Any
    right: Any


def initial_state(schedule: Schedule) -> Any:
    """Build the fresh state tree for `schedule`."""
    if isinstance(schedule, (Exponential, Spaced, Recurs)):
        return 0
    if isinstance(schedule, UpTo):
        return _Budget(0.0, initial_state(schedule.inner))
    if isinstance(schedule, (Either, Both)):
        return _Pair(initial_state(schedule.left), initial_state(schedule.right))
    if isinstance(schedule, WhileInput):
        return initial_state(schedule.inner)
    raise TypeError(f"Unknown schedule node: {type(schedule).__name__}")


def decide(schedule: Schedule, input: Any, state: Any, elapsed: float = 0.0) -> Decision:
    """
    Evaluate one recurrence decision.

    Args:
        schedule: Schedule node to interpret
        input: Value the decision is about (for retries, the raised error)
        state: State from `initial_state` or a previous Continue
        elapsed: Seconds since the recurrence started, as seen by the caller

    Returns:
        HALT, or Continue(delay, next_state)
    """
    if isinstance(schedule, Exponential):
        delay = _power_delay(schedule.base, schedule.factor, state)
        if schedule.max_delay is not None:
            delay = min(delay, schedule.max_delay)
        return Continue(delay, state + 1)

    if isinstance(schedule, Spaced):
        return Continue(schedule.interval, state + 1)

    if isinstance(schedule, Recurs):
        if state >= schedule.times:
            return HALT
        return Continue(0.0, state + 1)

    if isinstance(schedule, UpTo):
        inner = decide(schedule.inner, input, state.inner, elapsed)
        if isinstance(inner, Halt):
            return HALT
        spent = max(state.spent, elapsed)
        if spent + inner.delay > schedule.max_elapsed:
            return HALT
        return Continue(inner.delay, _Budget(state.spent + inner.delay, inner.state))

    if isinstance(schedule, Either):
        # both members see every input; a halting member keeps its sub-state
        left = decide(schedule.left, input, state.left, elapsed)
        right = decide(schedule.right, input, state.right, elapsed)
        delays = [d.delay for d in (left, right) if isinstance(d, Continue)]
        if not delays:
            return HALT
        return Continue(
            min(delays),
            _Pair(
                left.state if isinstance(left, Continue) else state.left,
                right.state if isinstance(right, Continue) else state.right,
            ),
        )

    if isinstance(schedule, Both):
        left = decide(schedule.left, input, state.left, elapsed)
        if isinstance(left, Halt):
            return HALT
        right = decide(schedule.right, input, state.right, elapsed)
        if isinstance(right, Halt):
            return HALT
        return Continue(max(left.delay, right.delay), _Pair(left.state, right.state))

    if isinstance(schedule, WhileInput):
        if not schedule.predicate(input):
            return HALT
        return decide(schedule.inner, input, state, elapsed)

    raise TypeError(f"Unknown schedule node: {type(schedule).__name__}")


def _power_delay(base: float, factor: float, n: int) -> float:
    try:
        return base * factor**n
    except OverflowError:
        return math.inf if base > 0 else 0.0
