from __future__ import annotations

from typing import Any

from .evaluator import HALT, Continue, Decision, decide, initial_state
from .nodes import Schedule

_UNSET = object()


class ScheduleDriver:
    """
    Stateful runner for one schedule.

    Owns exactly one schedule state, created on the first `step`. Once the
    schedule halts the driver stays halted. A driver belongs to a single
    retry loop and must not be shared between concurrent loops.
    """

    def __init__(self, schedule: Schedule):
        self.schedule = schedule
        self._state: Any = _UNSET
        self._halted = False
        self.steps = 0
        self.total_delay = 0.0

    @property
    def halted(self) -> bool:
        return self._halted

    def step(self, input: Any, elapsed: float = 0.0) -> Decision:
        """Advance the schedule by one decision."""
        if self._halted:
            return HALT
        if self._state is _UNSET:
            self._state = initial_state(self.schedule)

        decision = decide(self.schedule, input, self._state, elapsed)
        self.steps += 1
        if isinstance(decision, Continue):
            self._state = decision.state
            self.total_delay += decision.delay
        else:
            self._halted = True
        return decision

    def reset(self) -> None:
        self._state = _UNSET
        self._halted = False
        self.steps = 0
        self.total_delay = 0.0
