from .driver import ScheduleDriver
from .evaluator import HALT, Continue, Decision, Halt, decide, initial_state
from .nodes import (
    Both,
    Duration,
    Either,
    Exponential,
    Recurs,
    Schedule,
    Spaced,
    UpTo,
    WhileInput,
    both,
    either,
    exponential,
    recurs,
    spaced,
    up_to,
    while_input,
)
from .presets import default_retry_schedule

__all__ = [
    "Schedule",
    "Duration",
    "Exponential",
    "Spaced",
    "Recurs",
    "UpTo",
    "Either",
    "Both",
    "WhileInput",
    "exponential",
    "spaced",
    "recurs",
    "up_to",
    "either",
    "both",
    "while_input",
    "Decision",
    "Halt",
    "Continue",
    "HALT",
    "decide",
    "initial_state",
    "ScheduleDriver",
    "default_retry_schedule",
]
