from .bounded import BoundedExecutor, run_bounded
from .models import BatchResult, BatchState, PendingQueue, ResultSlot, SlotState, Task

__all__ = [
    "BoundedExecutor",
    "run_bounded",
    "BatchResult",
    "BatchState",
    "PendingQueue",
    "ResultSlot",
    "SlotState",
    "Task",
]
