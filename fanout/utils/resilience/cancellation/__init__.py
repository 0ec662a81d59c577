from .context import TaskScope, current_scope, current_token, task_scope
from .token import CancellationToken
from .waits import cancel_after, sleep_or_cancel

__all__ = [
    "CancellationToken",
    "TaskScope",
    "current_scope",
    "current_token",
    "task_scope",
    "sleep_or_cancel",
    "cancel_after",
]
