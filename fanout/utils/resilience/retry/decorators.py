from __future__ import annotations

import functools
import inspect
from typing import Any, Callable, Optional

from ..monitoring import Observers
from ..schedule import Schedule
from .classify import RetryPredicate
from .operation import RetryingOperation


def retry(
    schedule: Optional[Schedule] = None,
    should_retry: Optional[RetryPredicate] = None,
    *,
    observers: Optional[Observers] = None,
):
    """
    Retry decorator for async callables.

    - Retries errors accepted by `should_retry` (default: transient errors).
    - Waits as decided by `schedule` (default: configured backoff policy).
    - Observes the enclosing executor task's cancellation token.

    The underlying RetryingOperation is exposed as `wrapper.retrying`.
    """

    def decorator(func: Callable[..., Any]):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(
                f"@retry requires an async function, got {getattr(func, '__name__', func)!r}"
            )

        operation = RetryingOperation(
            func,
            schedule,
            should_retry,
            name=getattr(func, "__qualname__", None),
            observers=observers,
        )

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any):
            return await operation(*args, **kwargs)

        async_wrapper.retrying = operation  # type: ignore[attr-defined]
        return async_wrapper

    return decorator
