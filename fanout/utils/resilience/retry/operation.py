from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from fanout.utils.logger import get_logger

from ..cancellation import CancellationToken, current_scope, current_token, sleep_or_cancel
from ..monitoring import AttemptFailed, Observers, RetryContext, RetryDecision
from ..monitoring.registry import get_default_observers
from ..schedule import Halt, Schedule, ScheduleDriver, default_retry_schedule
from .classify import RetryPredicate, is_retryable

logger = get_logger(__name__)

T = TypeVar("T")


class RetryingOperation(Generic[T]):
    """
    Wrap a fallible async operation with a schedule-driven retry loop.

    The wrapper has the same call signature as the operation. Per call:

    1. A triggered token fails the call with OperationCancelledError before
       the operation is invoked.
    2. Success returns the value.
    3. Errors rejected by `should_retry` propagate unchanged.
    4. Otherwise a fresh ScheduleDriver decides; on Halt the last error
       propagates unchanged (the root cause is never wrapped).
    5. The retry delay is raced against the token; cancellation wins.
    """

    def __init__(
        self,
        operation: Callable[..., Awaitable[T]],
        schedule: Optional[Schedule] = None,
        should_retry: Optional[RetryPredicate] = None,
        *,
        token: Optional[CancellationToken] = None,
        name: Optional[str] = None,
        observers: Optional[Observers] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not callable(operation):
            raise TypeError(f"operation must be callable, got {operation!r}")
        self.operation = operation
        self.schedule = schedule if schedule is not None else default_retry_schedule()
        self.should_retry = should_retry or is_retryable
        self.token = token
        self.name = name or getattr(operation, "__name__", type(operation).__name__)
        self.observers = observers
        self.clock = clock

    def _resolve_token(self) -> CancellationToken:
        """Own token and enclosing task token combined; either one cancels."""
        scoped = current_token()
        if self.token is not None and scoped is not None and scoped is not self.token:
            return CancellationToken.linked(self.token, scoped, name=self.name)
        if self.token is not None:
            return self.token
        if scoped is not None:
            return scoped
        return CancellationToken(name=f"{self.name}:detached")

    async def __call__(self, *args: Any, **kwargs: Any) -> T:
        token = self._resolve_token()
        observers = self.observers if self.observers is not None else get_default_observers()
        scope = current_scope()
        driver = ScheduleDriver(self.schedule)
        started = self.clock()
        attempt = 0

        def report(error: BaseException, decision: RetryDecision, delay=None) -> None:
            observers.emit(
                AttemptFailed(
                    operation=self.name,
                    context=RetryContext(attempt=attempt, error=error),
                    decision=decision,
                    elapsed=self.clock() - started,
                    delay=delay,
                    batch_id=scope.batch_id if scope else None,
                    index=scope.index if scope else None,
                )
            )

        while True:
            if token.is_triggered():
                raise token.cancelled_error()

            attempt += 1
            try:
                result = await self.operation(*args, **kwargs)
            except Exception as exc:
                if not self.should_retry(exc):
                    report(exc, RetryDecision.FATAL)
                    raise

                decision = driver.step(exc, self.clock() - started)
                if isinstance(decision, Halt):
                    report(exc, RetryDecision.EXHAUSTED)
                    raise

                report(exc, RetryDecision.RETRY, decision.delay)
                if not await sleep_or_cancel(decision.delay, token):
                    raise token.cancelled_error() from exc
            else:
                if attempt > 1:
                    logger.info("retry_succeeded", operation=self.name, attempts=attempt)
                return result

    def __repr__(self) -> str:
        return f"<RetryingOperation {self.name}>"
