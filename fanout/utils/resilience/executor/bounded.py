from __future__ import annotations

import asyncio
import time
import uuid
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    TypeVar,
)

from fanout.core.config import settings
from fanout.utils.error_handler import ExecutorConfigurationError, OperationCancelledError
from fanout.utils.logger import get_logger, task_log_context

from ..cancellation import CancellationToken, TaskScope, cancel_after, task_scope
from ..monitoring import BatchFinished, Observers, TaskFinished, TaskOutcome, TaskStarted
from ..monitoring.registry import get_default_observers
from ..retry import RetryingOperation
from ..retry.classify import RetryPredicate
from ..schedule import Schedule
from .models import BatchResult, BatchState, PendingQueue, ResultSlot, SlotState, Task

logger = get_logger(__name__)

I = TypeVar("I")
O = TypeVar("O")

Operation = Callable[[I], Awaitable[O]]


class BoundedExecutor:
    """
    Run one async operation per input with at most `limit` in flight.

    - Dispatch is FIFO by input index; results are placed by index, so the
      output mirrors the input order whatever the completion order.
    - Fail-fast: the first task error triggers the batch token, stops
      dispatch, and the batch resolves with that error once in-flight
      siblings have wound down. Their results are discarded.
    - Triggering the caller's token has the same effect, except the batch
      error is an OperationCancelledError.

    A single coordinating coroutine owns the pending queue, the in-flight
    map and the result slots, so no lock is needed around them.
    """

    def __init__(
        self,
        limit: Optional[int] = None,
        *,
        observers: Optional[Observers] = None,
        drain_timeout: Optional[float] = None,
    ):
        self.limit: Optional[int] = self._validate_limit(
            settings.EXECUTOR_DEFAULT_CONCURRENCY if limit is None else limit
        )
        self.drain_timeout = (
            settings.EXECUTOR_DRAIN_TIMEOUT_SECONDS if drain_timeout is None else drain_timeout
        )
        self.observers = observers

    @classmethod
    def unbounded(cls, **kwargs: Any) -> "BoundedExecutor":
        """Executor without a concurrency cap; every input is dispatched at once."""
        executor = cls(1, **kwargs)
        executor.limit = None
        return executor

    @staticmethod
    def _validate_limit(limit: Any) -> int:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ExecutorConfigurationError(
                f"Concurrency limit must be an integer >= 1, got {limit!r}"
            )
        return limit

    def _observers(self) -> Observers:
        return self.observers if self.observers is not None else get_default_observers()

    async def run(
        self,
        inputs: Iterable[I],
        operation: Operation,
        **kwargs: Any,
    ) -> List[O]:
        """Run the batch and return ordered results, or raise the batch error."""
        result = await self.execute(inputs, operation, **kwargs)
        return result.unwrap()

    async def execute(
        self,
        inputs: Iterable[I],
        operation: Operation,
        *,
        token: Optional[CancellationToken] = None,
        limit: Optional[int] = None,
        schedule: Optional[Schedule] = None,
        should_retry: Optional[RetryPredicate] = None,
        timeout: Optional[float] = None,
    ) -> BatchResult:
        """
        Run the batch and return its terminal BatchResult.

        Args:
            inputs: Ordered inputs; one task per element
            operation: Async callable invoked once per input (per attempt)
            token: Caller token; triggering it cancels the batch
            limit: Per-call override of the executor's concurrency cap
            schedule: Wrap `operation` in a RetryingOperation with this schedule
            should_retry: Retry classification used with `schedule`
            timeout: Wall-clock deadline for the whole batch, in seconds

        Returns:
            BatchResult; task failures are reported, not raised
        """
        capacity = self.limit if limit is None else self._validate_limit(limit)
        if schedule is not None or should_retry is not None:
            operation = RetryingOperation(
                operation, schedule, should_retry, observers=self.observers
            )

        items = list(inputs)
        if timeout is not None:
            async with cancel_after(timeout, parent=token) as deadline:
                return await self._execute(items, operation, deadline, capacity)
        return await self._execute(items, operation, token, capacity)

    def _spawn(
        self, task: Task, operation: Operation, token: CancellationToken, batch_id: str
    ) -> "asyncio.Task[Any]":
        async def run_task() -> Any:
            with task_scope(TaskScope(batch_id, task.index, token)):
                with task_log_context(batch_id, task.index):
                    return await operation(task.input)

        return asyncio.get_running_loop().create_task(
            run_task(), name=f"fanout-{batch_id}-{task.index}"
        )

    async def _execute(
        self,
        inputs: List[I],
        operation: Operation,
        token: Optional[CancellationToken],
        capacity: Optional[int],
    ) -> BatchResult:
        batch_id = uuid.uuid4().hex[:12]
        observers = self._observers()
        tasks = [Task(index, value) for index, value in enumerate(inputs)]
        slots: List[ResultSlot] = [ResultSlot() for _ in tasks]
        pending: PendingQueue = PendingQueue(tasks)
        cap = capacity if capacity is not None else max(len(tasks), 1)

        batch_token = CancellationToken(name=f"batch:{batch_id}")
        if token is not None:
            batch_token.link(token)

        running: Dict["asyncio.Task[Any]", Task] = {}
        started_at: Dict[int, float] = {}
        state = BatchState.RUNNING
        failure: Optional[BaseException] = None
        batch_started = time.monotonic()

        def finish(task: Task, outcome: TaskOutcome, error=None) -> None:
            observers.emit(
                TaskFinished(
                    batch_id=batch_id,
                    index=task.index,
                    outcome=outcome,
                    duration=time.monotonic() - started_at[task.index],
                    error=error,
                )
            )

        def batch_finished(final: BatchState, error: Optional[BaseException]) -> None:
            observers.emit(
                BatchFinished(
                    batch_id=batch_id,
                    state=final.value,
                    total=len(tasks),
                    completed=sum(1 for slot in slots if slot.state is SlotState.VALUE),
                    duration=time.monotonic() - batch_started,
                    error=error,
                )
            )

        logger.debug("batch_started", batch_id=batch_id, total=len(tasks), limit=capacity)
        cancel_waiter = asyncio.ensure_future(batch_token.wait())
        try:
            while state is BatchState.RUNNING:
                if not pending and not running:
                    state = BatchState.SUCCEEDED
                    break
                if batch_token.is_triggered():
                    state = BatchState.CANCELLED
                    failure = batch_token.cancelled_error()
                    break

                while pending and len(running) < cap:
                    task = pending.pop()
                    started_at[task.index] = time.monotonic()
                    running[self._spawn(task, operation, batch_token, batch_id)] = task
                    observers.emit(TaskStarted(batch_id=batch_id, index=task.index))

                done, _ = await asyncio.wait(
                    [*running, cancel_waiter], return_when=asyncio.FIRST_COMPLETED
                )
                finished = sorted(
                    (fut for fut in done if fut is not cancel_waiter),
                    key=lambda fut: running[fut].index,
                )
                for fut in finished:
                    task = running.pop(fut)
                    error = _task_error(fut)

                    if state.terminal:
                        finish(task, TaskOutcome.DISCARDED, error)
                    elif batch_token.is_triggered():
                        # cancelled from outside while this task was finishing
                        state = BatchState.CANCELLED
                        failure = batch_token.cancelled_error()
                        finish(
                            task,
                            TaskOutcome.CANCELLED
                            if isinstance(error, OperationCancelledError)
                            else TaskOutcome.DISCARDED,
                            error,
                        )
                    elif error is not None:
                        slots[task.index].write_error(error)
                        state = BatchState.FAILED
                        failure = error
                        batch_token.trigger(error)
                        finish(task, TaskOutcome.FAILED, error)
                    else:
                        slots[task.index].write_value(fut.result())
                        finish(task, TaskOutcome.SUCCEEDED)

            dropped = pending.clear()
            if dropped:
                logger.debug("pending_dropped", batch_id=batch_id, count=len(dropped))
            if running:
                await self._drain(running, finish, batch_id)
        except asyncio.CancelledError:
            interrupted = OperationCancelledError("Executor cancelled")
            batch_token.trigger(interrupted)
            for fut, task in running.items():
                fut.cancel()
                finish(task, TaskOutcome.CANCELLED)
            batch_finished(BatchState.CANCELLED, interrupted)
            raise
        finally:
            cancel_waiter.cancel()
            if token is not None:
                batch_token.unlink(token)

        results = [slot.value for slot in slots] if state is BatchState.SUCCEEDED else None
        batch_finished(state, failure)
        return BatchResult(
            batch_id=batch_id, state=state, results=results, error=failure, slots=slots
        )

    async def _drain(
        self,
        running: Dict["asyncio.Task[Any]", Task],
        finish: Callable[..., None],
        batch_id: str,
    ) -> None:
        """Wait for in-flight tasks to observe the triggered token; discard results."""
        done, still_running = await asyncio.wait(list(running), timeout=self.drain_timeout)
        for fut in done:
            task = running.pop(fut)
            error = _task_error(fut)
            finish(
                task,
                TaskOutcome.CANCELLED
                if isinstance(error, OperationCancelledError)
                else TaskOutcome.DISCARDED,
                error,
            )
        if still_running:
            logger.warning(
                "inflight_abandoned",
                batch_id=batch_id,
                count=len(still_running),
                drain_timeout_s=self.drain_timeout,
            )
            for fut in still_running:
                task = running.pop(fut)
                fut.add_done_callback(_task_error)
                finish(task, TaskOutcome.ABANDONED)


def _task_error(fut: "asyncio.Future[Any]") -> Optional[BaseException]:
    """Retrieve a finished task's exception, mapping asyncio cancellation."""
    if fut.cancelled():
        return OperationCancelledError("Task was cancelled")
    return fut.exception()


async def run_bounded(
    inputs: Iterable[I],
    operation: Operation,
    *,
    limit: int,
    token: Optional[CancellationToken] = None,
    **kwargs: Any,
) -> List[O]:
    """Run `operation` over `inputs` with at most `limit` concurrently in flight."""
    return await BoundedExecutor(limit).run(inputs, operation, token=token, **kwargs)
