import asyncio
import time

import pytest

from fanout.utils.error_handler import (
    FatalError,
    OperationCancelledError,
    RetryableError,
)
from fanout.utils.resilience.cancellation import CancellationToken, TaskScope, task_scope
from fanout.utils.resilience.monitoring import AttemptFailed, RetryDecision
from fanout.utils.resilience.retry import RetryingOperation, retry, retry_on
from fanout.utils.resilience.schedule import (
    either,
    exponential,
    recurs,
    spaced,
    while_input,
)

pytestmark = pytest.mark.asyncio


class KindError(Exception):
    def __init__(self, kind: str):
        super().__init__(kind)
        self.kind = kind


def flaky(failures):
    """Operation raising each error of `failures` in turn, then returning 'ok'."""
    calls = {"n": 0}
    queue = list(failures)

    async def operation(value=None):
        calls["n"] += 1
        if queue:
            raise queue.pop(0)
        return "ok"

    return operation, calls


async def test_retries_until_success(fake_clock, observers):
    operation, calls = flaky([ConnectionError("a"), ConnectionError("b")])
    retrying = RetryingOperation(
        operation, exponential(0.01, 2), observers=observers, clock=fake_clock
    )

    assert await retrying("lead-1") == "ok"
    assert calls["n"] == 3
    assert fake_clock.sleeps == pytest.approx([0.01, 0.02])


async def test_non_retryable_error_propagates_immediately(fake_clock, observers):
    boom = ValueError("bad input")
    operation, calls = flaky([boom])
    retrying = RetryingOperation(operation, spaced(1), observers=observers)

    with pytest.raises(ValueError) as exc_info:
        await retrying()
    assert exc_info.value is boom
    assert calls["n"] == 1
    assert fake_clock.sleeps == []


async def test_exhausted_schedule_surfaces_last_operation_error(fake_clock, observers):
    errors = [RetryableError("1"), RetryableError("2"), RetryableError("3")]
    operation, calls = flaky(errors)
    retrying = RetryingOperation(operation, spaced(0.1) & recurs(2), observers=observers)

    with pytest.raises(RetryableError) as exc_info:
        await retrying()
    assert exc_info.value is errors[2]
    assert calls["n"] == 3


async def test_elapsed_budget_halts_with_original_error(fake_clock, observers):
    calls = {"n": 0}

    async def always_down():
        calls["n"] += 1
        raise ConnectionError("lead service unavailable")

    schedule = either(exponential(0.01, 2), spaced(1)).up_to(30)
    retrying = RetryingOperation(always_down, schedule, observers=observers, clock=fake_clock)

    with pytest.raises(ConnectionError, match="lead service unavailable"):
        await retrying()
    assert sum(fake_clock.sleeps) <= 30
    assert sum(fake_clock.sleeps) + 1 > 30
    assert calls["n"] == len(fake_clock.sleeps) + 1


async def test_while_input_stops_on_fatal_kind(fake_clock, observers):
    transient, fatal = KindError("Transient"), KindError("Fatal")
    operation, calls = flaky([transient, fatal, KindError("Transient")])
    schedule = while_input(spaced(0.1), lambda e: e.kind != "Fatal")
    retrying = RetryingOperation(
        operation, schedule, should_retry=lambda e: True, observers=observers
    )

    with pytest.raises(KindError) as exc_info:
        await retrying()
    assert exc_info.value is fatal
    assert calls["n"] == 2


async def test_triggered_token_fails_without_invoking(observers):
    token = CancellationToken()
    token.trigger("shutdown")
    operation, calls = flaky([])
    retrying = RetryingOperation(operation, spaced(1), token=token, observers=observers)

    with pytest.raises(OperationCancelledError) as exc_info:
        await retrying()
    assert exc_info.value.reason == "shutdown"
    assert calls["n"] == 0


async def test_cancellation_interrupts_retry_wait(observers):
    token = CancellationToken()
    cause = ConnectionError("down")
    operation, calls = flaky([cause, cause])
    retrying = RetryingOperation(operation, spaced(10), token=token, observers=observers)

    asyncio.get_running_loop().call_later(0.02, token.trigger)
    started = time.monotonic()
    with pytest.raises(OperationCancelledError) as exc_info:
        await retrying()
    assert time.monotonic() - started < 5
    assert exc_info.value.__cause__ is cause
    assert calls["n"] == 1


async def test_real_delays_match_schedule(observers):
    operation, calls = flaky([TimeoutError(), TimeoutError()])
    retrying = RetryingOperation(operation, spaced(0.02), observers=observers)

    started = time.monotonic()
    assert await retrying() == "ok"
    elapsed = time.monotonic() - started

    assert calls["n"] == 3
    assert 0.04 <= elapsed < 0.04 + 0.5


async def test_uses_token_of_enclosing_task_scope(observers):
    token = CancellationToken()
    token.trigger()
    operation, calls = flaky([])
    retrying = RetryingOperation(operation, spaced(1), observers=observers)

    with task_scope(TaskScope("batch", 0, token)):
        with pytest.raises(OperationCancelledError):
            await retrying()
    assert calls["n"] == 0


async def test_asyncio_cancellation_is_not_retried(observers):
    calls = {"n": 0}

    async def interrupted():
        calls["n"] += 1
        raise asyncio.CancelledError()

    retrying = RetryingOperation(
        interrupted, spaced(0), should_retry=lambda e: True, observers=observers
    )
    with pytest.raises(asyncio.CancelledError):
        await retrying()
    assert calls["n"] == 1


async def test_attempt_events(fake_clock, observers, recorder):
    operation, _ = flaky([ConnectionError("x"), FatalError("stop")])
    retrying = RetryingOperation(operation, spaced(0.5), observers=observers, clock=fake_clock)

    with pytest.raises(FatalError):
        await retrying()

    events = recorder.of_type(AttemptFailed)
    assert [e.decision for e in events] == [RetryDecision.RETRY, RetryDecision.FATAL]
    assert [e.context.attempt for e in events] == [1, 2]
    assert events[0].delay == 0.5
    assert events[1].elapsed == pytest.approx(0.5)
    assert events[0].batch_id is None


async def test_retry_decorator(fake_clock, observers):
    calls = {"n": 0}

    @retry(spaced(0.1) & recurs(3), retry_on(KeyError), observers=observers)
    async def lookup(lead_id, *, region="eu"):
        calls["n"] += 1
        if calls["n"] < 3:
            raise KeyError(lead_id)
        return f"{region}:{lead_id}"

    assert await lookup("42", region="us") == "us:42"
    assert calls["n"] == 3
    assert lookup.__name__ == "lookup"
    assert isinstance(lookup.retrying, RetryingOperation)


async def test_retry_decorator_rejects_sync_functions():
    with pytest.raises(TypeError):

        @retry(spaced(0))
        def not_async():
            return None
