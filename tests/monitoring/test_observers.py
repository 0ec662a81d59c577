"""
Tests for the event registry and its logging/metrics observers.
"""

import pytest
from prometheus_client import REGISTRY
from structlog.testing import capture_logs

from fanout.utils.error_handler import ErrorCategory, ErrorHandler, FatalError
from fanout.utils.resilience.executor import BoundedExecutor
from fanout.utils.resilience.monitoring import (
    AttemptFailed,
    BatchFinished,
    LoggingObserver,
    MetricsObserver,
    Observers,
    RetryContext,
    RetryDecision,
    TaskFinished,
    TaskOutcome,
    TaskStarted,
    get_default_observers,
)


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestObservers:
    def test_emit_reaches_every_subscriber(self):
        first, second = [], []
        registry = Observers([first.append])
        registry.subscribe(second.append)

        registry.emit("event")

        assert first == second == ["event"]
        assert len(registry) == 2

    def test_unsubscribe(self):
        seen = []
        registry = Observers()
        unsubscribe = registry.subscribe(seen.append)
        unsubscribe()
        unsubscribe()  # idempotent
        registry.emit("event")
        assert seen == []
        assert len(registry) == 0

    def test_failing_observer_is_isolated(self):
        seen = []

        def broken(event):
            raise RuntimeError("observer bug")

        registry = Observers([broken, seen.append])
        with capture_logs() as logs:
            registry.emit(TaskStarted(batch_id="b", index=0))

        assert len(seen) == 1
        assert logs[0]["event"] == "observer_error"
        assert logs[0]["observer"] == "broken"

    def test_default_registry_is_shared(self):
        assert get_default_observers() is get_default_observers()
        assert len(get_default_observers()) >= 1


class TestLoggingObserver:
    def test_retry_events(self):
        observer = LoggingObserver()
        error = ConnectionError("down")
        with capture_logs() as logs:
            observer(
                AttemptFailed(
                    operation="fetch_lead",
                    context=RetryContext(attempt=1, error=error),
                    decision=RetryDecision.RETRY,
                    elapsed=0.0,
                    delay=0.25,
                    batch_id="b1",
                    index=3,
                )
            )
            observer(
                AttemptFailed(
                    operation="fetch_lead",
                    context=RetryContext(attempt=2, error=error),
                    decision=RetryDecision.EXHAUSTED,
                    elapsed=0.25,
                )
            )

        scheduled, stopped = logs
        assert scheduled["event"] == "retry_scheduled"
        assert scheduled["log_level"] == "warning"
        assert scheduled["next_delay_s"] == 0.25
        assert scheduled["task_index"] == 3
        assert stopped["event"] == "retry_stopped"
        assert stopped["decision"] == "exhausted"
        assert "batch_id" not in stopped

    def test_failed_batch_goes_through_error_handler(self):
        handler = ErrorHandler()
        observer = LoggingObserver(error_handler=handler)
        with capture_logs() as logs:
            observer(
                BatchFinished(
                    batch_id="b2",
                    state="failed",
                    total=3,
                    completed=1,
                    duration=0.5,
                    error=FatalError("bad lead"),
                )
            )

        assert [entry["event"] for entry in logs] == ["batch_finished", "operation_error"]
        assert handler.error_count("FatalError", ErrorCategory.OPERATION) == 1


class TestMetricsObserver:
    def test_counts_task_and_batch_events(self):
        observer = MetricsObserver()
        inflight = sample("fanout_tasks_inflight")
        succeeded = sample("fanout_tasks_total", outcome="succeeded")
        batches = sample("fanout_batches_total", state="succeeded")

        observer(TaskStarted(batch_id="b", index=0))
        assert sample("fanout_tasks_inflight") == inflight + 1

        observer(
            TaskFinished(batch_id="b", index=0, outcome=TaskOutcome.SUCCEEDED, duration=0.1)
        )
        observer(
            BatchFinished(batch_id="b", state="succeeded", total=1, completed=1, duration=0.1)
        )

        assert sample("fanout_tasks_inflight") == inflight
        assert sample("fanout_tasks_total", outcome="succeeded") == succeeded + 1
        assert sample("fanout_batches_total", state="succeeded") == batches + 1

    def test_retry_delays_are_observed_only_for_retries(self):
        observer = MetricsObserver()
        delays = sample("fanout_retry_delay_seconds_count")
        fatal = sample("fanout_attempt_failures_total", decision="fatal")
        context = RetryContext(attempt=1, error=FatalError("x"))

        observer(AttemptFailed("op", context, RetryDecision.RETRY, 0.0, delay=0.1))
        observer(AttemptFailed("op", context, RetryDecision.FATAL, 0.1))

        assert sample("fanout_retry_delay_seconds_count") == delays + 1
        assert sample("fanout_attempt_failures_total", decision="fatal") == fatal + 1

    @pytest.mark.asyncio
    async def test_executor_feeds_metrics(self):
        registry = Observers([MetricsObserver()])
        before = sample("fanout_tasks_total", outcome="succeeded")

        async def double(value):
            return value * 2

        await BoundedExecutor(2, observers=registry).run([1, 2, 3], double)

        assert sample("fanout_tasks_total", outcome="succeeded") == before + 3
