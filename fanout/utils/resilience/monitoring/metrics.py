from __future__ import annotations

from typing import Any

from prometheus_client import Counter, Gauge, Histogram

from .events import AttemptFailed, BatchFinished, RetryDecision, TaskFinished, TaskStarted


class _ExecutorMetrics:
    def __init__(self) -> None:
        self.tasks_inflight = Gauge(
            "fanout_tasks_inflight",
            "Operations currently running under a bounded executor",
        )
        self.tasks_total = Counter(
            "fanout_tasks_total",
            "Finished executor tasks by outcome",
            ["outcome"],
        )
        self.attempt_failures_total = Counter(
            "fanout_attempt_failures_total",
            "Failed operation attempts by retry decision",
            ["decision"],
        )
        self.retry_delay_seconds = Histogram(
            "fanout_retry_delay_seconds",
            "Delays chosen by retry schedules",
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30),
        )
        self.batches_total = Counter(
            "fanout_batches_total",
            "Finished batches by terminal state",
            ["state"],
        )

    def task_started(self) -> None:
        self.tasks_inflight.inc()

    def task_finished(self, outcome: str) -> None:
        self.tasks_inflight.dec()
        self.tasks_total.labels(outcome=outcome).inc()

    def attempt_failed(self, decision: str, delay: float | None) -> None:
        self.attempt_failures_total.labels(decision=decision).inc()
        if delay is not None:
            self.retry_delay_seconds.observe(delay)

    def batch_finished(self, state: str) -> None:
        self.batches_total.labels(state=state).inc()


executor_metrics = _ExecutorMetrics()


class MetricsObserver:
    """Feed events into the prometheus collectors above."""

    def __init__(self, metrics: _ExecutorMetrics = executor_metrics) -> None:
        self.metrics = metrics

    def __call__(self, event: Any) -> None:
        if isinstance(event, TaskStarted):
            self.metrics.task_started()
        elif isinstance(event, TaskFinished):
            self.metrics.task_finished(event.outcome.value)
        elif isinstance(event, AttemptFailed):
            delay = event.delay if event.decision == RetryDecision.RETRY else None
            self.metrics.attempt_failed(event.decision.value, delay)
        elif isinstance(event, BatchFinished):
            self.metrics.batch_finished(event.state)
