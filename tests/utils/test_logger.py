"""
Tests for the structlog configuration helpers.
"""

import pytest
import structlog
from structlog.contextvars import get_contextvars

from fanout.core.config import settings
from fanout.utils.logger import (
    _add_app_name,
    add_task_context,
    build_processors,
    task_log_context,
)
from fanout.utils.resilience.executor import BoundedExecutor


class TestProcessors:
    def test_json_chain(self):
        processors = build_processors(json_logs=True)
        assert processors[0] is structlog.contextvars.merge_contextvars
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_chain(self):
        processors = build_processors(json_logs=False)
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_app_name_does_not_override_explicit_value(self):
        assert _add_app_name(None, "info", {})["app"] == settings.APP_NAME
        assert _add_app_name(None, "info", {"app": "crm"})["app"] == "crm"


class TestTaskContext:
    def test_add_task_context(self):
        assert add_task_context("b1") == {"batch_id": "b1"}
        assert add_task_context("b1", 0) == {"batch_id": "b1", "task_index": 0}

    def test_task_log_context_binds_and_restores(self):
        with task_log_context("b2", 5):
            assert get_contextvars() == {"batch_id": "b2", "task_index": 5}
        assert "batch_id" not in get_contextvars()

    @pytest.mark.asyncio
    async def test_executor_tasks_log_with_their_context(self, observers):
        async def capture(value):
            return get_contextvars()

        contexts = await BoundedExecutor(2, observers=observers).run(["a", "b"], capture)

        assert [c["task_index"] for c in contexts] == [0, 1]
        assert contexts[0]["batch_id"] == contexts[1]["batch_id"]
        assert "batch_id" not in get_contextvars()
