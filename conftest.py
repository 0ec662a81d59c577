#!/usr/bin/env python3
"""
Shared fixtures for the fanout test-suite
"""

import asyncio
import os
import sys
from typing import Any, List

import pytest
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from fanout.utils.resilience.monitoring import Observers  # noqa: E402


class RecordingObserver:
    """Collects every emitted event for later assertions."""

    def __init__(self) -> None:
        self.events: List[Any] = []

    def __call__(self, event: Any) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> List[Any]:
        return [e for e in self.events if isinstance(e, event_type)]


class FakeClock:
    """Monotonic clock advanced only by the patched `asyncio.sleep`."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def recorder() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def observers(recorder: RecordingObserver) -> Observers:
    """Isolated registry so tests do not depend on global log/metric observers."""
    return Observers([recorder])


@pytest.fixture
def fake_clock(monkeypatch) -> FakeClock:
    """Make `asyncio.sleep` instantaneous while advancing a fake clock."""
    clock = FakeClock()
    real_sleep = asyncio.sleep

    async def fake_sleep(delay, result=None):
        clock.sleeps.append(delay)
        clock.now += delay
        await real_sleep(0)
        return result

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return clock
