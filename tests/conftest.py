"""Shared fixtures."""

from __future__ import annotations

import pytest
from fakes import FakeClock, FakeClusters, FakeQueues

from convergik.context import Context, Settings
from convergik.retry import RetryPolicy
from convergik.waiter import WaitSpec


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        retry=RetryPolicy(max_attempts=5, base_delay=1.0, factor=2.0, max_delay=8.0),
        wait=WaitSpec(maximum=30, interval=5),
    )


@pytest.fixture
def ctx(clock: FakeClock, settings: Settings) -> Context:
    return Context(settings=settings, sleep=clock.sleep, clock=clock)


@pytest.fixture
def queues() -> FakeQueues:
    return FakeQueues()


@pytest.fixture
def clusters() -> FakeClusters:
    return FakeClusters()
