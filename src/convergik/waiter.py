"""Waiter -- bounded polling until a remote condition is observed."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import TypeVar

from pydantic import BaseModel, model_validator

logger = logging.getLogger(__name__)

S = TypeVar("S")


class WaitSpec(BaseModel):
    """How long to wait for convergence and how often to check."""

    model_config = {"frozen": True}

    maximum: float
    interval: float

    @model_validator(mode="after")
    def _check_bounds(self) -> WaitSpec:
        if self.interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {self.interval:g}")
        if self.interval > self.maximum:
            raise ValueError(
                f"Poll interval ({self.interval:g}s) exceeds maximum duration ({self.maximum:g}s)"
            )
        return self


class WaitOutcome(Enum):
    """Result of a wait; only SATISFIED is truthy."""

    SATISFIED = "satisfied"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    def __bool__(self) -> bool:
        return self is WaitOutcome.SATISFIED


def wait(
    poll: Callable[[], S | None],
    predicate: Callable[[S | None], bool],
    spec: WaitSpec,
    *,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> WaitOutcome:
    """Poll until the predicate holds, the deadline passes or the wait is cancelled.

    The first poll happens immediately. Sleeps never extend past the deadline,
    so the total time spent is bounded by `spec.maximum` plus one poll.
    """
    started = clock()
    polls = 0

    while True:
        snapshot = poll()
        polls += 1
        if predicate(snapshot):
            logger.debug("Wait satisfied after %d poll(s)", polls)
            return WaitOutcome.SATISFIED

        elapsed = clock() - started
        if elapsed >= spec.maximum:
            logger.debug("Wait timed out after %d poll(s) (%.1fs)", polls, elapsed)
            return WaitOutcome.TIMED_OUT

        if cancel is not None and cancel.is_set():
            logger.debug("Wait cancelled after %d poll(s)", polls)
            return WaitOutcome.CANCELLED

        sleep(min(spec.interval, spec.maximum - elapsed))
