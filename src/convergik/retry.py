"""Retry with exponential backoff for retryable provider errors."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel, Field

from .errors import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """Attempt budget and backoff curve for throttled or conflicting calls."""

    model_config = {"frozen": True}

    max_attempts: int = Field(default=5, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    factor: float = Field(default=2.0, ge=1)
    max_delay: float = Field(default=30.0, ge=0)

    def delay(self, attempt: int) -> float:
        """Backoff before the attempt following `attempt` (1-based)."""
        return min(self.base_delay * self.factor ** (attempt - 1), self.max_delay)


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    description: str = "provider call",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Invoke fn, retrying ProviderErrors marked retryable until the budget runs out.

    Non-retryable errors and the final retryable error propagate unchanged.
    """
    attempt = 1
    while True:
        try:
            return fn()
        except ProviderError as exc:
            if not exc.retryable or attempt >= policy.max_attempts:
                raise
            delay = policy.delay(attempt)
            logger.warning(
                "%s failed (%s: %s); retrying in %.1fs [%d/%d]",
                description,
                exc.kind,
                exc,
                delay,
                attempt,
                policy.max_attempts,
            )
            sleep(delay)
            attempt += 1
