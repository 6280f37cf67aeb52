"""Runtime settings and per-run context for reconciliation."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from .retry import RetryPolicy
from .tags import DEFAULT_RESERVED_PREFIXES
from .waiter import WaitSpec

if TYPE_CHECKING:
    from .lifecycle import TransitionEvent
    from .state import StateStore


class Settings(BaseModel):
    """Tunables shared by every reconciliation in a run."""

    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    wait: WaitSpec = Field(default_factory=lambda: WaitSpec(maximum=600, interval=10))
    reserved_tag_prefixes: tuple[str, ...] = DEFAULT_RESERVED_PREFIXES


class Context:
    """Runtime state passed through a reconciliation."""

    def __init__(
        self,
        *,
        dry_run: bool = False,
        settings: Settings | None = None,
        cancel: threading.Event | None = None,
        listeners: Iterable[Callable[[TransitionEvent], None]] = (),
        store: StateStore | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.dry_run = dry_run
        self.settings = settings or Settings()
        self.cancel = cancel or threading.Event()
        self.listeners = list(listeners)
        self.store = store
        self.sleep = sleep
        self.clock = clock

    def emit(self, event: TransitionEvent) -> None:
        for listener in self.listeners:
            listener(event)
