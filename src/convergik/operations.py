"""Operation strategies -- what to do with one desired instance."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from .context import Context
from .instance import ResourceInstance
from .reconciler import Outcome, Reconciler

logger = logging.getLogger(__name__)


class Operation(ABC):
    """Wraps a desired instance with the reconciler that converges it."""

    def __init__(self, reconciler: Reconciler, instance: ResourceInstance) -> None:
        self.reconciler = reconciler
        self.instance = instance

    @property
    def label(self) -> str:
        return f"{self.instance.resource_type} '{self.instance.key or '?'}'"

    @abstractmethod
    def __call__(self, ctx: Context) -> Outcome: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label})"


class Present(Operation):
    """Create only if the resource doesn't exist; never update it."""

    def __call__(self, ctx: Context) -> Outcome:
        logger.debug("Ensuring %s is present", self.label)
        return self.reconciler.reconcile(self.instance, ctx, allow_update=False)


class Ensure(Operation):
    """Create, update or replace until the resource matches."""

    def __call__(self, ctx: Context) -> Outcome:
        logger.debug("Ensuring %s matches", self.label)
        return self.reconciler.reconcile(self.instance, ctx)


class Absent(Operation):
    """Remove the resource if it exists."""

    def __call__(self, ctx: Context) -> Outcome:
        logger.debug("Ensuring %s is absent", self.label)
        return self.reconciler.delete(self.instance, ctx)
