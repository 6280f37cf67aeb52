"""Blueprint model -- a named, ordered collection of operations."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from pydantic import BaseModel, Field

from .context import Context
from .operations import Operation
from .reconciler import Outcome

logger = logging.getLogger(__name__)


class Blueprint(BaseModel):
    """A named collection of operations applied in declaration order."""

    model_config = {"arbitrary_types_allowed": True}

    name: str
    description: str = ""
    ops: list[Operation] = Field(default_factory=list)

    def __iter__(self) -> Iterator[Operation]:  # type: ignore[override]
        return iter(self.ops)

    def __len__(self) -> int:
        return len(self.ops)

    def build(self, ctx: Context | None = None) -> list[Outcome]:
        """Run every operation in order, stopping after the first one that fails.

        Later operations may depend on earlier ones, so a failure or a
        cancellation ends the run.
        """
        ctx = ctx or Context()
        logger.info("Building blueprint '%s'", self.name)
        outcomes: list[Outcome] = []
        for op in self.ops:
            outcome = op(ctx)
            outcomes.append(outcome)
            if outcome.error is not None:
                logger.error("Blueprint '%s' stopped at %s: %s", self.name, op.label, outcome.error)
                break
            if outcome.cancelled:
                logger.info("Blueprint '%s' cancelled at %s", self.name, op.label)
                break
        return outcomes
