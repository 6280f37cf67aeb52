"""Error taxonomy for provider calls and reconciliation outcomes."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .waiter import WaitSpec


class ReconcileError(Exception):
    """Base class for every error reported by a reconciliation."""

    kind = "error"
    retryable = False


class ProviderError(ReconcileError):
    """Raised by a provider adapter; wraps the provider's own exception."""

    def __init__(self, message: str, *, original: BaseException | None = None) -> None:
        super().__init__(message)
        self.original = original
        if original is not None:
            self.__cause__ = original


class NotFound(ProviderError):
    """The remote object does not exist."""

    kind = "not_found"


class Throttled(ProviderError):
    """The provider rejected the call due to rate limiting."""

    kind = "throttled"
    retryable = True


class Conflict(ProviderError):
    """Stale version token, precondition failure or a concurrent modification."""

    kind = "conflict"
    retryable = True


class Fatal(ProviderError):
    """Validation rejected, permission denied, quota exceeded."""

    kind = "fatal"


class WaitTimeout(ReconcileError):
    """The provider accepted a change but never converged before the deadline."""

    kind = "wait_timeout"

    def __init__(self, phase: str, spec: WaitSpec) -> None:
        super().__init__(f"Timed out after {spec.maximum:g}s waiting for {phase} to converge")
        self.phase = phase
        self.spec = spec


class Inconsistency(ReconcileError):
    """The remote object disappeared while it was being updated."""

    kind = "inconsistency"
