"""Lifecycle states of a reconciled resource and the transitions between them."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class LifecycleState(StrEnum):
    ABSENT = "absent"
    PENDING_CREATE = "pending_create"
    ACTIVE = "active"
    PENDING_UPDATE = "pending_update"
    PENDING_DISABLE_THEN_DELETE = "pending_disable_then_delete"
    PENDING_DELETE = "pending_delete"
    DELETED = "deleted"
    FAILED = "failed"

    @property
    def pending(self) -> bool:
        return self.startswith("pending_")

    @property
    def terminal(self) -> bool:
        return self in (LifecycleState.DELETED, LifecycleState.FAILED)


_S = LifecycleState

# PENDING_DISABLE_THEN_DELETE means the disable step converged and only the
# delete is outstanding. A pending create or update may find the object gone
# when a later run resumes it.
TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    _S.ABSENT: frozenset({_S.PENDING_CREATE, _S.DELETED, _S.FAILED}),
    _S.PENDING_CREATE: frozenset({_S.ACTIVE, _S.PENDING_DELETE, _S.ABSENT, _S.FAILED}),
    _S.ACTIVE: frozenset(
        {_S.PENDING_UPDATE, _S.PENDING_DELETE, _S.PENDING_DISABLE_THEN_DELETE, _S.ABSENT, _S.FAILED}
    ),
    _S.PENDING_UPDATE: frozenset(
        {_S.ACTIVE, _S.PENDING_DELETE, _S.PENDING_DISABLE_THEN_DELETE, _S.ABSENT, _S.FAILED}
    ),
    _S.PENDING_DISABLE_THEN_DELETE: frozenset({_S.PENDING_DELETE, _S.DELETED, _S.FAILED}),
    _S.PENDING_DELETE: frozenset({_S.ABSENT, _S.DELETED, _S.FAILED}),
    _S.DELETED: frozenset({_S.PENDING_CREATE}),
    _S.FAILED: frozenset(),
}


def can_transition(old: LifecycleState, new: LifecycleState) -> bool:
    return new in TRANSITIONS[old]


class TransitionEvent(BaseModel):
    """Structured record emitted after every lifecycle transition."""

    model_config = {"frozen": True}

    resource_type: str
    id: str | None
    old_state: LifecycleState
    new_state: LifecycleState
    changed_fields: tuple[str, ...] = ()
