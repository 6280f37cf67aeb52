"""Reconciler -- drive one resource instance through its lifecycle.

A reconciliation issues provider calls in a fixed order: describe, then at
most one of create/update/delete (delete-then-create for a replacement),
then a bounded wait for the provider to converge. Errors are returned in
the Outcome rather than raised; the identifier of anything already created
is kept so the next attempt resumes from describe.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from .context import Context
from .diff import ChangeSet, diff
from .errors import Inconsistency, NotFound, ProviderError, ReconcileError, WaitTimeout
from .instance import Provenance, ResourceInstance, validate_desired
from .lifecycle import LifecycleState, TransitionEvent, can_transition
from .provider import ProviderAdapter
from .retry import call_with_retry
from .state import StateRecord
from .tags import managed_tags, reconcile_tags
from .waiter import WaitOutcome, WaitSpec, wait

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Outcome:
    """The final instance and lifecycle state of one reconciliation."""

    instance: ResourceInstance
    state: LifecycleState
    error: ReconcileError | None = None
    changes: ChangeSet = field(default_factory=ChangeSet)
    cancelled: bool = False

    def __iter__(self) -> Iterator[Any]:
        yield self.instance
        yield self.error

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


class _Cancelled(Exception):
    pass


class Reconciler:
    """Converges remote objects of one resource type toward desired instances."""

    def __init__(self, adapter: ProviderAdapter) -> None:
        self.adapter = adapter

    @property
    def resource_type(self) -> str:
        return self.adapter.resource_type

    def reconcile(
        self,
        desired: ResourceInstance,
        ctx: Context | None = None,
        *,
        allow_update: bool = True,
    ) -> Outcome:
        """Create, update, replace or leave alone the object behind `desired`."""
        validate_desired(desired, self.adapter.schema)
        return _Run(self.adapter, ctx or Context(), self._named(desired)).reconcile(allow_update)

    def delete(self, target: ResourceInstance, ctx: Context | None = None) -> Outcome:
        """Delete the object behind `target`, disabling deletion protection first."""
        if target.resource_type != self.resource_type:
            raise ValueError(
                f"Cannot delete a '{target.resource_type}' with the '{self.resource_type}' adapter"
            )
        return _Run(self.adapter, ctx or Context(), self._named(target)).delete()

    def _named(self, instance: ResourceInstance) -> ResourceInstance:
        """Take the logical name from the identifier property when none is given."""
        identifier = self.adapter.schema.identifier
        if instance.name is not None or identifier is None:
            return instance
        value = instance.get(identifier)
        if value is None:
            return instance
        return instance.evolve(name=str(value))


class _Disable(Enum):
    """How the disable step before a protected delete ended."""

    CONVERGED = "converged"
    GONE = "gone"
    SKIPPED = "skipped"


# Stored states a reconcile resumes by waiting rather than calling the provider again.
_RESUMABLE = {
    LifecycleState.PENDING_CREATE: "create",
    LifecycleState.PENDING_UPDATE: "update",
}


class _Run:
    """State for a single reconcile or delete invocation."""

    def __init__(self, adapter: ProviderAdapter, ctx: Context, desired: ResourceInstance) -> None:
        self.adapter = adapter
        self.ctx = ctx
        self.desired = desired
        self.instance = desired
        self.state = LifecycleState.ABSENT
        self.changes = ChangeSet()
        self.stored: StateRecord | None = None

        store = ctx.store
        if store is not None and desired.key is not None:
            self.stored = store.get(desired.resource_type, desired.key)
            if self.stored is not None and desired.id is None and self.stored.instance.id:
                logger.debug(
                    "Resuming %s '%s' with recorded id '%s'",
                    desired.resource_type,
                    desired.key,
                    self.stored.instance.id,
                )
                self.instance = desired.with_id(self.stored.instance.id)

    @property
    def id(self) -> str | None:
        return self.instance.id

    @property
    def label(self) -> str:
        return f"{self.adapter.resource_type} '{self.instance.name or self.id or '?'}'"

    def _stored_state(self) -> LifecycleState | None:
        """The recorded state, when the record describes the same remote object."""
        if self.stored is None or self.stored.instance.id != self.id:
            return None
        return self.stored.state

    # -- entry points --

    def reconcile(self, allow_update: bool) -> Outcome:
        try:
            resource_id = self.id
            if resource_id is None:
                return self._create()

            stored = self._stored_state()
            self.state = stored if stored in _RESUMABLE else LifecycleState.ACTIVE
            snapshot = self._describe(resource_id)
            if snapshot is None:
                logger.info("%s no longer exists; recreating", self.label)
                self._transition(LifecycleState.ABSENT)
                self.instance = self.instance.with_id(None)
                return self._create()

            if self.state in _RESUMABLE:
                if self.ctx.dry_run:
                    logger.info("[DRY RUN] Would resume %s in state %s", self.label, self.state)
                    return self._outcome(snapshot)
                resumed = self._resume(resource_id)
                if resumed is None:
                    return self._outcome(None)
                snapshot = resumed

            return self._converge(resource_id, snapshot, allow_update)
        except ReconcileError as exc:
            return self._fail(exc)
        except _Cancelled:
            return self._cancelled()

    def delete(self) -> Outcome:
        resuming = self._stored_state() == LifecycleState.PENDING_DISABLE_THEN_DELETE
        try:
            resource_id = self.id
            if resource_id is None:
                logger.debug("Skipping removal of %s; not present", self.label)
                return Outcome(self.instance, LifecycleState.ABSENT)

            self.state = LifecycleState.ACTIVE
            snapshot = self._describe(resource_id)
            if snapshot is None:
                logger.debug("Skipping removal of %s; not present", self.label)
                self._forget()
                return Outcome(self.instance.with_id(None), LifecycleState.ABSENT)

            if self.ctx.dry_run:
                logger.info("[DRY RUN] Would remove %s", self.label)
                return self._outcome(snapshot)

            if resuming:
                logger.info("Resuming removal of %s; protection already disabled", self.label)
                self.state = LifecycleState.PENDING_DISABLE_THEN_DELETE

            logger.info("Removing %s", self.label)
            self._delete_sequence(resource_id, snapshot, LifecycleState.DELETED)
            return Outcome(self.instance, self.state)
        except ReconcileError as exc:
            return self._fail(exc)
        except _Cancelled:
            return self._cancelled()

    # -- lifecycle paths --

    def _create(self) -> Outcome:
        self.state = LifecycleState.ABSENT
        if self.ctx.dry_run:
            logger.info("[DRY RUN] Would create %s", self.label)
            return Outcome(self.instance, self.state, changes=self.changes)

        logger.info("Creating %s", self.label)
        new_id = self._call("create", lambda: self.adapter.create(self.desired))
        self.instance = self.desired.with_id(new_id)
        self._transition(LifecycleState.PENDING_CREATE, sorted(self.desired.properties))

        snapshot = self._wait(new_id, "create", self.adapter.is_ready, self.adapter.create_wait)
        snapshot = self._converge_tags_after_create(new_id, snapshot)

        self._transition(LifecycleState.ACTIVE)
        return self._outcome(snapshot)

    def _resume(self, resource_id: str) -> ResourceInstance | None:
        """Finish the wait an earlier run left outstanding."""
        phase = _RESUMABLE[self.state]
        logger.info("Resuming %s of %s", phase, self.label)
        if phase == "create":
            snapshot = self._wait(resource_id, phase, self.adapter.is_ready, self.adapter.create_wait)
            snapshot = self._converge_tags_after_create(resource_id, snapshot)
        else:
            snapshot = self._wait(resource_id, phase, self.adapter.is_ready, self.adapter.update_wait)
        self._transition(LifecycleState.ACTIVE)
        return snapshot

    def _converge(
        self,
        resource_id: str,
        snapshot: ResourceInstance,
        allow_update: bool,
    ) -> Outcome:
        changes = diff(snapshot, self.instance, self.adapter.schema.properties)
        self.changes = changes

        if not changes:
            logger.debug("Skipping %s; up to date", self.label)
            self._persist()
            return self._outcome(snapshot)

        if not allow_update:
            logger.debug(
                "Skipping %s; exists with drifted properties %s",
                self.label,
                sorted(changes.changed),
            )
            return self._outcome(snapshot)

        if self.ctx.dry_run:
            verb = "replace" if changes.requires_replacement else "update"
            logger.info("[DRY RUN] Would %s %s: %s", verb, self.label, sorted(changes.changed))
            return self._outcome(snapshot)

        if changes.requires_replacement:
            return self._replace(resource_id, snapshot, changes)
        return self._update(resource_id, snapshot, changes)

    def _update(self, resource_id: str, snapshot: ResourceInstance, changes: ChangeSet) -> Outcome:
        tags_property = self.adapter.tags_property
        fields = changes.updatable_changed
        if tags_property:
            fields = changes.without(tags_property).updatable_changed

        logger.info("Updating %s: %s", self.label, sorted(changes.changed))
        self._transition(LifecycleState.PENDING_UPDATE, sorted(changes.changed))

        if fields:
            try:
                self._call(
                    "update",
                    lambda: self.adapter.update(resource_id, sorted(fields), self.instance),
                )
            except NotFound as exc:
                raise Inconsistency(f"{self.label} disappeared during update") from exc

        if tags_property and tags_property in changes.updatable_changed:
            self._apply_tags(resource_id, snapshot.get(tags_property), self.instance.get(tags_property))

        snapshot = self._wait(resource_id, "update", self.adapter.is_ready, self.adapter.update_wait)
        self._transition(LifecycleState.ACTIVE)
        return self._outcome(snapshot)

    def _replace(self, resource_id: str, snapshot: ResourceInstance, changes: ChangeSet) -> Outcome:
        logger.info(
            "Replacing %s; immutable properties changed: %s",
            self.label,
            sorted(changes.replacement_required_changed),
        )
        self._delete_sequence(resource_id, snapshot, LifecycleState.ABSENT)
        return self._create()

    def _delete_sequence(
        self,
        resource_id: str,
        snapshot: ResourceInstance,
        final: LifecycleState,
    ) -> None:
        """Delete the remote object, disabling protection first when it is on."""
        protection = self.adapter.protection_property

        if (
            self.state != LifecycleState.PENDING_DISABLE_THEN_DELETE
            and protection is not None
            and snapshot.get(protection)
        ):
            disabled = self._disable(resource_id, snapshot, protection)
            if disabled is _Disable.GONE:
                self._transition(LifecycleState.PENDING_DELETE, sorted(self.changes.changed))
                self._finish_delete(final)
                return
            if disabled is _Disable.CONVERGED:
                self._transition(LifecycleState.PENDING_DISABLE_THEN_DELETE, [protection])

        self._transition(LifecycleState.PENDING_DELETE, sorted(self.changes.changed))
        try:
            self._call("delete", lambda: self.adapter.delete(resource_id))
        except NotFound:
            logger.debug("%s already removed", self.label)

        self._wait(resource_id, "delete", self.adapter.is_deleted, self.adapter.delete_wait)
        self._finish_delete(final)

    def _finish_delete(self, final: LifecycleState) -> None:
        self._transition(final)
        self.instance = self.instance.with_id(None)

    def _disable(self, resource_id: str, snapshot: ResourceInstance, protection: str) -> _Disable:
        """Turn deletion protection off before removal."""
        disabled = snapshot.evolve(
            name=self.instance.name,
            properties={**snapshot.properties, protection: False},
            provenance=Provenance.DESIRED,
        )

        logger.info("Disabling %s on %s before removal", protection, self.label)
        try:
            self._call("disable", lambda: self.adapter.update(resource_id, [protection], disabled))
        except NotFound:
            logger.debug("%s vanished while disabling %s", self.label, protection)
            return _Disable.GONE
        except ProviderError as exc:
            logger.warning("Could not disable %s on %s: %s", protection, self.label, exc)
            return _Disable.SKIPPED

        def disabled_or_gone(snap: ResourceInstance | None) -> bool:
            return snap is None or (self.adapter.is_ready(snap) and not snap.get(protection))

        self._wait(resource_id, "disable", disabled_or_gone, self.adapter.update_wait)
        return _Disable.CONVERGED

    # -- tags --

    def _apply_tags(self, resource_id: str, current: Any, desired: Any) -> None:
        def apply(added: dict[str, str], removed: frozenset[str]) -> None:
            if added or removed:
                self._call("tag", lambda: self.adapter.tag(resource_id, added, removed))

        reconcile_tags(
            current,
            desired,
            apply,
            reserved_prefixes=self.ctx.settings.reserved_tag_prefixes,
        )

    def _converge_tags_after_create(
        self,
        resource_id: str,
        snapshot: ResourceInstance | None,
    ) -> ResourceInstance | None:
        tags_property = self.adapter.tags_property
        if tags_property is None or snapshot is None:
            return snapshot
        prefixes = self.ctx.settings.reserved_tag_prefixes
        current = managed_tags(snapshot.get(tags_property), prefixes)
        desired = managed_tags(self.desired.get(tags_property), prefixes)
        if current == desired:
            return snapshot

        self._apply_tags(resource_id, current, desired)
        refreshed = self._describe(resource_id)
        return refreshed if refreshed is not None else snapshot

    # -- provider calls --

    def _call(self, operation: str, fn: Callable[[], T]) -> T:
        return call_with_retry(
            fn,
            self.ctx.settings.retry,
            description=f"{operation} {self.label}",
            sleep=self.ctx.sleep,
        )

    def _describe(self, resource_id: str) -> ResourceInstance | None:
        try:
            snapshot = self._call("describe", lambda: self.adapter.describe(resource_id))
        except NotFound:
            return None
        if snapshot is None:
            return None

        tags_property = self.adapter.tags_property
        if tags_property and snapshot.get(tags_property) is not None:
            tags = managed_tags(snapshot.get(tags_property), self.ctx.settings.reserved_tag_prefixes)
            snapshot = snapshot.with_properties({**snapshot.properties, tags_property: tags})
        return snapshot

    def _wait(
        self,
        resource_id: str,
        phase: str,
        predicate: Callable[[ResourceInstance | None], bool],
        spec: WaitSpec | None,
    ) -> ResourceInstance | None:
        """Poll describe until the predicate holds and return the last snapshot."""
        spec = spec or self.ctx.settings.wait
        last: ResourceInstance | None = None

        def poll() -> ResourceInstance | None:
            nonlocal last
            last = self._describe(resource_id)
            return last

        logger.debug("Waiting for %s of %s (max %gs)", phase, self.label, spec.maximum)
        result = wait(
            poll,
            predicate,
            spec,
            cancel=self.ctx.cancel,
            sleep=self.ctx.sleep,
            clock=self.ctx.clock,
        )
        if result is WaitOutcome.CANCELLED:
            raise _Cancelled()
        if not result:
            raise WaitTimeout(phase, spec)
        return last

    # -- state tracking --

    def _transition(self, new_state: LifecycleState, changed: list[str] | None = None) -> None:
        old_state = self.state
        if not can_transition(old_state, new_state):
            raise RuntimeError(f"Illegal transition for {self.label}: {old_state} -> {new_state}")
        self.state = new_state

        # A dry run reports what it would do but records nothing.
        if self.ctx.dry_run:
            return

        event = TransitionEvent(
            resource_type=self.adapter.resource_type,
            id=self.id,
            old_state=old_state,
            new_state=new_state,
            changed_fields=tuple(changed or ()),
        )
        logger.info("%s: %s -> %s", self.label, old_state, new_state)
        self.ctx.emit(event)
        self._persist()

    def _persist(self) -> None:
        store = self.ctx.store
        if store is None or self.ctx.dry_run or self.instance.key is None:
            return
        if self.state == LifecycleState.DELETED:
            self._forget()
            return
        record = StateRecord(
            instance=self.instance.evolve(provenance=Provenance.LAST_APPLIED),
            state=self.state,
        )
        store.put(record)

    def _forget(self) -> None:
        store = self.ctx.store
        key = self.desired.key
        if store is not None and not self.ctx.dry_run and key is not None:
            store.remove(self.desired.resource_type, key)

    def _outcome(self, snapshot: ResourceInstance | None) -> Outcome:
        if snapshot is None:
            return Outcome(self.instance, self.state, changes=self.changes)
        if self.instance.name and snapshot.name is None:
            snapshot = snapshot.evolve(name=self.instance.name)
        return Outcome(snapshot, self.state, changes=self.changes)

    def _fail(self, exc: ReconcileError) -> Outcome:
        logger.error("Failed to reconcile %s (%s): %s", self.label, exc.kind, exc)
        self._transition(LifecycleState.FAILED)
        return Outcome(self.instance, self.state, error=exc, changes=self.changes)

    def _cancelled(self) -> Outcome:
        logger.info("Reconciliation of %s cancelled in state %s", self.label, self.state)
        return Outcome(self.instance, self.state, changes=self.changes, cancelled=True)
