"""Diff engine -- compute the changed properties between two instances."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from .instance import ResourceInstance
from .properties import Kind, PropertyDescriptor

logger = logging.getLogger(__name__)


class ChangeSet(BaseModel):
    """Changed property names, split by whether they can be applied in place."""

    model_config = {"frozen": True}

    updatable_changed: frozenset[str] = frozenset()
    replacement_required_changed: frozenset[str] = frozenset()

    @property
    def changed(self) -> frozenset[str]:
        return self.updatable_changed | self.replacement_required_changed

    @property
    def requires_replacement(self) -> bool:
        return bool(self.replacement_required_changed)

    @property
    def is_empty(self) -> bool:
        return not self.changed

    def __bool__(self) -> bool:
        return not self.is_empty

    def without(self, *names: str) -> ChangeSet:
        """Return a copy with the given names dropped from both partitions."""
        drop = set(names)
        return ChangeSet(
            updatable_changed=self.updatable_changed - drop,
            replacement_required_changed=self.replacement_required_changed - drop,
        )


def _freeze(value: Any) -> Any:
    """Convert a value into a hashable form with deep value equality.

    Mappings lose their ordering, sequences keep it.
    """
    if isinstance(value, Mapping):
        return frozenset((k, _freeze(v)) for k, v in value.items())
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(_freeze(v) for v in value)
    return value


def _normalize(value: Any, kind: Kind) -> Any:
    if value is None:
        return None
    if kind == Kind.SET:
        return frozenset(_freeze(v) for v in value)
    return _freeze(value)


def _value_of(instance: ResourceInstance, prop: PropertyDescriptor) -> Any:
    value = instance.properties.get(prop.name)
    if value is None and prop.has_default:
        return prop.default
    return value


def diff(
    old: ResourceInstance,
    new: ResourceInstance,
    descriptors: Iterable[PropertyDescriptor],
) -> ChangeSet:
    """Compare two instances of the same resource and classify what changed."""
    if old.resource_type != new.resource_type:
        raise ValueError(
            f"Cannot diff '{old.resource_type}' against '{new.resource_type}'"
        )
    if old.id and new.id and old.id != new.id:
        raise ValueError(f"Cannot diff resource '{old.id}' against '{new.id}'")

    updatable: set[str] = set()
    replacement: set[str] = set()

    for prop in descriptors:
        if prop.computed:
            continue
        kind = Kind(prop.kind)
        before = _normalize(_value_of(old, prop), kind)
        after = _normalize(_value_of(new, prop), kind)
        if before == after:
            continue
        if prop.updatable:
            updatable.add(prop.name)
        else:
            replacement.add(prop.name)

    changes = ChangeSet(
        updatable_changed=frozenset(updatable),
        replacement_required_changed=frozenset(replacement),
    )
    if changes:
        logger.debug(
            "Diff for %s '%s': update=%s replace=%s",
            new.resource_type,
            new.id or new.name,
            sorted(changes.updatable_changed),
            sorted(changes.replacement_required_changed),
        )
    return changes
