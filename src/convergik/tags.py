"""Tag and sub-resource reconciliation expressed as additions and removals."""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

DEFAULT_RESERVED_PREFIXES: tuple[str, ...] = ("aws:",)


@dataclass(frozen=True)
class TagDelta:
    """Tags to write (new or changed values) and tag keys to drop."""

    added: dict[str, str] = field(default_factory=dict)
    removed: frozenset[str] = frozenset()

    def __bool__(self) -> bool:
        return bool(self.added or self.removed)


def managed_tags(
    tags: Mapping[str, str] | None,
    reserved_prefixes: Collection[str] = DEFAULT_RESERVED_PREFIXES,
) -> dict[str, str]:
    """Drop provider-reserved keys, which are never ours to change."""
    if not tags:
        return {}
    return {k: v for k, v in tags.items() if not k.startswith(tuple(reserved_prefixes))}


def tag_delta(
    current: Mapping[str, str] | None,
    desired: Mapping[str, str] | None,
    reserved_prefixes: Collection[str] = DEFAULT_RESERVED_PREFIXES,
) -> TagDelta:
    cur = managed_tags(current, reserved_prefixes)
    want = managed_tags(desired, reserved_prefixes)
    added = {k: v for k, v in want.items() if k not in cur or cur[k] != v}
    removed = frozenset(k for k in cur if k not in want)
    return TagDelta(added=added, removed=removed)


def reconcile_tags(
    current: Mapping[str, str] | None,
    desired: Mapping[str, str] | None,
    apply: Callable[[dict[str, str], frozenset[str]], None],
    *,
    reserved_prefixes: Collection[str] = DEFAULT_RESERVED_PREFIXES,
) -> TagDelta:
    """Converge a tag map by calling `apply(added, removed)` exactly once.

    A changed value is reported only in `added`; the adapter's add must
    overwrite the existing value.
    """
    delta = tag_delta(current, desired, reserved_prefixes)
    if delta:
        logger.debug(
            "Tag changes: +%s -%s", sorted(delta.added), sorted(delta.removed)
        )
    else:
        logger.debug("Tags up to date")
    apply(delta.added, delta.removed)
    return delta


@dataclass(frozen=True)
class ItemDelta(Generic[K, T]):
    """Nested items to add (or overwrite) and natural keys to remove."""

    added: dict[K, T] = field(default_factory=dict)
    removed: frozenset[K] = frozenset()

    def __bool__(self) -> bool:
        return bool(self.added or self.removed)


def reconcile_items(
    current: Iterable[T],
    desired: Iterable[T],
    key: Callable[[T], K],
    apply: Callable[[dict[K, T], frozenset[K]], None],
) -> ItemDelta[K, T]:
    """Converge a collection of nested objects identified by a natural key.

    Items are compared whole; an item whose key exists on both sides but
    whose value differs is re-added rather than patched.
    """
    cur = {key(item): item for item in current}
    want = {key(item): item for item in desired}
    added = {k: v for k, v in want.items() if k not in cur or cur[k] != v}
    removed = frozenset(k for k in cur if k not in want)
    delta = ItemDelta(added=added, removed=removed)
    logger.debug("Item changes: +%d -%d", len(added), len(removed))
    apply(delta.added, delta.removed)
    return delta
