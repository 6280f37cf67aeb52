"""Provider adapter interface and registration."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Collection, Mapping
from typing import Any, ClassVar

from .instance import Provenance, ResourceInstance
from .properties import ResourceSchema
from .waiter import WaitSpec

_provider_registry: dict[str, type[ProviderAdapter]] = {}


def provider(name: str):
    """Register a ProviderAdapter class under a resource type name."""

    def decorator(cls):
        _provider_registry[name] = cls
        return cls

    return decorator


class ProviderAdapter(ABC):
    """Remote operations for one resource type.

    Adapters translate provider exceptions into the errors in
    `convergik.errors`. `describe` returns None (or raises NotFound) when
    the object does not exist. A tag `add` must overwrite existing values.
    """

    schema: ClassVar[ResourceSchema]

    # Optional waits; None falls back to the context settings.
    create_wait: ClassVar[WaitSpec | None] = None
    update_wait: ClassVar[WaitSpec | None] = None
    delete_wait: ClassVar[WaitSpec | None] = None

    # Boolean property that blocks deletion while truthy.
    protection_property: ClassVar[str | None] = None

    # Map property converged through `tag` instead of `update`.
    tags_property: ClassVar[str | None] = None

    @property
    def resource_type(self) -> str:
        return self.schema.name

    @abstractmethod
    def describe(self, id: str) -> ResourceInstance | None:
        """Fetch the current remote snapshot."""

    @abstractmethod
    def create(self, desired: ResourceInstance) -> str:
        """Create the remote object and return its provider-assigned id."""

    @abstractmethod
    def update(self, id: str, changed: Collection[str], desired: ResourceInstance) -> None:
        """Apply only the named properties of `desired` to the remote object."""

    @abstractmethod
    def delete(self, id: str) -> None:
        """Delete the remote object."""

    def tag(self, id: str, added: Mapping[str, str], removed: Collection[str]) -> None:
        raise NotImplementedError(f"{type(self).__name__} does not manage tags")

    def is_ready(self, snapshot: ResourceInstance | None) -> bool:
        """The object has converged after a create or update."""
        return snapshot is not None

    def is_deleted(self, snapshot: ResourceInstance | None) -> bool:
        """The object is gone after a delete."""
        return snapshot is None

    def snapshot(self, id: str, properties: Mapping[str, Any]) -> ResourceInstance:
        """Build a remote-snapshot instance for this resource type."""
        return ResourceInstance(
            resource_type=self.resource_type,
            id=id,
            properties=dict(properties),
            provenance=Provenance.REMOTE_SNAPSHOT,
        )
