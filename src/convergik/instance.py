"""ResourceInstance -- one resource's identifier and property values."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from .properties import Kind, ResourceSchema


class Provenance(StrEnum):
    DESIRED = "desired"
    REMOTE_SNAPSHOT = "remote-snapshot"
    LAST_APPLIED = "last-applied"


class ResourceInstance(BaseModel):
    """An immutable view of a resource: its type, identifier and properties."""

    model_config = {"frozen": True}

    resource_type: str
    name: str | None = None
    id: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)
    provenance: Provenance = Provenance.DESIRED

    def __getitem__(self, key: str) -> Any:
        return self.properties[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)

    @property
    def key(self) -> str | None:
        """Logical key used to address this resource in a state store."""
        return self.name or self.id

    def with_id(self, id: str | None) -> ResourceInstance:
        return self.model_copy(update={"id": id})

    def with_properties(self, properties: Mapping[str, Any]) -> ResourceInstance:
        return self.model_copy(update={"properties": dict(properties)})

    def evolve(self, **changes: Any) -> ResourceInstance:
        return self.model_copy(update=changes)


_KIND_TYPES: dict[Kind, tuple[type, ...]] = {
    Kind.SET: (list, tuple, set, frozenset),
    Kind.LIST: (list, tuple),
    Kind.MAP: (dict, Mapping),
    Kind.OBJECT: (dict, Mapping),
}


def validate_desired(instance: ResourceInstance, schema: ResourceSchema) -> None:
    """Check a desired instance against its schema; raise ValueError on mismatch."""
    if instance.resource_type != schema.name:
        raise ValueError(
            f"Instance of '{instance.resource_type}' cannot be checked against '{schema.name}'"
        )

    for name, value in instance.properties.items():
        prop = schema.get(name)
        if prop is None:
            raise ValueError(f"Unknown property '{name}' for resource type '{schema.name}'")
        if prop.computed:
            raise ValueError(f"Property '{name}' of '{schema.name}' is computed and cannot be set")
        expected = _KIND_TYPES.get(Kind(prop.kind))
        if value is not None and expected is not None and not isinstance(value, expected):
            raise ValueError(
                f"Property '{name}' of '{schema.name}' expects a {prop.kind} value, "
                f"got {type(value).__name__}"
            )

    for prop in schema.properties:
        if prop.is_required and instance.properties.get(prop.name) is None:
            raise ValueError(f"Missing required property '{prop.name}' for '{schema.name}'")
