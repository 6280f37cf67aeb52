"""Property model: static, per-resource-type property descriptors."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class Kind(StrEnum):
    SCALAR = "scalar"
    SET = "set"
    LIST = "list"
    OBJECT = "object"
    MAP = "map"


class Mutability(StrEnum):
    IMMUTABLE = "immutable"
    UPDATABLE = "updatable"
    COMPUTED = "computed"


class Requiredness(StrEnum):
    REQUIRED = "required"
    OPTIONAL = "optional"


class _Missing:
    """Marker for a property that declares no default."""

    def __repr__(self) -> str:
        return "MISSING"

    def __copy__(self) -> _Missing:
        return self

    def __deepcopy__(self, memo: dict) -> _Missing:
        return self


MISSING: Any = _Missing()


@dataclass(frozen=True)
class PropertyDescriptor:
    """Metadata for a single named property of a resource type."""

    name: str
    kind: Kind = Kind.SCALAR
    mutability: Mutability = Mutability.IMMUTABLE
    required: Requiredness = Requiredness.OPTIONAL
    default: Any = MISSING
    identifier: bool = False

    def __post_init__(self) -> None:
        if self.mutability == Mutability.COMPUTED:
            if self.is_required:
                raise ValueError(f"Computed property '{self.name}' cannot be required")
            if self.has_default:
                raise ValueError(f"Computed property '{self.name}' cannot declare a default")
            if self.identifier:
                raise ValueError(f"Computed property '{self.name}' cannot be an identifier")
        if self.is_required and self.has_default:
            raise ValueError(f"Required property '{self.name}' cannot declare a default")

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    @property
    def updatable(self) -> bool:
        return self.mutability == Mutability.UPDATABLE

    @property
    def computed(self) -> bool:
        return self.mutability == Mutability.COMPUTED

    @property
    def is_required(self) -> bool:
        return self.required == Requiredness.REQUIRED


@dataclass(frozen=True)
class ResourceSchema:
    """The ordered property table of one resource type."""

    name: str
    properties: tuple[PropertyDescriptor, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for prop in self.properties:
            if prop.name in seen:
                raise ValueError(f"Duplicate property '{prop.name}' in resource type '{self.name}'")
            seen.add(prop.name)
        if len([prop for prop in self.properties if prop.identifier]) > 1:
            raise ValueError(f"Resource type '{self.name}' declares more than one identifier")

    def get(self, name: str) -> PropertyDescriptor | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def __contains__(self, name: object) -> bool:
        return self.get(name) is not None  # type: ignore[arg-type]

    @property
    def names(self) -> list[str]:
        return [prop.name for prop in self.properties]

    @property
    def updatable(self) -> list[str]:
        return [prop.name for prop in self.properties if prop.updatable]

    @property
    def computed(self) -> list[str]:
        return [prop.name for prop in self.properties if prop.computed]

    @property
    def identifier(self) -> str | None:
        """The property naming the resource's natural key, used as its logical name."""
        for prop in self.properties:
            if prop.identifier:
                return prop.name
        return None


def describe(resource_type: str) -> tuple[PropertyDescriptor, ...]:
    """Return the ordered descriptors of a registered resource type."""
    from .provider import _provider_registry

    if resource_type not in _provider_registry:
        raise ValueError(f"Unknown resource type: '{resource_type}'")
    return _provider_registry[resource_type].schema.properties
