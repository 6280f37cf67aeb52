"""Workspace -- turn parsed HCL data into blueprints of resource operations."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from . import hcl
from .blueprints import Blueprint
from .context import Context, Settings
from .instance import Provenance, ResourceInstance
from .operations import Absent, Ensure, Operation, Present
from .provider import ProviderAdapter, _provider_registry
from .reconciler import Reconciler

logger = logging.getLogger(__name__)

_STRATEGY_MAP: dict[str, type[Operation]] = {
    "present": Present,
    "ensure": Ensure,
    "absent": Absent,
}

_RESERVED_ATTRS = {"id"}


def _strip_meta(data: dict[str, Any]) -> dict[str, Any]:
    """Drop parser bookkeeping keys such as __start_line__."""
    return {k: v for k, v in data.items() if not (k.startswith("__") and k.endswith("__"))}


def _unwrap_block(value: Any) -> Any:
    """Nested HCL blocks parse as a one-element list of dicts."""
    if isinstance(value, list) and len(value) == 1 and isinstance(value[0], dict):
        return _strip_meta(value[0])
    return value


class Workspace(Mapping[str, Blueprint]):
    """Accumulates parsed documents and resolves blueprints on access."""

    def __init__(
        self,
        adapters: Mapping[str, ProviderAdapter] | None = None,
        *,
        context: dict[str, Any] | None = None,
    ) -> None:
        self._adapters = dict(adapters or {})
        self._template_context = context
        self._reconcilers: dict[str, Reconciler] = {}
        self._pending_blueprints: dict[str, dict[str, Any]] = {}
        self._settings: dict[str, Any] = {}

    # -- loading --

    def scan(self, path: str | Path, *, recurse: bool = True) -> None:
        """Load every .hcl file under path, in sorted order."""
        root = Path(path)
        if not root.is_dir():
            logger.debug("Skipping %s; not a directory", root)
            return
        files = sorted(root.rglob("*.hcl") if recurse else root.glob("*.hcl"))
        logger.debug("Found %d HCL file(s) in %s", len(files), root)
        for file in files:
            self.load(hcl.load(file, context=self._template_context))

    def load(self, data: dict[str, Any]) -> None:
        """Extract blueprint and settings blocks from a parsed data dict.

        Raises ValueError if any blueprint name is already loaded.
        """
        for bp_block in data.get("blueprint", []):
            for bp_name, bp_data in bp_block.items():
                if bp_name in self._pending_blueprints:
                    raise ValueError(f"Duplicate blueprint: '{bp_name}'")
                logger.debug("Found blueprint '%s'", bp_name)
                self._pending_blueprints[bp_name] = _strip_meta(bp_data)

        for settings_block in data.get("settings", []):
            for key, value in _strip_meta(settings_block).items():
                self._settings[key] = _unwrap_block(value)

    @property
    def settings(self) -> Settings:
        """Settings from every `settings` block loaded so far."""
        return Settings(**self._settings)

    def context(self, **kwargs: Any) -> Context:
        """Build a run Context carrying this workspace's settings."""
        kwargs.setdefault("settings", self.settings)
        return Context(**kwargs)

    # -- adapters --

    def reconciler(self, resource_type: str) -> Reconciler:
        """Return the (cached) reconciler for a resource type."""
        if resource_type in self._reconcilers:
            return self._reconcilers[resource_type]

        adapter = self._adapters.get(resource_type)
        if adapter is None:
            if resource_type not in _provider_registry:
                raise ValueError(f"Unknown resource type: '{resource_type}'")
            adapter = _provider_registry[resource_type]()
            logger.debug("Using registered adapter %s for '%s'", type(adapter).__name__, resource_type)

        reconciler = Reconciler(adapter)
        self._reconcilers[resource_type] = reconciler
        return reconciler

    # -- resolution --

    def _decode_op(self, strategy: str, resource_type: str, attrs: dict[str, Any]) -> Operation:
        reconciler = self.reconciler(resource_type)
        schema = reconciler.adapter.schema

        attrs = _strip_meta(attrs)
        props = {k: v for k, v in attrs.items() if k not in _RESERVED_ATTRS}
        name = attrs.get("name")
        if name is None and schema.identifier is not None:
            name = attrs.get(schema.identifier)
        resource_id = attrs.get("id")
        if "name" in props and "name" not in schema:
            props.pop("name")

        instance = ResourceInstance(
            resource_type=resource_type,
            name=None if name is None else str(name),
            id=None if resource_id is None else str(resource_id),
            properties=props,
            provenance=Provenance.DESIRED,
        )
        logger.debug("Decoded %s '%s' -> %s", resource_type, instance.key, strategy)
        return _STRATEGY_MAP[strategy](reconciler, instance)

    def _parse_ops(self, block_data: dict[str, Any]) -> list[Operation]:
        """Parse strategy blocks, keeping their order within each strategy.

        HCL2 structure for strategy blocks:
            {"ensure": [{"queue": {"name": "q1"}}, ...], ...}
        """
        ops: list[Operation] = []
        for key, blocks in block_data.items():
            if key not in _STRATEGY_MAP:
                continue
            for op_block in blocks:
                for resource_type, attrs in _strip_meta(op_block).items():
                    ops.append(self._decode_op(key, resource_type, dict(attrs)))
        return ops

    def _resolve_blueprint(
        self,
        name: str,
        resolved: dict[str, Blueprint],
        resolving: set[str],
    ) -> Blueprint:
        """Recursively resolve a single blueprint, handling includes."""
        if name in resolved:
            return resolved[name]
        if name in resolving:
            raise ValueError(f"Circular include detected: '{name}'")
        if name not in self._pending_blueprints:
            raise ValueError(f"Unknown blueprint: '{name}'")
        logger.debug("Resolving blueprint '%s'", name)
        resolving.add(name)

        bp_data = self._pending_blueprints[name]
        ops: list[Operation] = []

        # Included operations run first
        for include_name in bp_data.get("include", []):
            logger.debug("Blueprint '%s' includes '%s'", name, include_name)
            ops.extend(self._resolve_blueprint(include_name, resolved, resolving).ops)

        ops.extend(self._parse_ops(bp_data))

        bp = Blueprint(name=name, description=bp_data.get("description", ""), ops=ops)
        resolved[name] = bp
        resolving.discard(name)
        return bp

    def __getitem__(self, name: str) -> Blueprint:
        if name not in self._pending_blueprints:
            raise KeyError(name)
        return self._resolve_blueprint(name, {}, set())

    def __contains__(self, name: object) -> bool:
        return name in self._pending_blueprints

    def __iter__(self) -> Iterator[str]:
        return iter(self._pending_blueprints)

    def __len__(self) -> int:
        return len(self._pending_blueprints)

    def resolve_all(self) -> dict[str, Blueprint]:
        """Resolve every blueprint; raises ValueError on the first bad one."""
        logger.debug("Resolving %d blueprint(s)", len(self._pending_blueprints))
        resolved: dict[str, Blueprint] = {}
        for name in self._pending_blueprints:
            self._resolve_blueprint(name, resolved, set())
        return resolved

    def __repr__(self) -> str:
        return (
            f"Workspace(adapters={len(self._adapters)}, "
            f"blueprints={len(self._pending_blueprints)})"
        )
