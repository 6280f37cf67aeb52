"""Persistent record of the last-applied instance and lifecycle state."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel, Field

from .instance import ResourceInstance
from .lifecycle import LifecycleState

logger = logging.getLogger(__name__)


class StateRecord(BaseModel):
    """Where one resource stood after its latest transition."""

    instance: ResourceInstance
    state: LifecycleState

    @property
    def resource_type(self) -> str:
        return self.instance.resource_type

    @property
    def key(self) -> str:
        key = self.instance.key
        if key is None:
            raise ValueError(f"Cannot record a '{self.resource_type}' instance without a name or id")
        return key


class StateStore(ABC):
    """Keyed by resource type and the instance's logical key."""

    @abstractmethod
    def get(self, resource_type: str, key: str) -> StateRecord | None: ...

    @abstractmethod
    def put(self, record: StateRecord) -> None: ...

    @abstractmethod
    def remove(self, resource_type: str, key: str) -> None: ...


class MemoryStateStore(StateStore):
    def __init__(self) -> None:
        self._records: dict[tuple[str, str], StateRecord] = {}
        self._lock = threading.Lock()

    def get(self, resource_type: str, key: str) -> StateRecord | None:
        with self._lock:
            return self._records.get((resource_type, key))

    def put(self, record: StateRecord) -> None:
        with self._lock:
            self._records[(record.resource_type, record.key)] = record

    def remove(self, resource_type: str, key: str) -> None:
        with self._lock:
            self._records.pop((resource_type, key), None)

    def __len__(self) -> int:
        return len(self._records)


class _StateDocument(BaseModel):
    resources: dict[str, dict[str, StateRecord]] = Field(default_factory=dict)


class FileStateStore(StateStore):
    """All records in one JSON document, rewritten atomically on each change."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> _StateDocument:
        if not self.path.exists():
            return _StateDocument()
        text = self.path.read_text()
        if not text.strip():
            return _StateDocument()
        try:
            return _StateDocument.model_validate_json(text)
        except ValueError as exc:
            raise ValueError(f"{self.path}: invalid state file: {exc}") from exc

    def _write(self, doc: _StateDocument) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w") as fh:
                fh.write(doc.model_dump_json(indent=2))
            os.replace(tmp, self.path)
        except BaseException:
            os.unlink(tmp)
            raise
        logger.debug("Wrote state file %s", self.path)

    def get(self, resource_type: str, key: str) -> StateRecord | None:
        with self._lock:
            return self._read().resources.get(resource_type, {}).get(key)

    def put(self, record: StateRecord) -> None:
        with self._lock:
            doc = self._read()
            doc.resources.setdefault(record.resource_type, {})[record.key] = record
            self._write(doc)

    def remove(self, resource_type: str, key: str) -> None:
        with self._lock:
            doc = self._read()
            records = doc.resources.get(resource_type, {})
            if records.pop(key, None) is None:
                return
            if not records:
                doc.resources.pop(resource_type)
            self._write(doc)
