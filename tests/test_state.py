"""Tests for convergik.state."""

from __future__ import annotations

import json

import pytest
from fakes import queue

from convergik.instance import ResourceInstance
from convergik.lifecycle import LifecycleState
from convergik.state import FileStateStore, MemoryStateStore, StateRecord


def _record(name: str = "q1", state: LifecycleState = LifecycleState.ACTIVE, **props) -> StateRecord:
    return StateRecord(instance=queue(name, id=f"id-{name}", **props), state=state)


class TestStateRecord:
    def test_key_from_name(self):
        assert _record("q1").key == "q1"

    def test_key_falls_back_to_id(self):
        record = StateRecord(
            instance=ResourceInstance(resource_type="queue", id="queue-1"),
            state=LifecycleState.ACTIVE,
        )
        assert record.key == "queue-1"

    def test_key_required(self):
        record = StateRecord(
            instance=ResourceInstance(resource_type="queue"),
            state=LifecycleState.ACTIVE,
        )
        with pytest.raises(ValueError, match="without a name or id"):
            record.key  # noqa: B018


class TestMemoryStateStore:
    def test_put_get_remove(self):
        store = MemoryStateStore()
        store.put(_record("q1"))
        assert store.get("queue", "q1").instance.id == "id-q1"
        store.remove("queue", "q1")
        assert store.get("queue", "q1") is None

    def test_remove_missing_is_noop(self):
        MemoryStateStore().remove("queue", "missing")

    def test_keys_scoped_by_type(self):
        store = MemoryStateStore()
        store.put(_record("q1"))
        assert store.get("topic", "q1") is None


class TestFileStateStore:
    def test_missing_file_is_empty(self, tmp_path):
        store = FileStateStore(tmp_path / "state.json")
        assert store.get("queue", "q1") is None

    def test_round_trip_through_disk(self, tmp_path):
        path = tmp_path / "nested" / "state.json"
        FileStateStore(path).put(_record("q1", visibility_timeout=30, subscribers=["a"]))

        record = FileStateStore(path).get("queue", "q1")
        assert record is not None
        assert record.state == LifecycleState.ACTIVE
        assert record.instance.get("visibility_timeout") == 30

    def test_document_layout(self, tmp_path):
        path = tmp_path / "state.json"
        FileStateStore(path).put(_record("q1", state=LifecycleState.PENDING_CREATE))
        doc = json.loads(path.read_text())
        assert doc["resources"]["queue"]["q1"]["state"] == "pending_create"
        assert doc["resources"]["queue"]["q1"]["instance"]["id"] == "id-q1"

    def test_remove_drops_empty_type(self, tmp_path):
        path = tmp_path / "state.json"
        store = FileStateStore(path)
        store.put(_record("q1"))
        store.remove("queue", "q1")
        assert json.loads(path.read_text()) == {"resources": {}}

    def test_no_temp_files_left(self, tmp_path):
        store = FileStateStore(tmp_path / "state.json")
        store.put(_record("q1"))
        store.put(_record("q2"))
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="invalid state file"):
            FileStateStore(path).get("queue", "q1")

    def test_empty_file_is_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("")
        assert FileStateStore(path).get("queue", "q1") is None
