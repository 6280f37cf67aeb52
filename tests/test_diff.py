"""Tests for convergik.diff."""

from __future__ import annotations

import pytest
from fakes import QUEUE_SCHEMA, queue

from convergik.diff import ChangeSet, diff
from convergik.instance import ResourceInstance

PROPS = QUEUE_SCHEMA.properties


class TestChangeSet:
    def test_empty(self):
        changes = ChangeSet()
        assert changes.is_empty
        assert not changes
        assert not changes.requires_replacement

    def test_changed_is_union(self):
        changes = ChangeSet(
            updatable_changed=frozenset({"a"}),
            replacement_required_changed=frozenset({"b"}),
        )
        assert changes.changed == {"a", "b"}
        assert changes.requires_replacement
        assert changes

    def test_without(self):
        changes = ChangeSet(updatable_changed=frozenset({"a", "tags"}))
        assert changes.without("tags").updatable_changed == {"a"}


class TestDiff:
    def test_identical_is_empty(self):
        inst = queue(visibility_timeout=30, subscribers=["a"], tags={"k": "v"})
        assert diff(inst, inst, PROPS).is_empty

    def test_deterministic(self):
        old = queue(visibility_timeout=30, fifo=False)
        new = queue(visibility_timeout=60, fifo=True)
        assert diff(old, new, PROPS) == diff(old, new, PROPS)

    def test_updatable_change(self):
        changes = diff(queue(visibility_timeout=30), queue(visibility_timeout=60), PROPS)
        assert changes.updatable_changed == {"visibility_timeout"}
        assert not changes.requires_replacement

    def test_immutable_change_requires_replacement(self):
        changes = diff(queue(fifo=False), queue(fifo=True), PROPS)
        assert changes.replacement_required_changed == {"fifo"}

    def test_computed_properties_ignored(self):
        old = queue(id="queue-1").with_properties({"name": "q1", "arn": "a", "status": "creating"})
        new = queue(id="queue-1")
        assert diff(old, new, PROPS).is_empty

    def test_default_substituted_for_omitted_property(self):
        old = queue(visibility_timeout=30)
        new = queue()
        assert diff(old, new, PROPS).is_empty

    def test_default_substituted_on_both_sides(self):
        old = queue()
        new = queue(visibility_timeout=30, fifo=False)
        assert diff(old, new, PROPS).is_empty

    def test_non_default_omission_is_a_change(self):
        changes = diff(queue(visibility_timeout=45), queue(), PROPS)
        assert changes.updatable_changed == {"visibility_timeout"}

    def test_absent_from_both_never_changes(self):
        assert "redrive" not in diff(queue(), queue(), PROPS).changed

    def test_list_order_matters(self):
        changes = diff(queue(actions=["send", "receive"]), queue(actions=["receive", "send"]), PROPS)
        assert changes.updatable_changed == {"actions"}

    def test_set_order_ignored(self):
        changes = diff(queue(subscribers=["a", "b"]), queue(subscribers=["b", "a"]), PROPS)
        assert changes.is_empty

    def test_set_of_objects_order_ignored(self):
        old = queue(subscribers=[{"arn": "x", "raw": True}, {"arn": "y"}])
        new = queue(subscribers=[{"arn": "y"}, {"raw": True, "arn": "x"}])
        assert diff(old, new, PROPS).is_empty

    def test_map_compared_by_value(self):
        old = queue(tags={"a": "1", "b": "2"})
        assert diff(old, queue(tags={"b": "2", "a": "1"}), PROPS).is_empty
        assert diff(old, queue(tags={"a": "1", "b": "3"}), PROPS).updatable_changed == {"tags"}

    def test_nested_object_deep_equality(self):
        old = queue(redrive={"target": "dlq", "policy": {"max": 5, "codes": [1, 2]}})
        same = queue(redrive={"policy": {"codes": [1, 2], "max": 5}, "target": "dlq"})
        other = queue(redrive={"target": "dlq", "policy": {"max": 5, "codes": [2, 1]}})
        assert diff(old, same, PROPS).is_empty
        assert diff(old, other, PROPS).updatable_changed == {"redrive"}

    def test_mixed_changes_partitioned(self):
        changes = diff(
            queue(visibility_timeout=30, fifo=False),
            queue(visibility_timeout=60, fifo=True),
            PROPS,
        )
        assert changes.updatable_changed == {"visibility_timeout"}
        assert changes.replacement_required_changed == {"fifo"}

    def test_rejects_different_types(self):
        other = ResourceInstance(resource_type="topic")
        with pytest.raises(ValueError, match="Cannot diff 'queue' against 'topic'"):
            diff(queue(), other, PROPS)

    def test_rejects_different_ids(self):
        with pytest.raises(ValueError, match="Cannot diff resource"):
            diff(queue(id="queue-1"), queue(id="queue-2"), PROPS)
