"""Tests for convergik.properties."""

from __future__ import annotations

import pytest
from fakes import QUEUE_SCHEMA, FakeQueues

from convergik.properties import (
    Kind,
    Mutability,
    PropertyDescriptor,
    Requiredness,
    ResourceSchema,
    describe,
)
from convergik.provider import _provider_registry, provider


class TestPropertyDescriptor:
    def test_defaults(self):
        prop = PropertyDescriptor("size")
        assert prop.kind == Kind.SCALAR
        assert prop.mutability == Mutability.IMMUTABLE
        assert prop.required == Requiredness.OPTIONAL
        assert not prop.has_default
        assert not prop.updatable
        assert not prop.computed

    def test_default_value(self):
        prop = PropertyDescriptor("size", default=0)
        assert prop.has_default
        assert prop.default == 0

    def test_none_is_a_valid_default(self):
        prop = PropertyDescriptor("size", default=None)
        assert prop.has_default

    def test_computed_cannot_be_required(self):
        with pytest.raises(ValueError, match="cannot be required"):
            PropertyDescriptor(
                "arn", mutability=Mutability.COMPUTED, required=Requiredness.REQUIRED
            )

    def test_computed_cannot_have_default(self):
        with pytest.raises(ValueError, match="cannot declare a default"):
            PropertyDescriptor("arn", mutability=Mutability.COMPUTED, default="x")

    def test_required_cannot_have_default(self):
        with pytest.raises(ValueError, match="cannot declare a default"):
            PropertyDescriptor("name", required=Requiredness.REQUIRED, default="x")

    def test_computed_cannot_be_identifier(self):
        with pytest.raises(ValueError, match="cannot be an identifier"):
            PropertyDescriptor("arn", mutability=Mutability.COMPUTED, identifier=True)

    def test_accepts_plain_strings(self):
        prop = PropertyDescriptor("size", mutability="updatable")  # type: ignore[arg-type]
        assert prop.updatable


class TestResourceSchema:
    def test_rejects_duplicate_names(self):
        with pytest.raises(ValueError, match="Duplicate property 'a'"):
            ResourceSchema(name="thing", properties=(PropertyDescriptor("a"), PropertyDescriptor("a")))

    def test_preserves_order(self):
        assert QUEUE_SCHEMA.names[:3] == ["name", "visibility_timeout", "fifo"]

    def test_get_and_contains(self):
        assert QUEUE_SCHEMA.get("fifo") is not None
        assert QUEUE_SCHEMA.get("missing") is None
        assert "tags" in QUEUE_SCHEMA
        assert "missing" not in QUEUE_SCHEMA

    def test_updatable_and_computed(self):
        assert "visibility_timeout" in QUEUE_SCHEMA.updatable
        assert "fifo" not in QUEUE_SCHEMA.updatable
        assert QUEUE_SCHEMA.computed == ["arn", "status"]

    def test_identifier(self):
        assert QUEUE_SCHEMA.identifier == "name"
        assert ResourceSchema(name="thing", properties=(PropertyDescriptor("a"),)).identifier is None

    def test_rejects_multiple_identifiers(self):
        with pytest.raises(ValueError, match="more than one identifier"):
            ResourceSchema(
                name="thing",
                properties=(
                    PropertyDescriptor("a", identifier=True),
                    PropertyDescriptor("b", identifier=True),
                ),
            )


class TestDescribe:
    def setup_method(self):
        self._saved = _provider_registry.copy()
        _provider_registry.clear()

    def teardown_method(self):
        _provider_registry.clear()
        _provider_registry.update(self._saved)

    def test_returns_registered_descriptors(self):
        provider("queue")(FakeQueues)
        assert describe("queue") == QUEUE_SCHEMA.properties

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError, match="Unknown resource type: 'nope'"):
            describe("nope")
