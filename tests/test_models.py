"""
Tests for Docker event models.
"""

from __future__ import annotations

import pytest

from dockwatch.models import Actor, ObservedEvent, Scope, SubjectType


class TestObservedEventFromDict:
    """Decoding Docker /events messages."""

    def test_full_event(self, event_dict_factory):
        data = event_dict_factory(attributes={"name": "web-1", "image": "nginx"})
        event = ObservedEvent.from_dict(data)

        assert event.subject_type is SubjectType.CONTAINER
        assert event.action == "start"
        assert event.actor == Actor(id="abc123", attributes={"name": "web-1", "image": "nginx"})
        assert event.scope is Scope.LOCAL
        assert event.time == 1700000000
        assert event.raw == data

    def test_missing_fields_are_none(self):
        event = ObservedEvent.from_dict({})
        assert event.subject_type is None
        assert event.action is None
        assert event.actor is None
        assert event.scope is None

    def test_empty_enum_string_is_absent(self):
        """Docker leaves unset enum fields as empty strings."""
        event = ObservedEvent.from_dict({"Type": "", "scope": ""})
        assert event.subject_type is None
        assert event.scope is None

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError, match="Unknown Type"):
            ObservedEvent.from_dict({"Type": "spaceship"})

    def test_non_object_rejected(self):
        with pytest.raises(ValueError):
            ObservedEvent.from_dict(["not", "an", "event"])

    def test_non_string_action_rejected(self):
        with pytest.raises(ValueError, match="Action"):
            ObservedEvent.from_dict({"Action": 42})

    def test_bad_attribute_values_rejected(self):
        with pytest.raises(ValueError, match="Attributes"):
            ObservedEvent.from_dict({"Actor": {"ID": "x", "Attributes": {"n": 1}}})

    def test_actor_attributes_read_only(self, event_dict_factory):
        event = ObservedEvent.from_dict(event_dict_factory(attributes={"name": "web-1"}))
        with pytest.raises(TypeError):
            event.actor.attributes["name"] = "other"

    def test_legacy_fields_ignored(self):
        """Pre-1.22 status/id/from fields do not interfere."""
        event = ObservedEvent.from_dict(
            {"status": "start", "id": "abc", "from": "nginx", "Type": "container", "Action": "start"}
        )
        assert event.action == "start"
        assert event.raw["status"] == "start"


class TestActorName:
    """actor_name convenience property."""

    def test_name_attribute(self, event_factory):
        assert event_factory(attributes={"name": "db-1"}).actor_name == "db-1"

    def test_no_attributes(self, event_factory):
        assert event_factory().actor_name is None

    def test_no_actor(self, event_factory):
        assert event_factory(actor_id=None).actor_name is None
