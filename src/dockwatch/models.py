"""
Docker Event Data Models.

Enumerations shared by the rule file and the event stream, and the
ObservedEvent decoded from one line of the Docker /events stream.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class SubjectType(Enum):
    """Type of object emitting a Docker event."""

    BUILDER = "builder"
    CONFIG = "config"
    CONTAINER = "container"
    DAEMON = "daemon"
    IMAGE = "image"
    NETWORK = "network"
    NODE = "node"
    PLUGIN = "plugin"
    SECRET = "secret"
    SERVICE = "service"
    VOLUME = "volume"


class Scope(Enum):
    """Event scope. Engine events are local, Swarm events are swarm."""

    LOCAL = "local"
    SWARM = "swarm"


class NotifyType(Enum):
    """Apprise message type of a notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    FAILURE = "failure"


class BodyFormat(Enum):
    """Apprise body format hint."""

    TEXT = "text"
    MARKDOWN = "markdown"
    HTML = "html"


@dataclass(frozen=True)
class Actor:
    """The object that emitted an event."""

    id: str | None = None
    attributes: Mapping[str, str] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Actor:
        """
        Create from the Docker `Actor` object.

        Raises:
            ValueError: If the actor has the wrong shape
        """
        if not isinstance(data, Mapping):
            raise ValueError("Actor must be an object")

        actor_id = data.get("ID")
        if actor_id is not None and not isinstance(actor_id, str):
            raise ValueError("Actor.ID must be a string")

        raw_attributes = data.get("Attributes")
        attributes: Mapping[str, str] | None = None
        if raw_attributes is not None:
            if not isinstance(raw_attributes, Mapping):
                raise ValueError("Actor.Attributes must be an object")
            if not all(isinstance(v, str) for v in raw_attributes.values()):
                raise ValueError("Actor.Attributes values must be strings")
            attributes = MappingProxyType(dict(raw_attributes))

        return cls(id=actor_id, attributes=attributes)


@dataclass(frozen=True)
class ObservedEvent:
    """
    One event from the Docker daemon.

    Every field is optional: an absent field never satisfies a present
    rule criterion. `raw` keeps the decoded JSON object for the
    notification body.
    """

    subject_type: SubjectType | None = None
    action: str | None = None
    actor: Actor | None = None
    scope: Scope | None = None
    time: int | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def actor_name(self) -> str | None:
        """Human name of the actor (container or image name), if reported."""
        if self.actor is None or self.actor.attributes is None:
            return None
        return self.actor.attributes.get("name")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ObservedEvent:
        """
        Create from a decoded Docker event message.

        Raises:
            ValueError: If a field has the wrong type or an unknown enum value
        """
        if not isinstance(data, Mapping):
            raise ValueError("Event must be a JSON object")

        subject_type = _optional_enum(SubjectType, data.get("Type"), "Type")
        scope = _optional_enum(Scope, data.get("scope"), "scope")

        action = data.get("Action")
        if action is not None and not isinstance(action, str):
            raise ValueError("Action must be a string")

        raw_actor = data.get("Actor")
        actor = Actor.from_dict(raw_actor) if raw_actor is not None else None

        event_time = data.get("time")
        if event_time is not None and not isinstance(event_time, int):
            raise ValueError("time must be an integer")

        return cls(
            subject_type=subject_type,
            action=action,
            actor=actor,
            scope=scope,
            time=event_time,
            raw=dict(data),
        )


def _optional_enum(enum_cls: type[Enum], value: Any, name: str) -> Any:
    """Decode an optional enum value. Docker sends "" for unset fields."""
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise ValueError(f"Unknown {name} value: {value!r}") from None
