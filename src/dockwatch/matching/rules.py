"""
Actor and Event Rules.

An EventRule accepts an event when all four of its criteria accept
(type, action, actor, scope). Actions compare by prefix, actors by
nested ActorRule, everything else by equality.

Rule-file shape (every key optional, each a bare value or a list):

    type: container
    action: [die, oom]
    actor:
      id: 3f2a...
      attributes:
        com.docker.compose.service: db
    scope: local
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from ..errors import ConfigError
from ..models import Actor, ObservedEvent, Scope, SubjectType
from .criterion import (
    WILDCARD,
    Criterion,
    accepts,
    dump_criterion,
    parse_criterion,
    starts_with,
)

AttributeMap = Mapping[str, Criterion[str]]

ACTOR_RULE_KEYS = frozenset({"id", "attributes"})
EVENT_RULE_KEYS = frozenset({"type", "action", "actor", "scope"})


def attribute_map_accepts(candidate: AttributeMap, observed: Mapping[str, str]) -> bool:
    """
    Check an observed attribute map against one candidate map.

    Every key of the candidate must be present in the observed map with
    an accepted value. Extra observed keys are ignored.
    """
    return all(
        key in observed and accepts(criterion, observed[key])
        for key, criterion in candidate.items()
    )


@dataclass(frozen=True)
class ActorRule:
    """Constraint on the actor of an event (its ID and attributes)."""

    id: Criterion[str] = WILDCARD
    attributes: Criterion[AttributeMap] = WILDCARD

    def accepts(self, actor: Actor) -> bool:
        return accepts(self.id, actor.id) and accepts(
            self.attributes, actor.attributes, attribute_map_accepts
        )

    @classmethod
    def from_dict(cls, data: Any, location: str = "actor") -> ActorRule:
        """
        Create from the rule-file mapping.

        Raises:
            ConfigError: If the mapping is malformed
        """
        _check_keys(data, ACTOR_RULE_KEYS, location)
        return cls(
            id=_parse_field(data.get("id"), _as_string, f"{location}.id"),
            attributes=_parse_field(
                data.get("attributes"),
                lambda raw: _as_attribute_map(raw, f"{location}.attributes"),
                f"{location}.attributes",
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to rule-file shape, omitting wildcards."""
        result = {
            "id": dump_criterion(self.id, str),
            "attributes": dump_criterion(
                self.attributes,
                lambda attrs: {k: dump_criterion(v, str) for k, v in attrs.items()},
            ),
        }
        return {k: v for k, v in result.items() if v is not None}


@dataclass(frozen=True)
class EventRule:
    """One complete set of field constraints; an event must satisfy all of them."""

    subject_type: Criterion[SubjectType] = WILDCARD
    action: Criterion[str] = WILDCARD
    actor: Criterion[ActorRule] = WILDCARD
    scope: Criterion[Scope] = WILDCARD

    def accepts(self, event: ObservedEvent) -> bool:
        return (
            accepts(self.subject_type, event.subject_type)
            and accepts(self.action, event.action, starts_with)
            and accepts(self.actor, event.actor, ActorRule.accepts)
            and accepts(self.scope, event.scope)
        )

    @classmethod
    def from_dict(cls, data: Any, location: str = "rule") -> EventRule:
        """
        Create from the rule-file mapping.

        Raises:
            ConfigError: If the mapping is malformed
        """
        _check_keys(data, EVENT_RULE_KEYS, location)
        return cls(
            subject_type=_parse_field(data.get("type"), SubjectType, f"{location}.type"),
            action=_parse_field(data.get("action"), _as_string, f"{location}.action"),
            actor=_parse_field(
                data.get("actor"),
                lambda raw: ActorRule.from_dict(raw, f"{location}.actor"),
                f"{location}.actor",
            ),
            scope=_parse_field(data.get("scope"), Scope, f"{location}.scope"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to rule-file shape, omitting wildcards."""
        result = {
            "type": dump_criterion(self.subject_type, lambda t: t.value),
            "action": dump_criterion(self.action, str),
            "actor": dump_criterion(self.actor, ActorRule.to_dict),
            "scope": dump_criterion(self.scope, lambda s: s.value),
        }
        return {k: v for k, v in result.items() if v is not None}


# =============================================================================
# Parsing helpers
# =============================================================================


def _check_keys(data: Any, allowed: frozenset[str], location: str) -> None:
    if not isinstance(data, Mapping):
        raise ConfigError("expected a mapping", location=location)
    unknown = sorted(str(key) for key in data if key not in allowed)
    if unknown:
        raise ConfigError(f"unknown key(s): {', '.join(unknown)}", location=location)


def _parse_field(raw: Any, convert: Callable[[Any], Any], location: str) -> Criterion[Any]:
    try:
        return parse_criterion(raw, convert)
    except (TypeError, ValueError) as e:
        raise ConfigError(str(e), location=location) from e


def _as_string(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {value!r}")
    return value


def _as_attribute_value(value: Any) -> str:
    # YAML reads `replicas: 3` as an int; Docker reports attribute values as strings
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise TypeError(f"expected a string, got {value!r}")
    return str(value)


def _as_attribute_map(raw: Any, location: str) -> AttributeMap:
    if not isinstance(raw, Mapping):
        raise ConfigError("expected a mapping of attribute criteria", location=location)
    attributes: dict[str, Criterion[str]] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            raise ConfigError(f"attribute name must be a string, got {key!r}", location=location)
        attributes[key] = _parse_field(value, _as_attribute_value, f"{location}.{key}")
    return MappingProxyType(attributes)
