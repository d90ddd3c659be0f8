"""
Subscriptions and Rule File Loading.

A Subscription pairs one notification target with a list of event
rules. It is triggered when any of its rules accepts an event.

Rule files are YAML (JSON also parses) with a list at the top level:

    - target:
        key: ops
        type: warning
        tag: docker
      rules:
        - type: container
          action: [die, oom]
        - actor:
            attributes:
              com.example.role: db

Subscriptions are loaded once at startup and never mutated.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .core.logging import get_logger
from .errors import ConfigError
from .matching.rules import EventRule
from .models import NotifyType, ObservedEvent

logger = get_logger(__name__)

TARGET_KEYS = frozenset({"key", "type", "tag"})
SUBSCRIPTION_KEYS = frozenset({"target", "rules"})


@dataclass(frozen=True)
class Target:
    """Where and how a triggered subscription is notified."""

    key: str
    message_type: NotifyType | None = None
    tag: str | None = None

    @classmethod
    def from_dict(cls, data: Any, location: str = "target") -> Target:
        """
        Create from the rule-file mapping.

        Raises:
            ConfigError: If the key is missing or a field is invalid
        """
        if not isinstance(data, Mapping):
            raise ConfigError("expected a mapping", location=location)
        unknown = sorted(str(k) for k in data if k not in TARGET_KEYS)
        if unknown:
            raise ConfigError(f"unknown key(s): {', '.join(unknown)}", location=location)

        key = data.get("key")
        if not isinstance(key, str) or not key:
            raise ConfigError("a non-empty string key is required", location=f"{location}.key")

        message_type = None
        if data.get("type") is not None:
            try:
                message_type = NotifyType(data["type"])
            except ValueError:
                choices = ", ".join(t.value for t in NotifyType)
                raise ConfigError(
                    f"unknown type {data['type']!r} (expected one of: {choices})",
                    location=f"{location}.type",
                ) from None

        tag = data.get("tag")
        if tag is not None and not isinstance(tag, str):
            raise ConfigError("tag must be a string", location=f"{location}.tag")

        return cls(key=key, message_type=message_type, tag=tag)

    def to_dict(self) -> dict[str, Any]:
        """Convert to rule-file shape, omitting unset fields."""
        result: dict[str, Any] = {"key": self.key}
        if self.message_type is not None:
            result["type"] = self.message_type.value
        if self.tag is not None:
            result["tag"] = self.tag
        return result


@dataclass(frozen=True)
class Subscription:
    """A notification target plus the rules that trigger it."""

    target: Target
    rules: tuple[EventRule, ...] = ()

    @property
    def key(self) -> str:
        return self.target.key

    def is_triggered_by(self, event: ObservedEvent) -> bool:
        """True when any rule accepts the event. No rules means never triggered."""
        return any(rule.accepts(event) for rule in self.rules)

    @classmethod
    def from_dict(cls, data: Any, location: str = "subscription") -> Subscription:
        """
        Create from the rule-file mapping.

        Raises:
            ConfigError: If the mapping is malformed
        """
        if not isinstance(data, Mapping):
            raise ConfigError("expected a mapping", location=location)
        unknown = sorted(str(k) for k in data if k not in SUBSCRIPTION_KEYS)
        if unknown:
            raise ConfigError(f"unknown key(s): {', '.join(unknown)}", location=location)
        if "target" not in data:
            raise ConfigError("missing target", location=location)

        target = Target.from_dict(data["target"], location=f"{location}.target")

        raw_rules = data.get("rules")
        if raw_rules is None:
            raw_rules = []
        if not isinstance(raw_rules, list):
            raise ConfigError("rules must be a list", location=f"{location}.rules")

        rules = tuple(
            EventRule.from_dict(raw, location=f"{location}.rules[{i}]")
            for i, raw in enumerate(raw_rules)
        )
        return cls(target=target, rules=rules)

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target.to_dict(),
            "rules": [rule.to_dict() for rule in self.rules],
        }


def parse_subscriptions(data: Any) -> list[Subscription]:
    """
    Build subscriptions from a decoded rule document.

    Raises:
        ConfigError: If the document is not a list of valid subscriptions
    """
    if data is None:
        raise ConfigError("rule file is empty")
    if not isinstance(data, list):
        raise ConfigError("rule file must contain a list of subscriptions")

    subscriptions = [
        Subscription.from_dict(raw, location=f"subscriptions[{i}]") for i, raw in enumerate(data)
    ]

    for subscription in subscriptions:
        if not subscription.rules:
            logger.warning("Subscription '%s' has no rules and will never trigger", subscription.key)

    return subscriptions


def load_subscriptions(path: Path) -> list[Subscription]:
    """
    Load subscriptions from a YAML or JSON rule file.

    Args:
        path: Rule file path

    Returns:
        Subscriptions in file order

    Raises:
        ConfigError: If the file is missing, unparseable, or invalid
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Rule file not found: {path}") from None
    except OSError as e:
        raise ConfigError(f"Cannot read rule file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in rule file {path}: {e}") from e

    subscriptions = parse_subscriptions(data)
    logger.info(
        "Loaded %d subscription(s) with %d rule(s) from %s",
        len(subscriptions),
        sum(len(s.rules) for s in subscriptions),
        path,
    )
    return subscriptions
