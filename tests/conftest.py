"""
Dockwatch Test Suite - Shared Fixtures and Configuration
"""

from __future__ import annotations

from typing import Any

import pytest

from dockwatch.models import ObservedEvent


@pytest.fixture(autouse=True)
def reset_singletons():
    """
    Reset settings and logging state around every test.

    Settings must be reset first because logging reads the level from them.
    Resetting logging restores propagation so caplog sees dockwatch records.
    """

    def do_reset():
        from dockwatch.core.config import reset_settings
        from dockwatch.core.logging import reset_logging

        reset_settings()
        reset_logging()

    do_reset()
    yield
    do_reset()


def make_event_dict(
    type_: str | None = "container",
    action: str | None = "start",
    actor_id: str | None = "abc123",
    attributes: dict[str, str] | None = None,
    scope: str | None = "local",
) -> dict[str, Any]:
    """Build a Docker event message in /events wire format."""
    data: dict[str, Any] = {"time": 1700000000, "timeNano": 1700000000000000000}
    if type_ is not None:
        data["Type"] = type_
    if action is not None:
        data["Action"] = action
    if actor_id is not None or attributes is not None:
        actor: dict[str, Any] = {}
        if actor_id is not None:
            actor["ID"] = actor_id
        if attributes is not None:
            actor["Attributes"] = attributes
        data["Actor"] = actor
    if scope is not None:
        data["scope"] = scope
    return data


def make_event(**kwargs) -> ObservedEvent:
    """Build an ObservedEvent through the same decoder as the live stream."""
    return ObservedEvent.from_dict(make_event_dict(**kwargs))


@pytest.fixture
def container_start_event() -> ObservedEvent:
    """A local container start event for container 'web-1'."""
    return make_event(
        attributes={"name": "web-1", "image": "nginx:1.25", "com.example.role": "web"},
    )


@pytest.fixture
def sample_rules_yaml() -> str:
    """Rule file with two subscriptions."""
    return """
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

- target:
    key: audit
  rules:
    - action: start
      scope: local
"""


@pytest.fixture
def event_factory():
    """Factory fixture: event_factory(action="die", attributes={...}) -> ObservedEvent."""
    return make_event


@pytest.fixture
def event_dict_factory():
    """Factory fixture returning raw Docker event dicts."""
    return make_event_dict
