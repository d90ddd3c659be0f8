"""
Rule matching engine.

Optional criteria (wildcard, one value, or a list) composed into actor
and event rules.
"""

from .criterion import WILDCARD, Criterion, Many, One, Wildcard, accepts, starts_with
from .rules import ActorRule, EventRule, attribute_map_accepts

__all__ = [
    "ActorRule",
    "Criterion",
    "EventRule",
    "Many",
    "One",
    "WILDCARD",
    "Wildcard",
    "accepts",
    "attribute_map_accepts",
    "starts_with",
]
