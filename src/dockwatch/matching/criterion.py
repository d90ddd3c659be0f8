"""
Optional Criterion Matching.

A criterion is the value configured at one position of a rule. It is one
of three shapes:

- Wildcard: nothing configured, accepts anything (even an absent value)
- One(value): accepts when compare(value, observed) holds
- Many(values): accepts when compare holds for any of the values

An empty Many accepts nothing; it is not a wildcard.

The comparison is passed in as a plain function, so the same acceptance
policy serves equality, prefix and nested-rule checks:

    accepts(One("die"), "died", starts_with)  # True
    accepts(Many(("a", "b")), "c")            # False
    accepts(WILDCARD, None)                   # True
"""

from __future__ import annotations

import operator
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

C = TypeVar("C")
V = TypeVar("V")


@dataclass(frozen=True)
class Wildcard:
    """No constraint configured."""

    def __repr__(self) -> str:
        return "WILDCARD"


@dataclass(frozen=True)
class One(Generic[C]):
    """A single expected value."""

    value: C


@dataclass(frozen=True)
class Many(Generic[C]):
    """A set of acceptable values; any one of them is enough."""

    values: tuple[C, ...]


Criterion = Union[Wildcard, One[C], Many[C]]

WILDCARD = Wildcard()


def accepts(
    criterion: Criterion[C],
    observed: V | None,
    compare: Callable[[C, V], bool] = operator.eq,
) -> bool:
    """
    Check whether a criterion accepts an observed value.

    Args:
        criterion: Configured criterion
        observed: Observed value, None when the event lacks it
        compare: Called as compare(criterion_value, observed)

    Returns:
        True for a wildcard; False when the value is absent;
        otherwise the result of compare (OR across a Many)
    """
    if isinstance(criterion, Wildcard):
        return True
    if observed is None:
        return False
    if isinstance(criterion, One):
        return compare(criterion.value, observed)
    if isinstance(criterion, Many):
        return any(compare(candidate, observed) for candidate in criterion.values)
    raise TypeError(f"Not a criterion: {criterion!r}")


def starts_with(prefix: str, observed: str) -> bool:
    """Literal prefix test used for action criteria."""
    return observed.startswith(prefix)


def parse_criterion(raw: Any, convert: Callable[[Any], C]) -> Criterion[C]:
    """
    Build a criterion from its rule-file shape.

    None becomes a wildcard, a list becomes Many and any other value
    becomes One. Each element goes through `convert`, which should raise
    ValueError or TypeError for invalid input.
    """
    if raw is None:
        return WILDCARD
    if isinstance(raw, list):
        return Many(tuple(convert(item) for item in raw))
    return One(convert(raw))


def dump_criterion(criterion: Criterion[C], convert: Callable[[C], Any]) -> Any:
    """Inverse of parse_criterion: None, a bare value, or a list."""
    if isinstance(criterion, One):
        return convert(criterion.value)
    if isinstance(criterion, Many):
        return [convert(value) for value in criterion.values]
    return None
