"""Closed set of condition matchers: equality, set membership, self reference."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from rolegate.errors import MalformedCondition

DEFAULT_SELF_SENTINEL = "self"

_SCALARS = (str, int, float, bool)
_COLLECTIONS = (list, tuple, set, frozenset)


def _same(actual: Any, expected: Any) -> bool:
    # bool is an int subclass; keep True from matching 1
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    if not isinstance(actual, _SCALARS):
        return False
    return actual == expected


@runtime_checkable
class Matcher(Protocol):
    """Tests one request attribute value."""

    def matches(self, actual: Any, subject_id: str | None) -> bool: ...


@dataclass(frozen=True)
class Equals:
    expected: str | int | float | bool

    def matches(self, actual: Any, subject_id: str | None) -> bool:
        return _same(actual, self.expected)


@dataclass(frozen=True)
class AnyOf:
    options: tuple[str | int | float | bool, ...]

    def matches(self, actual: Any, subject_id: str | None) -> bool:
        return any(_same(actual, option) for option in self.options)


@dataclass(frozen=True)
class SelfReference:
    """Matches when the request value is the caller's own identifier."""

    def matches(self, actual: Any, subject_id: str | None) -> bool:
        if subject_id is None or actual is None:
            return False
        return _same(actual, subject_id)


def _any_of(key: str, values: Any) -> AnyOf:
    if not isinstance(values, _COLLECTIONS) or not all(isinstance(v, _SCALARS) for v in values):
        raise MalformedCondition(key, values)
    return AnyOf(options=tuple(values))


def compile_matcher(
    key: str, value: Any, self_sentinel: str = DEFAULT_SELF_SENTINEL
) -> Matcher:
    """Turn a raw condition value from policy data into a Matcher.

    Raises MalformedCondition for any shape outside the supported set.
    """
    if isinstance(value, str) and value == self_sentinel:
        return SelfReference()
    if isinstance(value, _SCALARS):
        return Equals(expected=value)
    if isinstance(value, _COLLECTIONS):
        return _any_of(key, value)

    # explicit operator form: {"eq": x} | {"in": [...]} | {"self": true}
    if isinstance(value, Mapping) and len(value) == 1:
        (op, operand), = value.items()
        if op == "eq" and isinstance(operand, _SCALARS):
            return Equals(expected=operand)
        if op == "in":
            return _any_of(key, operand)
        if op == "self" and operand is True:
            return SelfReference()

    raise MalformedCondition(key, value)
