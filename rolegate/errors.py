"""Error types raised (or absorbed) by the authorization engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rolegate.models import Decision


class PolicyLoadError(Exception):
    """Wraps transport and deserialization failures while loading a policy."""

    def __init__(self, source: str, cause: Exception | str) -> None:
        self.source = source
        super().__init__(f"Failed to load policy from {source}: {cause}")
        if isinstance(cause, Exception):
            self.__cause__ = cause


class MalformedCondition(Exception):
    """A rule's condition value has a shape no matcher understands.

    Evaluation catches this and treats the offending rule as non-matching.
    """

    def __init__(self, key: str, value: Any, rule_id: str | None = None) -> None:
        self.key = key
        self.value = value
        self.rule_id = rule_id
        where = f" in rule '{rule_id}'" if rule_id else ""
        super().__init__(f"Unrecognized condition for '{key}'{where}: {value!r}")


class PermissionDenied(Exception):
    """Raised by guard clauses when the active role may not perform an action."""

    def __init__(self, resource: str, action: str, decision: Decision | None = None) -> None:
        self.resource = resource
        self.action = action
        self.decision = decision
        reason = f" ({decision.reason.value})" if decision is not None else ""
        super().__init__(f"Permission denied: {action} on {resource}{reason}")
