"""Pure evaluation of a can(resource, action, conditions) query.

Rules for the same resource/action pair combine with OR; the conditions
inside one rule combine with AND. Anything missing or malformed resolves
to a deny for the rule in question, never to an allow.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from rolegate.errors import MalformedCondition
from rolegate.matchers import DEFAULT_SELF_SENTINEL, compile_matcher
from rolegate.models import Decision, DecisionReason, PermissionRule, RolePermissions

logger = logging.getLogger(__name__)


def rule_matches(
    rule: PermissionRule,
    request_conditions: Mapping[str, Any] | None,
    subject_id: str | None = None,
    self_sentinel: str = DEFAULT_SELF_SENTINEL,
) -> bool:
    """Return True if every condition of ``rule`` is satisfied by the request.

    Raises MalformedCondition if a condition value has an unsupported shape.
    """
    if rule.is_unconditional:
        return True
    if not request_conditions:
        return False

    for key, expected in rule.conditions.items():
        try:
            matcher = compile_matcher(key, expected, self_sentinel)
        except MalformedCondition as e:
            raise MalformedCondition(key, expected, rule_id=rule.id) from e
        if key not in request_conditions:
            return False
        if not matcher.matches(request_conditions[key], subject_id):
            return False
    return True


def evaluate(
    permissions: Mapping[str, RolePermissions],
    role: str | None,
    resource: str,
    action: str,
    request_conditions: Mapping[str, Any] | None = None,
    subject_id: str | None = None,
    self_sentinel: str = DEFAULT_SELF_SENTINEL,
) -> Decision:
    """Decide whether ``role`` may perform ``action`` on ``resource``."""
    role_permissions = permissions.get(role) if role is not None else None
    if role_permissions is None:
        return Decision.deny(DecisionReason.UNKNOWN_ROLE)

    candidates = role_permissions.rules_for(resource, action)
    if not candidates:
        return Decision.deny(DecisionReason.NO_MATCHING_RULE)

    for rule in candidates:
        try:
            matched = rule_matches(rule, request_conditions, subject_id, self_sentinel)
        except MalformedCondition as e:
            logger.warning("Ignoring rule with malformed condition: %s", e)
            continue
        if matched:
            return Decision(allow=True, reason=DecisionReason.ALLOWED, rule_id=rule.id)

    return Decision.deny(DecisionReason.CONDITIONS_UNMET)


def find_malformed(
    rule: PermissionRule, self_sentinel: str = DEFAULT_SELF_SENTINEL
) -> list[MalformedCondition]:
    """Every condition of ``rule`` that no matcher understands."""
    problems = []
    for key, expected in (rule.conditions or {}).items():
        try:
            compile_matcher(key, expected, self_sentinel)
        except MalformedCondition:
            problems.append(MalformedCondition(key, expected, rule_id=rule.id))
    return problems
