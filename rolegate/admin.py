"""Editing role permissions by building new maps rather than mutating old ones."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from rolegate.catalog import ACTIONS, RESOURCES
from rolegate.models import PermissionRule, PermissionsMap, RolePermissions


def has_grant(permissions: Mapping[str, RolePermissions], role: str, resource: str, action: str) -> bool:
    """True if ``role`` has any rule for the pair, conditional or not."""
    entry = permissions.get(role)
    return entry is not None and bool(entry.rules_for(resource, action))


def grant(
    permissions: Mapping[str, RolePermissions],
    role: str,
    resource: str,
    action: str,
    conditions: Mapping[str, Any] | None = None,
) -> PermissionsMap:
    """Return a copy of ``permissions`` with one more rule for ``role``.

    Unknown roles are created. Rule ids follow ``{resource}-{action}`` and
    get a numeric suffix when the pair already has rules.
    """
    entry = permissions.get(role) or RolePermissions(role=role)
    existing_ids = {r.id for r in entry.permissions}
    rule_id = f"{resource}-{action}"
    n = 2
    while rule_id in existing_ids:
        rule_id = f"{resource}-{action}-{n}"
        n += 1

    rule = PermissionRule(
        id=rule_id,
        resource=resource,
        action=action,
        conditions=dict(conditions) if conditions else None,
    )
    updated = dict(permissions)
    updated[role] = RolePermissions(role=role, permissions=(*entry.permissions, rule))
    return updated


def revoke(
    permissions: Mapping[str, RolePermissions], role: str, resource: str, action: str
) -> PermissionsMap:
    """Return a copy of ``permissions`` without any of ``role``'s rules for the pair."""
    updated = dict(permissions)
    entry = permissions.get(role)
    if entry is None:
        return updated
    kept = tuple(r for r in entry.permissions if not (r.resource == resource and r.action == action))
    updated[role] = RolePermissions(role=role, permissions=kept)
    return updated


def toggle(
    permissions: Mapping[str, RolePermissions], role: str, resource: str, action: str
) -> PermissionsMap:
    """Grant an unconditional rule if the pair is absent, otherwise revoke it."""
    if has_grant(permissions, role, resource, action):
        return revoke(permissions, role, resource, action)
    return grant(permissions, role, resource, action)


def permission_matrix(
    permissions: Mapping[str, RolePermissions],
    role: str,
    resources: Iterable[str] | None = None,
    actions: Iterable[str] | None = None,
) -> dict[str, dict[str, bool]]:
    """resource -> action -> granted, over the catalog unless narrowed."""
    resource_ids = list(resources) if resources is not None else [r.id for r in RESOURCES]
    action_ids = list(actions) if actions is not None else [a.id for a in ACTIONS]
    return {
        resource: {action: has_grant(permissions, role, resource, action) for action in action_ids}
        for resource in resource_ids
    }
