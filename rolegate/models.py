"""Pydantic models for the permission data model."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer, field_validator


class CatalogEntry(BaseModel):
    """Documentation entry shown to administrators; never used for evaluation."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""


class Permission(CatalogEntry):
    """A named grant as listed in the administrative catalog."""


class Resource(CatalogEntry):
    """A protected entity class such as ``clients`` or ``invoices``."""


class Action(CatalogEntry):
    """An operation class such as ``view`` or ``approve``."""


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, set):
        return frozenset(value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, (tuple, frozenset)):
        return [_thaw(v) for v in value]
    return value


class PermissionRule(BaseModel):
    """One grant scoped to a single resource/action pair."""

    model_config = ConfigDict(frozen=True)

    id: str
    resource: str
    action: str
    conditions: Mapping[str, Any] | None = None

    @field_validator("conditions", mode="after")
    @classmethod
    def freeze_conditions(cls, value: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
        # read-only all the way down
        return _freeze(value) if value is not None else None

    @field_serializer("conditions")
    def dump_conditions(self, value: Mapping[str, Any] | None) -> dict[str, Any] | None:
        return _thaw(value) if value is not None else None

    @property
    def is_unconditional(self) -> bool:
        return not self.conditions


class RolePermissions(BaseModel):
    """The full rule set granted to one role."""

    model_config = ConfigDict(frozen=True)

    role: str
    permissions: tuple[PermissionRule, ...] = Field(default_factory=tuple)

    def rules_for(self, resource: str, action: str) -> list[PermissionRule]:
        return [r for r in self.permissions if r.resource == resource and r.action == action]


# role name -> rules granted to that role
PermissionsMap = dict[str, RolePermissions]


class DecisionReason(str, Enum):
    ALLOWED = "allowed"
    PENDING = "pending"
    UNKNOWN_ROLE = "unknown_role"
    NO_MATCHING_RULE = "no_matching_rule"
    CONDITIONS_UNMET = "conditions_unmet"
    ERROR = "error"


class Decision(BaseModel):
    """Outcome of a single authorization query."""

    model_config = ConfigDict(frozen=True)

    allow: bool
    reason: DecisionReason
    rule_id: str | None = None

    @classmethod
    def deny(cls, reason: DecisionReason) -> Decision:
        return cls(allow=False, reason=reason)


_ROLE_LIST = TypeAdapter(list[RolePermissions])
_ROLE_MAPPING = TypeAdapter(dict[str, RolePermissions])


def _with_role(key: str, value: Any) -> Any:
    # shorthand forms: `role: [rules]` and `role: {permissions: [...]}`
    if isinstance(value, list):
        return {"role": key, "permissions": value}
    if isinstance(value, dict) and "role" not in value:
        return {"role": key, **value}
    return value


def parse_permissions_map(raw: Any) -> PermissionsMap:
    """Build a PermissionsMap from a decoded policy document.

    Accepts either ``{role: {role, permissions}}`` or ``[{role, permissions}]``.
    A mapping entry may omit its inner ``role`` field (it defaults to the key)
    or be just the list of rules.

    Raises pydantic.ValidationError on shape errors and ValueError on
    duplicate or mismatched role names.
    """
    if isinstance(raw, dict) and list(raw) == ["roles"] and isinstance(raw["roles"], (list, dict)):
        raw = raw["roles"]

    if isinstance(raw, list):
        result: PermissionsMap = {}
        for entry in _ROLE_LIST.validate_python(raw):
            if entry.role in result:
                raise ValueError(f"Duplicate role: {entry.role!r}")
            result[entry.role] = entry
        return result

    if isinstance(raw, dict):
        filled = {key: _with_role(key, value) for key, value in raw.items()}
        result = _ROLE_MAPPING.validate_python(filled)
        for key, entry in result.items():
            if entry.role != key:
                raise ValueError(f"Role key {key!r} does not match its role field {entry.role!r}")
        return result

    raise ValueError(f"Policy document must be a mapping or a list, got {type(raw).__name__}")


def dump_permissions_map(permissions: PermissionsMap) -> dict[str, Any]:
    """Serialize a PermissionsMap back to its document form."""
    return {
        role: entry.model_dump(mode="json", exclude_none=True)
        for role, entry in permissions.items()
    }
