"""rolegate - attribute-aware role permission checks over flat rule sets."""

from rolegate.cache import DecisionCache
from rolegate.config import RolegateConfig, load_config
from rolegate.context import ContextState, PermissionContext, ResourcePermissions
from rolegate.errors import MalformedCondition, PermissionDenied, PolicyLoadError
from rolegate.evaluator import evaluate
from rolegate.guards import ensure, require_permission
from rolegate.models import (
    Action,
    Decision,
    DecisionReason,
    Permission,
    PermissionRule,
    PermissionsMap,
    Resource,
    RolePermissions,
    parse_permissions_map,
)
from rolegate.sources import FileSource, HttpSource, PolicySource, StaticSource, create_source
from rolegate.store import PENDING, PolicySnapshot, PolicyStore

__version__ = "0.1.0"

__all__ = [
    "PENDING",
    "Action",
    "ContextState",
    "Decision",
    "DecisionCache",
    "DecisionReason",
    "FileSource",
    "HttpSource",
    "MalformedCondition",
    "Permission",
    "PermissionContext",
    "PermissionDenied",
    "PermissionRule",
    "PermissionsMap",
    "PolicyLoadError",
    "PolicySnapshot",
    "PolicySource",
    "PolicyStore",
    "Resource",
    "ResourcePermissions",
    "RolePermissions",
    "RolegateConfig",
    "StaticSource",
    "create_source",
    "ensure",
    "evaluate",
    "load_config",
    "parse_permissions_map",
    "require_permission",
]
