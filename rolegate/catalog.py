"""Resource/action catalog and the built-in role policy of the dashboard."""

from __future__ import annotations

from rolegate.models import Action, Permission, PermissionRule, PermissionsMap, Resource, RolePermissions

VIEW = "view"
CREATE = "create"
UPDATE = "update"
DELETE = "delete"
APPROVE = "approve"
ASSIGN = "assign"
BOOK = "book"
MARK_PAID = "mark-paid"
UPLOAD = "upload"
DOWNLOAD = "download"

RESOURCES: tuple[Resource, ...] = (
    Resource(id="dashboard", name="Dashboard", description="Main dashboard access"),
    Resource(id="shoots", name="Shoots", description="Photo shoots management"),
    Resource(id="book-shoot", name="Book Shoot", description="Book new photo shoots"),
    Resource(id="invoices", name="Invoices", description="Invoice management"),
    Resource(id="accounting", name="Accounting", description="Accounting and financial management"),
    Resource(id="clients", name="Clients", description="Client management"),
    Resource(id="photographers", name="Photographers", description="Photographer management"),
    Resource(id="accounts", name="Accounts", description="User accounts"),
    Resource(id="availability", name="Availability", description="Scheduling availability"),
    Resource(id="reports", name="Reports", description="Reports and analytics"),
    Resource(id="coupons", name="Coupons", description="Coupon and discount management"),
    Resource(id="settings", name="Settings", description="System settings"),
    Resource(id="scheduling-settings", name="Scheduling Settings", description="Scheduling configuration"),
    Resource(id="profile", name="Profile", description="User profile management"),
    Resource(id="integrations", name="Integrations", description="Third-party integrations"),
    Resource(id="payments", name="Payments", description="Payment status and management"),
    Resource(id="notes", name="Notes", description="Shoot notes management"),
    Resource(id="company-notes", name="Company Notes", description="Company notes visibility"),
    Resource(id="editing-notes", name="Editing Notes", description="Editing notes visibility"),
    Resource(id="photographer-notes", name="Photographer Notes", description="Photographer notes visibility"),
    Resource(id="branding", name="Branding", description="Branding information management"),
    Resource(id="media", name="Media", description="Media upload and management"),
    Resource(id="tours", name="Tours", description="Tour settings and management"),
    Resource(id="history", name="History", description="Shoot history access"),
)

ACTIONS: tuple[Action, ...] = (
    Action(id=VIEW, name="View", description="Can view"),
    Action(id=CREATE, name="Create", description="Can create"),
    Action(id=UPDATE, name="Update", description="Can update"),
    Action(id=DELETE, name="Delete", description="Can delete"),
    Action(id=APPROVE, name="Approve", description="Can approve"),
    Action(id=ASSIGN, name="Assign", description="Can assign"),
    Action(id=BOOK, name="Book", description="Can book"),
    Action(id=MARK_PAID, name="Mark as Paid", description="Can mark payments as paid"),
    Action(id=UPLOAD, name="Upload", description="Can upload files"),
    Action(id=DOWNLOAD, name="Download", description="Can download files"),
)

# Rules scoped to the caller's own records, or to shoots assigned to them.
OWN = {"ownerId": "self"}
ASSIGNED = {"assigneeId": "self"}

# Admins see everything except payment handling and removing integrations.
_ADMIN_EXCLUDED = {
    ("payments", VIEW),
    ("payments", MARK_PAID),
    ("payments", UPDATE),
    ("integrations", DELETE),
}


def permission_catalog() -> list[Permission]:
    """Every grantable resource/action pair, for administrative display."""
    return [
        Permission(
            id=f"{resource.id}-{action.id}",
            name=f"{action.name} {resource.name}",
            description=f"{action.description} {resource.name.lower()}",
        )
        for resource in RESOURCES
        for action in ACTIONS
    ]


def _rule(resource: str, action: str, conditions: dict | None = None) -> PermissionRule:
    return PermissionRule(
        id=f"{resource}-{action}",
        resource=resource,
        action=action,
        conditions=dict(conditions) if conditions else None,
    )


def _role(role: str, rules: list[PermissionRule]) -> RolePermissions:
    return RolePermissions(role=role, permissions=tuple(rules))


def default_permissions_map() -> PermissionsMap:
    """The role policy the dashboard ships with."""
    every_grant = [_rule(r.id, a.id) for r in RESOURCES for a in ACTIONS]

    return {
        "superadmin": _role("superadmin", every_grant),
        "admin": _role(
            "admin",
            [p for p in every_grant if (p.resource, p.action) not in _ADMIN_EXCLUDED],
        ),
        "salesRep": _role("salesRep", [
            _rule("dashboard", VIEW),
            _rule("clients", VIEW),
            _rule("clients", CREATE),
            _rule("clients", UPDATE),
            _rule("shoots", VIEW),
            _rule("shoots", BOOK),
            _rule("book-shoot", CREATE),
            _rule("photographers", VIEW),
            _rule("availability", VIEW),
            _rule("accounting", VIEW),
        ]),
        "client": _role("client", [
            _rule("dashboard", VIEW),
            _rule("shoots", VIEW, OWN),
            _rule("shoots", BOOK),
            _rule("invoices", VIEW, OWN),
            _rule("media", VIEW, OWN),
            _rule("media", DOWNLOAD, OWN),
            _rule("media", UPLOAD, OWN),
            _rule("tours", VIEW, OWN),
            _rule("notes", VIEW, OWN),
            _rule("settings", VIEW),
            _rule("settings", UPDATE, OWN),
        ]),
        "photographer": _role("photographer", [
            _rule("dashboard", VIEW),
            _rule("shoots", VIEW, ASSIGNED),
            _rule("shoots", UPDATE, ASSIGNED),
            _rule("clients", VIEW),
            _rule("media", VIEW, ASSIGNED),
            _rule("media", UPLOAD, ASSIGNED),
            _rule("tours", VIEW, ASSIGNED),
            _rule("notes", VIEW, ASSIGNED),
            _rule("photographer-notes", VIEW, ASSIGNED),
            _rule("photographer-notes", UPDATE, ASSIGNED),
            _rule("availability", VIEW),
            _rule("availability", UPDATE, OWN),
            _rule("settings", VIEW),
            _rule("settings", UPDATE, OWN),
        ]),
        "editor": _role("editor", [
            _rule("dashboard", VIEW),
            _rule("shoots", VIEW, ASSIGNED),
            _rule("shoots", UPDATE, ASSIGNED),
            _rule("media", VIEW),
            _rule("media", UPLOAD),
            _rule("media", UPDATE),
            _rule("tours", VIEW),
            _rule("tours", UPDATE),
            _rule("notes", VIEW),
            _rule("editing-notes", VIEW),
            _rule("editing-notes", UPDATE),
            _rule("photographer-notes", VIEW),
            _rule("settings", VIEW),
            _rule("settings", UPDATE, OWN),
        ]),
    }
