# stockapp/core/permissions.py
# Single source of truth for what each role may do.
# Permission format: "feature:action"; "*" grants everything.

from stockapp.core.schemas import StaffRole

WILDCARD = "*"

PERMISSIONS: dict[str, frozenset[str]] = {
    StaffRole.MANAGER.value: frozenset({WILDCARD}),
    StaffRole.TECHNICIAN.value: frozenset({
        "clients:read",
        "products:read",
        "staff:read-self",
        "repairs:create",
        "repairs:read-assigned",
        "repairs:update-assigned",
        "dashboard:read-limited",
    }),
    StaffRole.INVENTORY_ASSOCIATE.value: frozenset({
        "products:create",
        "products:read",
        "products:update",
        "products:delete",
        "dashboard:read-limited",
    }),
    StaffRole.CASHIER.value: frozenset({
        "clients:create",
        "clients:read",
        "clients:update",
        "clients:create-purchase",
        "clients:export-history",
        "products:read",
        "staff:read",
        "repairs:create",
        "repairs:read",
        "repairs:update",
        "history:read",
        "dashboard:read-all",
    }),
    StaffRole.NOT_ASSIGNED.value: frozenset(),
}


def _role_key(role) -> str | None:
    if isinstance(role, StaffRole):
        return role.value
    return role


def permissions_for(role) -> frozenset[str]:
    return PERMISSIONS.get(_role_key(role), frozenset())


def has_permission(role, permission: str) -> bool:
    """True when the role holds the permission or the wildcard."""
    if not role:
        return False
    granted = permissions_for(role)
    return WILDCARD in granted or permission in granted
