"""
Role Registry - Roles and permissions for RBAC

Provides:
- Role and permission definitions
- Static role-permission mapping
- Permission helpers and display labels
"""

import logging
from enum import Enum
from typing import Dict, FrozenSet, Iterable

logger = logging.getLogger("RoleRegistry")


class Role(Enum):
    """Console roles, exactly one per actor"""
    ADMIN = "ADMIN"
    NETWORK_MANAGER = "NETWORK_MANAGER"   # Internal network manager
    TECHNICIAN = "TECHNICIAN"             # Internal technician
    CONTRACTOR = "CONTRACTOR"             # External contractor
    VIEWER = "VIEWER"                     # Read-only


class Permission(Enum):
    """Capabilities granted by roles or explicit grants"""
    VIEW_INFRASTRUCTURE = "VIEW_INFRASTRUCTURE"
    EDIT_INFRASTRUCTURE = "EDIT_INFRASTRUCTURE"
    PROPOSE_MODIFICATION = "PROPOSE_MODIFICATION"
    MANAGE_USERS = "MANAGE_USERS"
    EXPORT_DATA = "EXPORT_DATA"


class Action(Enum):
    """Operations an actor may request"""
    PROPOSE = "propose"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    APPLY = "apply"
    VIEW = "view"
    EXPORT = "export"
    MANAGE_USERS = "manage-users"


ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.NETWORK_MANAGER: frozenset({
        Permission.VIEW_INFRASTRUCTURE,
        Permission.EDIT_INFRASTRUCTURE,
        Permission.PROPOSE_MODIFICATION,
        Permission.EXPORT_DATA,
    }),
    Role.TECHNICIAN: frozenset({
        Permission.VIEW_INFRASTRUCTURE,
        Permission.PROPOSE_MODIFICATION,
    }),
    Role.CONTRACTOR: frozenset({
        Permission.VIEW_INFRASTRUCTURE,
        Permission.PROPOSE_MODIFICATION,
    }),
    Role.VIEWER: frozenset({
        Permission.VIEW_INFRASTRUCTURE,
    }),
}

ROLE_LABELS: Dict[Role, str] = {
    Role.ADMIN: "Administrator",
    Role.NETWORK_MANAGER: "Network Manager",
    Role.TECHNICIAN: "Technician",
    Role.CONTRACTOR: "Contractor",
    Role.VIEWER: "Read-only",
}

PERMISSION_LABELS: Dict[Permission, str] = {
    Permission.VIEW_INFRASTRUCTURE: "View infrastructure",
    Permission.EDIT_INFRASTRUCTURE: "Edit infrastructure",
    Permission.PROPOSE_MODIFICATION: "Propose modifications",
    Permission.MANAGE_USERS: "Manage users",
    Permission.EXPORT_DATA: "Export data",
}


def _validate_registry() -> None:
    """Every role must map to a non-empty permission set"""
    missing = [role.value for role in Role if not ROLE_PERMISSIONS.get(role)]
    if missing:
        raise RuntimeError(f"Roles without permissions: {', '.join(missing)}")
    unlabeled = [role.value for role in Role if role not in ROLE_LABELS]
    unlabeled += [perm.value for perm in Permission if perm not in PERMISSION_LABELS]
    if unlabeled:
        raise RuntimeError(f"Missing labels: {', '.join(unlabeled)}")


_validate_registry()


def permissions_for(role: Role) -> FrozenSet[Permission]:
    """
    Get the permissions held by a role

    Args:
        role: Role to look up

    Returns:
        Fixed, non-empty set of permissions
    """
    return ROLE_PERMISSIONS[role]


def has_permission(permissions: Iterable[Permission], permission: Permission) -> bool:
    """Check if a permission set contains a permission"""
    return permission in frozenset(permissions)


def has_any_permission(permissions: Iterable[Permission], required: Iterable[Permission]) -> bool:
    """Check if a permission set contains at least one of the required permissions"""
    held = frozenset(permissions)
    return any(p in held for p in required)


def has_all_permissions(permissions: Iterable[Permission], required: Iterable[Permission]) -> bool:
    """Check if a permission set contains every required permission"""
    held = frozenset(permissions)
    return all(p in held for p in required)


def role_label(role: Role) -> str:
    return ROLE_LABELS[role]


def permission_label(permission: Permission) -> str:
    return PERMISSION_LABELS[permission]
