"""
Role-Based Access Control (RBAC) Module

Provides access control for change-control operations:
- Role and permission registry
- Actor directory
- Authorization engine with separation of duties
"""

from .roles import (
    Role,
    Permission,
    Action,
    ROLE_PERMISSIONS,
    permissions_for,
    has_permission,
    has_any_permission,
    has_all_permissions,
    role_label,
    permission_label
)

from .actors import (
    Actor,
    ActorDirectory
)

from .policy import (
    AccessContext,
    AccessDecision,
    AccessResult,
    AuthorizationEngine,
    DenyReason,
    get_authorization_engine
)

__all__ = [
    # Roles
    "Role",
    "Permission",
    "Action",
    "ROLE_PERMISSIONS",
    "permissions_for",
    "has_permission",
    "has_any_permission",
    "has_all_permissions",
    "role_label",
    "permission_label",
    # Actors
    "Actor",
    "ActorDirectory",
    # Policy
    "AccessContext",
    "AccessDecision",
    "AccessResult",
    "AuthorizationEngine",
    "DenyReason",
    "get_authorization_engine"
]
