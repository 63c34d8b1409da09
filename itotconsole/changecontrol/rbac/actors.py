"""
Actor Directory - Session identities for RBAC

Provides:
- Actor definition (identity + role + explicit grants)
- Actor registration and lookup
- Admin-gated role assignment and grants
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Any, TYPE_CHECKING

from ..errors import NotFound, Unauthorized
from .roles import Action, Permission, Role, permissions_for, role_label

if TYPE_CHECKING:
    from .policy import AuthorizationEngine

logger = logging.getLogger("ActorDirectory")


@dataclass(frozen=True)
class Actor:
    """
    A session identity

    Attributes:
        actor_id: Unique identifier
        role: Assigned role
        grants: Explicit permissions layered on top of the role
        display_name: Display name
        company: Employer, for contractors
        active: Whether the actor may act at all
    """
    actor_id: str
    role: Role
    grants: FrozenSet[Permission] = frozenset()
    display_name: str = ""
    company: Optional[str] = None
    active: bool = True
    created_at: datetime = field(default_factory=datetime.now, compare=False)

    @property
    def effective_permissions(self) -> FrozenSet[Permission]:
        """Role-derived permissions unioned with explicit grants"""
        return permissions_for(self.role) | self.grants

    def has_permission(self, permission: Permission) -> bool:
        return permission in self.effective_permissions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "role": self.role.value,
            "role_label": role_label(self.role),
            "grants": sorted(p.value for p in self.grants),
            "permissions": sorted(p.value for p in self.effective_permissions),
            "display_name": self.display_name,
            "company": self.company,
            "active": self.active,
            "created_at": self.created_at.isoformat()
        }


class ActorDirectory:
    """
    Registry of known actors

    Actors are values: role changes and grants replace the stored
    Actor rather than mutating it.
    """

    def __init__(self, engine: Optional["AuthorizationEngine"] = None):
        self._actors: Dict[str, Actor] = {}
        self._engine = engine

    @property
    def engine(self) -> "AuthorizationEngine":
        if self._engine is None:
            from .policy import get_authorization_engine
            self._engine = get_authorization_engine()
        return self._engine

    def register(self, actor: Actor) -> Actor:
        """Register or replace an actor"""
        self._actors[actor.actor_id] = actor
        logger.info(f"Registered actor {actor.actor_id} as {actor.role.value}")
        return actor

    def get(self, actor_id: str) -> Actor:
        """Get an actor by ID, raising NotFound if unknown"""
        actor = self._actors.get(actor_id)
        if actor is None:
            raise NotFound("Actor", actor_id)
        return actor

    def exists(self, actor_id: str) -> bool:
        return actor_id in self._actors

    def list_actors(self, active_only: bool = False) -> List[Actor]:
        actors = list(self._actors.values())
        if active_only:
            actors = [a for a in actors if a.active]
        return actors

    def find_by_role(self, role: Role) -> List[Actor]:
        return [a for a in self._actors.values() if a.role == role]

    def reviewers(self) -> List[Actor]:
        """Active actors able to approve, reject and apply"""
        return [
            a for a in self._actors.values()
            if a.active and a.has_permission(Permission.EDIT_INFRASTRUCTURE)
        ]

    def _require_admin(self, admin: Actor) -> None:
        result = self.engine.authorize(admin, Action.MANAGE_USERS)
        if not result.is_allowed:
            raise Unauthorized(admin.actor_id, Action.MANAGE_USERS.value, result.reason_text)

    def assign_role(self, admin: Actor, actor_id: str, role: Role) -> Actor:
        """
        Assign a new role to an actor

        Args:
            admin: Actor performing the change (needs MANAGE_USERS)
            actor_id: Actor to update
            role: New role

        Returns:
            The replacement Actor
        """
        self._require_admin(admin)
        updated = replace(self.get(actor_id), role=role)
        self._actors[actor_id] = updated
        logger.info(f"{admin.actor_id} assigned role {role.value} to {actor_id}")
        return updated

    def grant(self, admin: Actor, actor_id: str, permission: Permission) -> Actor:
        """Add an explicit permission grant to an actor"""
        self._require_admin(admin)
        current = self.get(actor_id)
        updated = replace(current, grants=current.grants | {permission})
        self._actors[actor_id] = updated
        logger.info(f"{admin.actor_id} granted {permission.value} to {actor_id}")
        return updated

    def revoke(self, admin: Actor, actor_id: str, permission: Permission) -> Actor:
        """Remove an explicit permission grant (role permissions are unaffected)"""
        self._require_admin(admin)
        current = self.get(actor_id)
        updated = replace(current, grants=current.grants - {permission})
        self._actors[actor_id] = updated
        logger.info(f"{admin.actor_id} revoked {permission.value} from {actor_id}")
        return updated

    def deactivate(self, admin: Actor, actor_id: str) -> Actor:
        """Deactivate an actor"""
        self._require_admin(admin)
        updated = replace(self.get(actor_id), active=False)
        self._actors[actor_id] = updated
        logger.info(f"{admin.actor_id} deactivated {actor_id}")
        return updated

    def get_statistics(self) -> Dict[str, Any]:
        by_role: Dict[str, int] = {}
        for actor in self._actors.values():
            by_role[actor.role.value] = by_role.get(actor.role.value, 0) + 1
        return {
            "total_actors": len(self._actors),
            "active_actors": len([a for a in self._actors.values() if a.active]),
            "by_role": by_role
        }
