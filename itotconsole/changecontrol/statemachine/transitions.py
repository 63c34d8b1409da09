"""
Transition Definitions

Provides:
- Workflow events
- Actor requirements per transition
- The legal transition table
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..rbac.actors import Actor
from ..rbac.roles import Permission
from .states import Modification, ModificationStatus


class TransitionEvent(Enum):
    """Events that move a modification between statuses"""
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    APPLY = "apply"


class ActorRule(Enum):
    """Who may trigger a transition"""
    PROPOSER_OR_PERMISSION = "proposer_or_permission"
    PERMISSION_NOT_PROPOSER = "permission_not_proposer"
    PERMISSION = "permission"
    PROPOSER_OR_OVERRIDE = "proposer_or_override"
    PROPOSER_ONLY = "proposer_only"


@dataclass(frozen=True)
class Transition:
    """One legal edge of the modification state machine"""

    source: ModificationStatus
    event: TransitionEvent
    target: ModificationStatus
    rule: ActorRule
    permission: Optional[Permission] = None

    def check_actor(self, modification: Modification, actor: Actor) -> Optional[str]:
        """
        Check the actor requirement of this edge

        Returns:
            None if satisfied, otherwise a short reason
        """
        is_proposer = actor.actor_id == modification.proposer_id
        has_perm = self.permission is not None and actor.has_permission(self.permission)

        if self.rule == ActorRule.PROPOSER_ONLY:
            return None if is_proposer else "only the proposer may do this"
        if self.rule in (ActorRule.PROPOSER_OR_PERMISSION, ActorRule.PROPOSER_OR_OVERRIDE):
            return None if (is_proposer or has_perm) else f"requires proposer or {self.permission.value}"
        if self.rule == ActorRule.PERMISSION:
            return None if has_perm else f"requires {self.permission.value}"
        if self.rule == ActorRule.PERMISSION_NOT_PROPOSER:
            if is_proposer:
                return "separation of duties: proposer cannot " + self.event.value
            return None if has_perm else f"requires {self.permission.value}"
        return "unknown actor rule"


TRANSITIONS: Tuple[Transition, ...] = (
    Transition(ModificationStatus.PROPOSED, TransitionEvent.SUBMIT, ModificationStatus.PENDING,
               ActorRule.PROPOSER_OR_PERMISSION, Permission.PROPOSE_MODIFICATION),
    Transition(ModificationStatus.PENDING, TransitionEvent.APPROVE, ModificationStatus.APPROVED,
               ActorRule.PERMISSION_NOT_PROPOSER, Permission.EDIT_INFRASTRUCTURE),
    Transition(ModificationStatus.PENDING, TransitionEvent.REJECT, ModificationStatus.REJECTED,
               ActorRule.PERMISSION, Permission.EDIT_INFRASTRUCTURE),
    Transition(ModificationStatus.PENDING, TransitionEvent.CANCEL, ModificationStatus.CANCELLED,
               ActorRule.PROPOSER_OR_OVERRIDE, Permission.MANAGE_USERS),
    Transition(ModificationStatus.APPROVED, TransitionEvent.APPLY, ModificationStatus.APPLIED,
               ActorRule.PERMISSION_NOT_PROPOSER, Permission.EDIT_INFRASTRUCTURE),
    Transition(ModificationStatus.PROPOSED, TransitionEvent.CANCEL, ModificationStatus.CANCELLED,
               ActorRule.PROPOSER_ONLY),
)

_TRANSITION_INDEX: Dict[Tuple[ModificationStatus, TransitionEvent], Transition] = {
    (t.source, t.event): t for t in TRANSITIONS
}

if len(_TRANSITION_INDEX) != len(TRANSITIONS):
    raise RuntimeError("Duplicate (status, event) pair in TRANSITIONS")


def find_transition(
    status: ModificationStatus,
    event: TransitionEvent
) -> Optional[Transition]:
    """Get the edge for a (status, event) pair, if it is legal"""
    return _TRANSITION_INDEX.get((status, event))


def transitions_from(status: ModificationStatus) -> List[Transition]:
    """Get all edges leaving a status"""
    return [t for t in TRANSITIONS if t.source == status]


def reachable_statuses(start: ModificationStatus = ModificationStatus.PROPOSED) -> frozenset:
    """Statuses reachable from start through the transition table"""
    seen = {start}
    frontier = [start]
    while frontier:
        current = frontier.pop()
        for t in transitions_from(current):
            if t.target not in seen:
                seen.add(t.target)
                frontier.append(t.target)
    return frozenset(seen)
