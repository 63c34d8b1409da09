"""
Authorization Engine - Enforces RBAC for workflow actions

Provides:
- Access decision evaluation
- Separation-of-duties enforcement
- Audit trail of evaluated decisions
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

from .actors import Actor
from .roles import Action, Permission

logger = logging.getLogger("AuthorizationEngine")


class AccessDecision(Enum):
    """Result of an access check"""
    ALLOW = "allow"
    DENY = "deny"


class DenyReason(Enum):
    """Reasons for access denial"""
    NO_PERMISSION = "no_permission"
    ACTOR_INACTIVE = "actor_inactive"
    SEPARATION_OF_DUTIES = "separation_of_duties"
    NOT_PROPOSER = "not_proposer"
    MISSING_CONTEXT = "missing_context"


# Minimal permission required for each action. SUBMIT and CANCEL are
# resolved against the modification's proposer instead.
ACTION_PERMISSIONS: Dict[Action, Optional[Permission]] = {
    Action.PROPOSE: Permission.PROPOSE_MODIFICATION,
    Action.SUBMIT: None,
    Action.APPROVE: Permission.EDIT_INFRASTRUCTURE,
    Action.REJECT: Permission.EDIT_INFRASTRUCTURE,
    Action.CANCEL: None,
    Action.APPLY: Permission.EDIT_INFRASTRUCTURE,
    Action.VIEW: Permission.VIEW_INFRASTRUCTURE,
    Action.EXPORT: Permission.EXPORT_DATA,
    Action.MANAGE_USERS: Permission.MANAGE_USERS,
}

SEPARATED_ACTIONS = frozenset({Action.APPROVE, Action.APPLY})
CONTEXT_ACTIONS = frozenset({Action.SUBMIT, Action.CANCEL, Action.APPROVE, Action.APPLY})

if set(ACTION_PERMISSIONS) != set(Action):
    raise RuntimeError("ACTION_PERMISSIONS must cover every Action")


@dataclass(frozen=True)
class AccessContext:
    """
    Context for actions that target an existing modification

    Attributes:
        modification_id: Targeted modification
        proposer_id: Actor who proposed it
        status: Current status value
    """
    modification_id: Optional[str] = None
    proposer_id: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def for_modification(cls, modification: Any) -> "AccessContext":
        return cls(
            modification_id=modification.id,
            proposer_id=modification.proposer_id,
            status=modification.status.value
        )


@dataclass(frozen=True)
class AccessResult:
    """
    Result of an access evaluation

    Attributes:
        decision: Allow or deny
        reason: Reason for a denial
        required_permission: Permission the action maps to
    """
    decision: AccessDecision
    reason: Optional[DenyReason] = None
    required_permission: Optional[Permission] = None
    evaluated_at: datetime = field(default_factory=datetime.now, compare=False)

    @property
    def is_allowed(self) -> bool:
        return self.decision == AccessDecision.ALLOW

    @property
    def reason_text(self) -> Optional[str]:
        return self.reason.value if self.reason else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "decision": self.decision.value,
            "is_allowed": self.is_allowed,
            "reason": self.reason_text,
            "required_permission": self.required_permission.value if self.required_permission else None,
            "evaluated_at": self.evaluated_at.isoformat()
        }


def _allow(required: Optional[Permission] = None) -> AccessResult:
    return AccessResult(decision=AccessDecision.ALLOW, required_permission=required)


def _deny(reason: DenyReason, required: Optional[Permission] = None) -> AccessResult:
    return AccessResult(decision=AccessDecision.DENY, reason=reason, required_permission=required)


@dataclass
class AuditEntry:
    """Audit log entry for access decisions"""
    entry_id: str
    actor_id: str
    action: Action
    result: AccessResult
    modification_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "actor_id": self.actor_id,
            "action": self.action.value,
            "modification_id": self.modification_id,
            "result": self.result.to_dict(),
            "timestamp": self.timestamp.isoformat()
        }


class AuthorizationEngine:
    """
    Evaluates whether an actor may perform an action

    authorize() is pure. check() evaluates and records the decision in
    the audit trail.
    """

    def __init__(self, audit_limit: int = 10000):
        self._audit_log: Deque[AuditEntry] = deque(maxlen=audit_limit)
        self._audit_counter = 0

    def authorize(
        self,
        actor: Actor,
        action: Action,
        context: Optional[AccessContext] = None
    ) -> AccessResult:
        """
        Evaluate an access request

        Args:
            actor: Requesting actor
            action: Requested operation
            context: Targeted modification, required for submit,
                cancel, approve and apply

        Returns:
            AccessResult with decision
        """
        required = ACTION_PERMISSIONS[action]

        if not actor.active:
            return _deny(DenyReason.ACTOR_INACTIVE, required)

        if action in CONTEXT_ACTIONS and context is None:
            return _deny(DenyReason.MISSING_CONTEXT, required)

        effective = actor.effective_permissions
        is_proposer = context is not None and context.proposer_id == actor.actor_id

        if action == Action.SUBMIT:
            if is_proposer or Permission.PROPOSE_MODIFICATION in effective:
                return _allow(Permission.PROPOSE_MODIFICATION)
            return _deny(DenyReason.NO_PERMISSION, Permission.PROPOSE_MODIFICATION)

        if action == Action.CANCEL:
            if is_proposer:
                return _allow()
            if Permission.MANAGE_USERS in effective:
                return _allow(Permission.MANAGE_USERS)
            return _deny(DenyReason.NOT_PROPOSER)

        # Proposers never approve or apply their own change, whatever their role
        if action in SEPARATED_ACTIONS and is_proposer:
            return _deny(DenyReason.SEPARATION_OF_DUTIES, required)

        if required not in effective:
            return _deny(DenyReason.NO_PERMISSION, required)

        return _allow(required)

    def check(
        self,
        actor: Actor,
        action: Action,
        context: Optional[AccessContext] = None
    ) -> AccessResult:
        """Evaluate an access request and record it in the audit trail"""
        result = self.authorize(actor, action, context)
        self._log_audit(actor, action, context, result)
        return result

    def _log_audit(
        self,
        actor: Actor,
        action: Action,
        context: Optional[AccessContext],
        result: AccessResult
    ) -> None:
        self._audit_counter += 1
        entry = AuditEntry(
            entry_id=f"audit-{self._audit_counter:06d}",
            actor_id=actor.actor_id,
            action=action,
            result=result,
            modification_id=context.modification_id if context else None
        )
        self._audit_log.append(entry)

        if result.is_allowed:
            logger.debug(f"ACCESS ALLOWED: {actor.actor_id} -> {action.value}")
        else:
            logger.info(f"ACCESS DENIED: {actor.actor_id} -> {action.value} ({result.reason_text})")

    def get_audit_log(
        self,
        limit: int = 100,
        actor_id: Optional[str] = None,
        decision: Optional[AccessDecision] = None
    ) -> List[AuditEntry]:
        """
        Get audit log entries

        Args:
            limit: Maximum entries to return
            actor_id: Filter by actor
            decision: Filter by decision

        Returns:
            List of audit entries, oldest first
        """
        entries = list(self._audit_log)

        if actor_id:
            entries = [e for e in entries if e.actor_id == actor_id]
        if decision:
            entries = [e for e in entries if e.result.decision == decision]

        return entries[-limit:]

    def get_statistics(self) -> Dict[str, Any]:
        """Get authorization statistics"""
        decisions: Dict[str, int] = {}
        reasons: Dict[str, int] = {}
        for entry in self._audit_log:
            dec = entry.result.decision.value
            decisions[dec] = decisions.get(dec, 0) + 1
            if entry.result.reason:
                reasons[entry.result.reason.value] = reasons.get(entry.result.reason.value, 0) + 1

        return {
            "audit_entries": len(self._audit_log),
            "decisions": decisions,
            "deny_reasons": reasons
        }


# Global engine instance
_global_engine: Optional[AuthorizationEngine] = None


def get_authorization_engine() -> AuthorizationEngine:
    """Get or create the global authorization engine"""
    global _global_engine
    if _global_engine is None:
        _global_engine = AuthorizationEngine()
    return _global_engine
