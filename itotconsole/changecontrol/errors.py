"""
Change Control Errors

Error taxonomy shared by the RBAC engine, the state machine and the
workflow coordinator:
- Unauthorized: access denied, not retryable without a role/grant change
- IllegalTransition: transition invalid from the current status
- NotFound: unknown modification or actor
- PersistenceFailure: durable write failed, retryable by the caller
"""

from typing import Any, Dict, Optional


class ChangeControlError(Exception):
    """Base class for change control errors"""

    code = "CHANGE_CONTROL_ERROR"
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable
        }


class Unauthorized(ChangeControlError):
    """Raised when the authorization engine denies an action"""

    code = "UNAUTHORIZED"

    def __init__(self, actor_id: str, action: str, reason: Optional[str] = None):
        super().__init__(
            f"Actor {actor_id} is not allowed to {action}" + (f" ({reason})" if reason else ""),
            {"actor_id": actor_id, "action": action, "reason": reason}
        )
        self.actor_id = actor_id
        self.action = action
        self.reason = reason


class IllegalTransition(ChangeControlError):
    """Raised when a transition is not legal from the current status"""

    code = "ILLEGAL_TRANSITION"

    def __init__(
        self,
        modification_id: str,
        current_status: str,
        event: str,
        reason: Optional[str] = None
    ):
        super().__init__(
            f"Cannot {event} modification {modification_id} in status {current_status}"
            + (f": {reason}" if reason else ""),
            {
                "modification_id": modification_id,
                "current_status": current_status,
                "event": event,
                "reason": reason
            }
        )
        self.modification_id = modification_id
        self.current_status = current_status
        self.event = event
        self.reason = reason


class NotFound(ChangeControlError):
    """Raised when a modification or actor does not exist"""

    code = "NOT_FOUND"

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} {identifier} not found", {"kind": kind, "id": identifier})
        self.kind = kind
        self.identifier = identifier


class PersistenceFailure(ChangeControlError):
    """Raised when the store fails to acknowledge a write"""

    code = "PERSISTENCE_FAILURE"
    retryable = True

    def __init__(self, modification_id: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to persist modification {modification_id}" + (f": {cause}" if cause else ""),
            {"modification_id": modification_id}
        )
        self.modification_id = modification_id
        self.cause = cause
