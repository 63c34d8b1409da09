"""
Workflow Event Bus

Provides:
- Workflow event definitions
- Event publishing
- Event routing by type and pattern
"""

import asyncio
import logging
import uuid
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from fnmatch import fnmatchcase
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

logger = logging.getLogger("WorkflowEventBus")


class WorkflowEventType(Enum):
    """Types of workflow events"""
    PROPOSED = "modification.proposed"
    SUBMITTED = "modification.submitted"
    APPROVED = "modification.approved"
    REJECTED = "modification.rejected"
    APPLIED = "modification.applied"
    CANCELLED = "modification.cancelled"


# Transition action -> event type
ACTION_EVENT_TYPES: Dict[str, WorkflowEventType] = {
    "propose": WorkflowEventType.PROPOSED,
    "submit": WorkflowEventType.SUBMITTED,
    "approve": WorkflowEventType.APPROVED,
    "reject": WorkflowEventType.REJECTED,
    "apply": WorkflowEventType.APPLIED,
    "cancel": WorkflowEventType.CANCELLED,
}


@dataclass(frozen=True)
class WorkflowEvent:
    """
    A completed workflow step

    Attributes:
        event_type: What happened
        modification_id: Modification concerned
        from_status: Status before (None for a new proposal)
        to_status: Status after
        actor_id: Actor who acted
        proposer_id: Proposer of the modification
        comment: Decision comment, if any
    """

    event_type: WorkflowEventType
    modification_id: str
    from_status: Optional[str]
    to_status: str
    actor_id: str
    proposer_id: str
    comment: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: f"evt_{uuid.uuid4().hex[:12]}")

    @property
    def action(self) -> str:
        return self.event_type.value.split(".", 1)[1]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type.value,
            "action": self.action,
            "modification_id": self.modification_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "actor_id": self.actor_id,
            "proposer_id": self.proposer_id,
            "comment": self.comment,
            "timestamp": self.timestamp.isoformat()
        }


class WorkflowEventBus:
    """
    Publish-subscribe bus for workflow events

    Subscribers register by exact event type or by a glob pattern such
    as "modification.*". Delivery is in registration order, exact-type
    subscribers first.
    """

    def __init__(self, history_size: int = 1000):
        self._by_type: Dict[WorkflowEventType, Dict[str, Callable]] = {}
        self._by_pattern: Dict[str, Dict[str, Callable]] = {}
        self._history: Deque[WorkflowEvent] = deque(maxlen=history_size)
        self._published = 0
        self._delivered = 0
        self._failed = 0
        self._type_counts: Counter = Counter()

    def subscribe(
        self,
        event_type: WorkflowEventType,
        subscriber_id: str,
        callback: Callable
    ) -> None:
        """Call back on one event type; re-subscribing replaces the callback"""
        self._by_type.setdefault(event_type, {})[subscriber_id] = callback

    def subscribe_pattern(self, pattern: str, subscriber_id: str, callback: Callable) -> None:
        """Call back on every event type matching a glob pattern"""
        self._by_pattern.setdefault(pattern, {})[subscriber_id] = callback

    def unsubscribe(self, event_type: WorkflowEventType, subscriber_id: str) -> bool:
        return self._by_type.get(event_type, {}).pop(subscriber_id, None) is not None

    def unsubscribe_all(self, subscriber_id: str) -> int:
        """Drop every type and pattern subscription of a subscriber"""
        removed = 0
        for table in (self._by_type, self._by_pattern):
            for callbacks in table.values():
                if callbacks.pop(subscriber_id, None) is not None:
                    removed += 1
        return removed

    def _targets(self, event_type: WorkflowEventType) -> List[Tuple[str, Callable]]:
        targets = list(self._by_type.get(event_type, {}).items())
        for pattern, callbacks in self._by_pattern.items():
            if fnmatchcase(event_type.value, pattern):
                targets.extend(callbacks.items())
        return targets

    async def emit(self, event: WorkflowEvent) -> int:
        """
        Publish an event to every matching subscriber

        Callbacks may be plain functions or coroutine functions. A
        failing subscriber is logged and skipped.

        Returns:
            Number of successful deliveries
        """
        self._history.append(event)
        self._published += 1
        self._type_counts[event.event_type.value] += 1

        delivered = 0
        for subscriber_id, callback in self._targets(event.event_type):
            try:
                outcome = callback(event)
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception:
                self._failed += 1
                logger.exception(
                    f"Subscriber {subscriber_id} failed on {event.event_type.value} for {event.modification_id}"
                )
            else:
                delivered += 1

        self._delivered += delivered
        return delivered

    def get_history(
        self,
        event_type: Optional[WorkflowEventType] = None,
        modification_id: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 100
    ) -> List[WorkflowEvent]:
        """Recent events, oldest first"""
        events = [
            e for e in self._history
            if (event_type is None or e.event_type == event_type)
            and (modification_id is None or e.modification_id == modification_id)
            and (since is None or e.timestamp >= since)
        ]
        return events[-limit:]

    def get_subscribers(self) -> Dict[str, List[str]]:
        """Subscriber ids keyed by event type value or pattern"""
        result = {t.value: list(callbacks) for t, callbacks in self._by_type.items()}
        for pattern, callbacks in self._by_pattern.items():
            result.setdefault(pattern, []).extend(callbacks)
        return result

    def clear_history(self) -> int:
        cleared = len(self._history)
        self._history.clear()
        return cleared

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "total_published": self._published,
            "total_delivered": self._delivered,
            "total_failed": self._failed,
            "history_size": len(self._history),
            "subscriber_count": sum(len(c) for c in self._by_type.values()),
            "pattern_subscriber_count": sum(len(c) for c in self._by_pattern.values()),
            "by_type": dict(self._type_counts)
        }


_event_bus: Optional[WorkflowEventBus] = None


def get_event_bus() -> WorkflowEventBus:
    """Get or create the process-wide event bus"""
    global _event_bus
    if _event_bus is None:
        _event_bus = WorkflowEventBus()
    return _event_bus
