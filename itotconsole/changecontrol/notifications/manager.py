"""
Notification Manager

Provides:
- Workflow-event subscription
- Recipient policy per event type
- Delivery tracking
- Read / archive state per notification
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from datetime import datetime
from enum import Enum

from ..events.bus import WorkflowEvent, WorkflowEventBus, WorkflowEventType
from ..rbac.actors import ActorDirectory
from .channels import ChannelRegistry, OutboundMessage
from .templates import TemplateManager

logger = logging.getLogger("NotificationManager")


class NotificationStatus(Enum):
    """Lifecycle of a notification"""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    READ = "read"
    ARCHIVED = "archived"


class NotificationPriority(Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


EVENT_PRIORITIES: Dict[WorkflowEventType, NotificationPriority] = {
    WorkflowEventType.SUBMITTED: NotificationPriority.HIGH,
}

UNREAD_STATUSES = frozenset({NotificationStatus.PENDING, NotificationStatus.SENT})


@dataclass
class Notification:
    """One recipient's copy of one workflow event"""

    id: str
    recipient: str
    event_type: WorkflowEventType
    modification_id: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    subject: str = ""
    body: str = ""
    status: NotificationStatus = NotificationStatus.PENDING
    channels: List[str] = field(default_factory=list)
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    sent_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    @property
    def is_unread(self) -> bool:
        return self.status in UNREAD_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "recipient": self.recipient,
            "event_type": self.event_type.value,
            "modification_id": self.modification_id,
            "priority": self.priority.value,
            "subject": self.subject,
            "body": self.body,
            "status": self.status.value,
            "channels": list(self.channels),
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "read_at": self.read_at.isoformat() if self.read_at else None
        }


class NotificationManager:
    """
    Turns workflow events into notifications

    Recipients:
    - submitted: every reviewer except the proposer
    - proposed: the proposer
    - approved / rejected / applied / cancelled: the proposer, unless
      the proposer is the one who acted

    Delivery problems are recorded on the notification and never raised.
    At most max_history notifications are kept; the oldest go first.
    """

    SUBSCRIBER_ID = "notifications"

    def __init__(
        self,
        directory: ActorDirectory,
        channels: Optional[ChannelRegistry] = None,
        templates: Optional[TemplateManager] = None,
        max_history: int = 10000
    ):
        if max_history <= 0:
            raise ValueError("max_history must be positive")
        self.directory = directory
        self.channels = channels or ChannelRegistry.with_defaults()
        self.templates = templates or TemplateManager()
        self._notifications: Dict[str, Notification] = {}
        self._max_history = max_history
        self._trimmed = 0

    def attach(self, bus: WorkflowEventBus) -> None:
        """Subscribe to every modification event on a bus"""
        bus.subscribe_pattern("modification.*", self.SUBSCRIBER_ID, self.handle_event)

    def detach(self, bus: WorkflowEventBus) -> None:
        bus.unsubscribe_all(self.SUBSCRIBER_ID)

    def recipients_for(self, event: WorkflowEvent) -> List[str]:
        if event.event_type == WorkflowEventType.SUBMITTED:
            return [a.actor_id for a in self.directory.reviewers() if a.actor_id != event.proposer_id]
        if event.event_type == WorkflowEventType.PROPOSED:
            return [event.proposer_id]
        if event.actor_id == event.proposer_id:
            return []
        return [event.proposer_id]

    def handle_event(self, event: WorkflowEvent) -> List[Notification]:
        """Create and deliver notifications for one workflow event"""
        variables = {
            "modification_id": event.modification_id,
            "actor_id": event.actor_id,
            "proposer_id": event.proposer_id,
            "from_status": event.from_status,
            "to_status": event.to_status,
            "action": event.action,
            "comment": event.comment
        }
        priority = EVENT_PRIORITIES.get(event.event_type, NotificationPriority.NORMAL)

        return [
            self._notify(recipient, event, dict(variables, recipient=recipient), priority)
            for recipient in self.recipients_for(event)
        ]

    def _notify(
        self,
        recipient: str,
        event: WorkflowEvent,
        variables: Dict[str, Any],
        priority: NotificationPriority
    ) -> Notification:
        notification = Notification(
            id=f"notif_{uuid.uuid4().hex[:12]}",
            recipient=recipient,
            event_type=event.event_type,
            modification_id=event.modification_id,
            priority=priority
        )
        self._notifications[notification.id] = notification
        self._trim()

        try:
            rendered = self.templates.render(event.event_type.value, variables)
        except ValueError as e:
            return self._fail(notification, str(e))
        if rendered is None:
            return self._fail(notification, f"No template for {event.event_type.value}")

        notification.subject = rendered["subject"]
        notification.body = rendered["body"]

        results = self.channels.broadcast(OutboundMessage(
            notification_id=notification.id,
            recipient=recipient,
            subject=notification.subject,
            body=notification.body,
            priority=priority.value
        ))
        succeeded = [r.channel for r in results if r.success]
        if not succeeded:
            errors = "; ".join(f"{r.channel}: {r.error}" for r in results)
            return self._fail(notification, errors or "No enabled channels")

        notification.status = NotificationStatus.SENT
        notification.sent_at = datetime.now()
        notification.channels = succeeded
        return notification

    def _trim(self) -> None:
        while len(self._notifications) > self._max_history:
            del self._notifications[next(iter(self._notifications))]
            self._trimmed += 1

    def _fail(self, notification: Notification, error: str) -> Notification:
        notification.status = NotificationStatus.FAILED
        notification.error = error
        logger.warning(f"Notification {notification.id} to {notification.recipient} failed: {error}")
        return notification

    # ==================== Inbox ====================

    def get_notification(self, notification_id: str) -> Optional[Notification]:
        return self._notifications.get(notification_id)

    def get_notifications(
        self,
        recipient: str,
        unread_only: bool = False,
        include_archived: bool = False,
        limit: int = 100
    ) -> List[Notification]:
        """A recipient's notifications, newest first"""
        items = [n for n in self._notifications.values() if n.recipient == recipient]
        if unread_only:
            items = [n for n in items if n.is_unread]
        elif not include_archived:
            items = [n for n in items if n.status != NotificationStatus.ARCHIVED]

        items.sort(key=lambda n: n.created_at, reverse=True)
        return items[:limit]

    def unread_count(self, recipient: str) -> int:
        return sum(1 for n in self._notifications.values() if n.recipient == recipient and n.is_unread)

    def mark_read(self, notification_id: str) -> bool:
        """Mark one notification read; archived ones stay archived"""
        notification = self._notifications.get(notification_id)
        if notification is None or notification.status == NotificationStatus.ARCHIVED:
            return False
        notification.status = NotificationStatus.READ
        notification.read_at = datetime.now()
        return True

    def mark_all_read(self, recipient: str) -> int:
        unread = [n for n in self._notifications.values() if n.recipient == recipient and n.is_unread]
        for notification in unread:
            self.mark_read(notification.id)
        return len(unread)

    def archive(self, notification_id: str) -> bool:
        notification = self._notifications.get(notification_id)
        if notification is None:
            return False
        notification.status = NotificationStatus.ARCHIVED
        return True

    def get_statistics(self) -> Dict[str, Any]:
        by_status: Dict[str, int] = {}
        by_priority: Dict[str, int] = {}
        for notification in self._notifications.values():
            by_status[notification.status.value] = by_status.get(notification.status.value, 0) + 1
            by_priority[notification.priority.value] = by_priority.get(notification.priority.value, 0) + 1

        return {
            "total_notifications": len(self._notifications),
            "max_history": self._max_history,
            "trimmed": self._trimmed,
            "by_status": by_status,
            "by_priority": by_priority,
            "channels": self.channels.get_statistics()
        }
