"""
Notification Channels

Provides:
- In-app inbox and log channels
- Name-keyed channel registry
- Failure-isolated delivery and per-channel health
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger("NotificationChannels")


class ChannelType(Enum):
    """Delivery mechanisms"""
    IN_APP = "in_app"
    LOG = "log"


@dataclass(frozen=True)
class OutboundMessage:
    """What a channel is asked to deliver"""
    notification_id: str
    recipient: str
    subject: str
    body: str
    priority: str = "normal"


@dataclass
class DeliveryResult:
    """Outcome of one delivery attempt on one channel"""
    channel: str
    success: bool
    reference: Optional[str] = None
    error: Optional[str] = None
    attempted_at: datetime = field(default_factory=datetime.now)


class NotificationChannel(ABC):
    """
    Base class for delivery channels

    Subclasses implement deliver(), which returns an optional delivery
    reference and raises on failure. Counters are kept by the registry.
    """

    channel_type: ChannelType

    def __init__(self, name: str, enabled: bool = True):
        self.name = name
        self.enabled = enabled
        self.delivered = 0
        self.failed = 0
        self.last_error: Optional[str] = None
        self.last_delivery_at: Optional[datetime] = None

    @abstractmethod
    def deliver(self, message: OutboundMessage) -> Optional[str]:
        ...

    def health(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.channel_type.value,
            "enabled": self.enabled,
            "delivered": self.delivered,
            "failed": self.failed,
            "last_error": self.last_error,
            "last_delivery_at": self.last_delivery_at.isoformat() if self.last_delivery_at else None
        }


class InAppChannel(NotificationChannel):
    """Per-recipient inbox shown in the console"""

    channel_type = ChannelType.IN_APP

    def __init__(self, name: str = "inbox", enabled: bool = True):
        super().__init__(name, enabled)
        self.inboxes: Dict[str, List[Dict[str, Any]]] = {}

    def deliver(self, message: OutboundMessage) -> Optional[str]:
        reference = f"inapp_{uuid.uuid4().hex[:12]}"
        self.inboxes.setdefault(message.recipient, []).append({
            "reference": reference,
            "notification_id": message.notification_id,
            "subject": message.subject,
            "body": message.body,
            "priority": message.priority,
            "received_at": datetime.now().isoformat()
        })
        return reference

    def inbox(self, recipient: str) -> List[Dict[str, Any]]:
        return list(self.inboxes.get(recipient, []))


class LogChannel(NotificationChannel):
    """Writes notifications to the application log"""

    channel_type = ChannelType.LOG

    def __init__(self, name: str = "log", enabled: bool = True, logger_name: str = "Notifications"):
        super().__init__(name, enabled)
        self.logger = logging.getLogger(logger_name)

    def deliver(self, message: OutboundMessage) -> Optional[str]:
        self.logger.info(f"[{message.priority}] to {message.recipient}: {message.subject}")
        return None


class ChannelRegistry:
    """Channels by name"""

    def __init__(self):
        self._channels: Dict[str, NotificationChannel] = {}

    @classmethod
    def with_defaults(cls) -> "ChannelRegistry":
        """Registry holding an in-app inbox and a log channel"""
        registry = cls()
        registry.register(InAppChannel())
        registry.register(LogChannel())
        return registry

    def register(self, channel: NotificationChannel) -> NotificationChannel:
        """Add a channel, replacing any channel with the same name"""
        self._channels[channel.name] = channel
        logger.debug(f"Registered {channel.channel_type.value} channel {channel.name}")
        return channel

    def get(self, name: str) -> Optional[NotificationChannel]:
        return self._channels.get(name)

    def of_type(self, channel_type: ChannelType) -> List[NotificationChannel]:
        return [c for c in self._channels.values() if c.channel_type == channel_type]

    def enabled(self) -> List[NotificationChannel]:
        return [c for c in self._channels.values() if c.enabled]

    def set_enabled(self, name: str, enabled: bool) -> bool:
        channel = self._channels.get(name)
        if channel is None:
            return False
        channel.enabled = enabled
        return True

    def deliver(self, name: str, message: OutboundMessage) -> DeliveryResult:
        """Deliver on one channel; failures come back as results"""
        channel = self._channels.get(name)
        if channel is None:
            return DeliveryResult(channel=name, success=False, error="Channel not found")
        if not channel.enabled:
            return DeliveryResult(channel=name, success=False, error="Channel is disabled")

        try:
            reference = channel.deliver(message)
        except Exception as e:
            channel.failed += 1
            channel.last_error = str(e)
            logger.warning(f"Channel {name} failed for {message.recipient}: {e}")
            return DeliveryResult(channel=name, success=False, error=str(e))

        channel.delivered += 1
        channel.last_error = None
        channel.last_delivery_at = datetime.now()
        return DeliveryResult(channel=name, success=True, reference=reference)

    def broadcast(self, message: OutboundMessage) -> List[DeliveryResult]:
        """Deliver on every enabled channel"""
        return [self.deliver(channel.name, message) for channel in self.enabled()]

    def get_statistics(self) -> Dict[str, Any]:
        delivered = sum(c.delivered for c in self._channels.values())
        failed = sum(c.failed for c in self._channels.values())
        attempts = delivered + failed
        return {
            "channels": [c.health() for c in self._channels.values()],
            "delivered": delivered,
            "failed": failed,
            "success_rate": delivered / attempts if attempts else 1.0
        }
