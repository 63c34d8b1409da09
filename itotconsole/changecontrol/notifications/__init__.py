"""
Notification System

Provides:
- Notification channels (in-app inbox, log)
- Message templates per workflow event
- Workflow-driven notification manager
"""

from .channels import (
    ChannelType,
    OutboundMessage,
    DeliveryResult,
    NotificationChannel,
    InAppChannel,
    LogChannel,
    ChannelRegistry
)

from .templates import (
    NotificationTemplate,
    TemplateManager,
    BUILTIN_TEMPLATES
)

from .manager import (
    NotificationStatus,
    NotificationPriority,
    Notification,
    NotificationManager
)

__all__ = [
    # Channels
    "ChannelType",
    "OutboundMessage",
    "DeliveryResult",
    "NotificationChannel",
    "InAppChannel",
    "LogChannel",
    "ChannelRegistry",
    # Templates
    "NotificationTemplate",
    "TemplateManager",
    "BUILTIN_TEMPLATES",
    # Manager
    "NotificationStatus",
    "NotificationPriority",
    "Notification",
    "NotificationManager"
]
