"""
Workflow Events

Provides:
- Workflow event definitions
- Publish-subscribe bus
"""

from .bus import (
    WorkflowEventType,
    WorkflowEvent,
    WorkflowEventBus,
    ACTION_EVENT_TYPES,
    get_event_bus
)

__all__ = [
    "WorkflowEventType",
    "WorkflowEvent",
    "WorkflowEventBus",
    "ACTION_EVENT_TYPES",
    "get_event_bus"
]
