"""
Modification State Machine

Provides:
- Modification entity and statuses
- Legal transition table
- Transition execution
"""

from .states import (
    ModificationStatus,
    ModificationType,
    ModificationEntity,
    NetworkType,
    InfrastructureRef,
    DecisionRecord,
    Modification,
    TERMINAL_STATUSES
)
from .transitions import (
    Transition,
    TransitionEvent,
    ActorRule,
    TRANSITIONS,
    find_transition,
    transitions_from,
    reachable_statuses
)
from .machine import ModificationStateMachine

__all__ = [
    # States
    "ModificationStatus",
    "ModificationType",
    "ModificationEntity",
    "NetworkType",
    "InfrastructureRef",
    "DecisionRecord",
    "Modification",
    "TERMINAL_STATUSES",
    # Transitions
    "Transition",
    "TransitionEvent",
    "ActorRule",
    "TRANSITIONS",
    "find_transition",
    "transitions_from",
    "reachable_statuses",
    # Machine
    "ModificationStateMachine"
]
