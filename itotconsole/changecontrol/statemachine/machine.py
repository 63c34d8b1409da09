"""
Modification State Machine

Provides:
- Legal transition enforcement
- Actor requirement checks per edge
- Copy-on-write history appends
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from ..errors import IllegalTransition
from ..rbac.actors import Actor
from .states import DecisionRecord, Modification
from .transitions import Transition, TransitionEvent, find_transition, transitions_from

logger = logging.getLogger("ModificationStateMachine")


class ModificationStateMachine:
    """
    Applies transition events to modifications

    The machine holds no state. fire() either returns a new Modification
    or raises IllegalTransition; its input is never changed.
    """

    def resolve(
        self,
        modification: Modification,
        event: TransitionEvent,
        actor: Actor
    ) -> Transition:
        """
        Find the edge an event would take, checking its actor requirement

        Raises:
            IllegalTransition: if the edge does not exist or the actor
                does not satisfy it
        """
        transition = find_transition(modification.status, event)
        if transition is None:
            reason = "status is terminal" if modification.is_terminal else "no such transition"
            raise IllegalTransition(modification.id, modification.status.value, event.value, reason)

        problem = transition.check_actor(modification, actor)
        if problem:
            raise IllegalTransition(modification.id, modification.status.value, event.value, problem)

        return transition

    def fire(
        self,
        modification: Modification,
        event: TransitionEvent,
        actor: Actor,
        comment: Optional[str] = None,
        at: Optional[datetime] = None
    ) -> Modification:
        """
        Apply an event to a modification

        Args:
            modification: Current value
            event: Event to apply
            actor: Actor triggering the event
            comment: Optional decision comment
            at: Transition timestamp (defaults to now)

        Returns:
            New Modification with one more history record
        """
        transition = self.resolve(modification, event, actor)
        timestamp = at or datetime.now()

        record = DecisionRecord(
            actor_id=actor.actor_id,
            action=event.value,
            from_status=transition.source,
            to_status=transition.target,
            timestamp=timestamp,
            comment=comment
        )
        logger.debug(
            f"{modification.id}: {transition.source.value} -[{event.value}]-> "
            f"{transition.target.value} by {actor.actor_id}"
        )

        return replace(
            modification,
            status=transition.target,
            history=modification.history + (record,),
            updated_at=timestamp,
            version=modification.version + 1
        )

    def can_fire(
        self,
        modification: Modification,
        event: TransitionEvent,
        actor: Actor
    ) -> bool:
        """Check whether an event would succeed for this actor"""
        try:
            self.resolve(modification, event, actor)
        except IllegalTransition:
            return False
        return True

    def allowed_events(self, modification: Modification, actor: Actor) -> List[TransitionEvent]:
        """Events the actor could fire right now"""
        return [
            t.event for t in transitions_from(modification.status)
            if t.check_actor(modification, actor) is None
        ]
