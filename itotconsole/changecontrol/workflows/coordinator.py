"""
Workflow Coordinator

Owns the authoritative copy of every modification and drives it
through the change-control workflow.

Provides:
- Propose / submit / review / cancel / apply operations
- Per-modification serialization
- Persist-then-publish commits
- Read views (get, history, paged list, pending, statistics, export)
"""

import asyncio
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from persistence.storage import ModificationStore

from ..errors import IllegalTransition, NotFound, PersistenceFailure, Unauthorized
from ..events.bus import ACTION_EVENT_TYPES, WorkflowEvent, WorkflowEventBus
from ..rbac.actors import Actor
from ..rbac.policy import AccessContext, AuthorizationEngine, DenyReason
from ..rbac.roles import Action
from ..statemachine.machine import ModificationStateMachine
from ..statemachine.states import (
    DecisionRecord,
    InfrastructureRef,
    Modification,
    ModificationStatus,
    ModificationType
)
from ..statemachine.transitions import TransitionEvent
from .export import ExportFormat, export_modifications
from .locks import KeyedLock
from .queries import (
    DEFAULT_PAGE_SIZE,
    ModificationFilters,
    ModificationStats,
    Page,
    compute_statistics,
    filter_modifications,
    paginate
)

logger = logging.getLogger("WorkflowCoordinator")


class ReviewDecision(Enum):
    """Outcome of a review"""
    APPROVE = "approve"
    REJECT = "reject"


_EVENT_ACTIONS: Dict[TransitionEvent, Action] = {
    TransitionEvent.SUBMIT: Action.SUBMIT,
    TransitionEvent.APPROVE: Action.APPROVE,
    TransitionEvent.REJECT: Action.REJECT,
    TransitionEvent.CANCEL: Action.CANCEL,
    TransitionEvent.APPLY: Action.APPLY,
}


class WorkflowCoordinator:
    """
    Change-control workflow over a modification store

    Every transition authorizes, fires the state machine, persists the
    result, swaps it into the authoritative map and emits a workflow
    event, in that order. Operations on one modification are
    serialized; different modifications proceed independently.

    Once the store write has started, cancelling the caller does not
    abort the commit.
    """

    def __init__(
        self,
        store: ModificationStore,
        dispatcher: Optional[WorkflowEventBus] = None,
        engine: Optional[AuthorizationEngine] = None,
        machine: Optional[ModificationStateMachine] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the coordinator

        Args:
            store: Durable storage
            dispatcher: Receives a WorkflowEvent after each commit
            engine: Authorization engine
            machine: Modification state machine
            clock: Timestamp source
        """
        self.store = store
        self.dispatcher = dispatcher if dispatcher is not None else WorkflowEventBus()
        self.engine = engine or AuthorizationEngine()
        self.machine = machine or ModificationStateMachine()
        self._clock = clock or datetime.now
        self._locks = KeyedLock()
        self._modifications: Dict[str, Modification] = {}
        self._loaded = False

    # ==================== Authorization ====================

    def _authorize(
        self,
        actor: Actor,
        action: Action,
        modification: Optional[Modification] = None
    ) -> None:
        context = AccessContext.for_modification(modification) if modification else None
        result = self.engine.check(actor, action, context)
        if result.is_allowed:
            return

        if result.reason == DenyReason.SEPARATION_OF_DUTIES and modification is not None:
            logger.warning(
                f"Illegal {action.value} on {modification.id} by {actor.actor_id}: "
                f"proposer cannot {action.value} own modification"
            )
            raise IllegalTransition(
                modification.id,
                modification.status.value,
                action.value,
                f"separation of duties: proposer cannot {action.value}"
            )

        raise Unauthorized(actor.actor_id, action.value, result.reason_text)

    # ==================== Loading ====================

    async def _load(self, modification_id: str) -> Modification:
        current = self._modifications.get(modification_id)
        if current is None:
            current = await self.store.load(modification_id)
            if current.id != modification_id:
                logger.warning(f"Store returned {current.id} for {modification_id}")
                raise NotFound("Modification", modification_id)
            self._modifications[modification_id] = current
        return current

    async def _all(self) -> List[Modification]:
        if not self._loaded:
            for mod in await self.store.list():
                self._modifications.setdefault(mod.id, mod)
            self._loaded = True
        return list(self._modifications.values())

    # ==================== Commit ====================

    async def _commit(self, key: str, modification: Modification, event: WorkflowEvent) -> Modification:
        """Persist, swap and emit. Releases the lock held under key."""
        try:
            try:
                await self.store.save(modification)
            except PersistenceFailure as e:
                logger.error(f"Persistence failed for {modification.id}: {e.message}")
                raise
            except Exception as e:
                logger.error(f"Persistence failed for {modification.id}: {e}")
                raise PersistenceFailure(modification.id, e) from e

            self._modifications[modification.id] = modification
            logger.info(
                f"{modification.id}: {event.from_status or '-'} -> {event.to_status} "
                f"({event.action} by {event.actor_id})"
            )
            await self._emit(event)
            return modification
        finally:
            self._locks.release(key)

    async def _emit(self, event: WorkflowEvent) -> None:
        if self.dispatcher is None:
            return
        try:
            await self.dispatcher.emit(event)
        except Exception:
            logger.exception(f"Dispatcher failed for {event.event_type.value} on {event.modification_id}")

    async def _shielded_commit(self, key: str, modification: Modification, event: WorkflowEvent) -> Modification:
        # The lock for key must already be held; _commit releases it
        task = asyncio.ensure_future(self._commit(key, modification, event))
        return await asyncio.shield(task)

    # ==================== Operations ====================

    async def propose(
        self,
        actor: Actor,
        target: InfrastructureRef,
        change_type: ModificationType,
        payload: Optional[Dict[str, Any]] = None,
        justification: str = ""
    ) -> Modification:
        """
        Create a new modification in PROPOSED status

        Raises:
            Unauthorized: if the actor may not propose
            PersistenceFailure: if the store rejects the write
        """
        self._authorize(actor, Action.PROPOSE)

        now = self._clock()
        modification = Modification(
            id=f"mod_{uuid.uuid4().hex[:12]}",
            target=target,
            change_type=change_type,
            proposer_id=actor.actor_id,
            payload=dict(payload or {}),
            justification=justification,
            created_at=now,
            updated_at=now
        )
        event = WorkflowEvent(
            event_type=ACTION_EVENT_TYPES["propose"],
            modification_id=modification.id,
            from_status=None,
            to_status=modification.status.value,
            actor_id=actor.actor_id,
            proposer_id=actor.actor_id,
            timestamp=now
        )

        await self._locks.acquire(modification.id)
        return await self._shielded_commit(modification.id, modification, event)

    async def _transition(
        self,
        actor: Actor,
        modification_id: str,
        event: TransitionEvent,
        comment: Optional[str] = None
    ) -> Modification:
        await self._locks.acquire(modification_id)
        try:
            current = await self._load(modification_id)
            if current.is_terminal:
                # Terminal modifications reject every event, whoever asks
                logger.warning(f"Illegal {event.value} on {modification_id} by {actor.actor_id}: "
                               f"{current.status.value} is terminal")
                raise IllegalTransition(modification_id, current.status.value, event.value, "status is terminal")

            self._authorize(actor, _EVENT_ACTIONS[event], current)
            try:
                updated = self.machine.fire(current, event, actor, comment=comment, at=self._clock())
            except IllegalTransition as e:
                logger.warning(f"Illegal {event.value} on {modification_id} by {actor.actor_id}: {e.reason}")
                raise
        except BaseException:
            self._locks.release(modification_id)
            raise

        workflow_event = WorkflowEvent(
            event_type=ACTION_EVENT_TYPES[event.value],
            modification_id=modification_id,
            from_status=current.status.value,
            to_status=updated.status.value,
            actor_id=actor.actor_id,
            proposer_id=updated.proposer_id,
            comment=comment,
            timestamp=updated.updated_at
        )
        return await self._shielded_commit(modification_id, updated, workflow_event)

    async def submit(self, actor: Actor, modification_id: str, comment: Optional[str] = None) -> Modification:
        """Send a proposal for review (PROPOSED -> PENDING)"""
        return await self._transition(actor, modification_id, TransitionEvent.SUBMIT, comment)

    async def review(
        self,
        actor: Actor,
        modification_id: str,
        decision: Union[ReviewDecision, str],
        comment: Optional[str] = None
    ) -> Modification:
        """
        Approve or reject a pending modification

        Args:
            actor: Reviewer (needs EDIT_INFRASTRUCTURE)
            modification_id: Modification to review
            decision: approve or reject
            comment: Review comment

        Raises:
            Unauthorized: if the reviewer lacks permission
            IllegalTransition: if not PENDING, or the proposer approves
        """
        decision = ReviewDecision(decision)
        event = TransitionEvent.APPROVE if decision == ReviewDecision.APPROVE else TransitionEvent.REJECT
        return await self._transition(actor, modification_id, event, comment)

    async def approve(self, actor: Actor, modification_id: str, comment: Optional[str] = None) -> Modification:
        return await self.review(actor, modification_id, ReviewDecision.APPROVE, comment)

    async def reject(self, actor: Actor, modification_id: str, comment: Optional[str] = None) -> Modification:
        return await self.review(actor, modification_id, ReviewDecision.REJECT, comment)

    async def cancel(self, actor: Actor, modification_id: str, comment: Optional[str] = None) -> Modification:
        """Withdraw a PROPOSED or PENDING modification"""
        return await self._transition(actor, modification_id, TransitionEvent.CANCEL, comment)

    async def apply(self, actor: Actor, modification_id: str, comment: Optional[str] = None) -> Modification:
        """Mark an approved modification as applied"""
        return await self._transition(actor, modification_id, TransitionEvent.APPLY, comment)

    # ==================== Reads ====================

    async def get(self, actor: Actor, modification_id: str) -> Modification:
        self._authorize(actor, Action.VIEW)
        return await self._load(modification_id)

    async def history(self, actor: Actor, modification_id: str) -> Tuple[DecisionRecord, ...]:
        return (await self.get(actor, modification_id)).history

    async def available_events(self, actor: Actor, modification_id: str) -> List[TransitionEvent]:
        """Events the actor is both authorized and able to fire now"""
        modification = await self.get(actor, modification_id)
        context = AccessContext.for_modification(modification)
        return [
            event for event in self.machine.allowed_events(modification, actor)
            if self.engine.authorize(actor, _EVENT_ACTIONS[event], context).is_allowed
        ]

    async def list(self, actor: Actor, filters: Optional[ModificationFilters] = None) -> List[Modification]:
        """List modifications, newest first"""
        self._authorize(actor, Action.VIEW)
        return filter_modifications(await self._all(), filters)

    async def list_page(
        self,
        actor: Actor,
        filters: Optional[ModificationFilters] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> Page:
        """
        One page of a filtered listing, newest first

        Raises:
            Unauthorized: without VIEW_INFRASTRUCTURE
            ValueError: for a page below 1 or an out-of-range page size
        """
        return paginate(await self.list(actor, filters), page, page_size)

    async def pending(self, actor: Actor) -> List[Modification]:
        """Modifications awaiting review"""
        return await self.list(actor, ModificationFilters(statuses=[ModificationStatus.PENDING]))

    async def mine(self, actor: Actor) -> List[Modification]:
        """Modifications proposed by the actor"""
        return await self.list(actor, ModificationFilters(proposed_by=[actor.actor_id]))

    async def statistics(self, actor: Actor, filters: Optional[ModificationFilters] = None) -> ModificationStats:
        return compute_statistics(await self.list(actor, filters))

    async def export(
        self,
        actor: Actor,
        fmt: Union[str, ExportFormat] = ExportFormat.JSON,
        filters: Optional[ModificationFilters] = None
    ) -> str:
        """
        Export modifications as JSON or YAML

        Raises:
            Unauthorized: without EXPORT_DATA
            ValueError: for an unsupported format
        """
        self._authorize(actor, Action.EXPORT)
        return export_modifications(filter_modifications(await self._all(), filters), fmt)
