"""
Change Control REST API

FastAPI endpoints over the workflow coordinator:
- Paged modification listings, statistics and export
- Propose / submit / approve / reject / apply / cancel
- Per-actor notification inbox

Callers identify themselves with the X-Actor-Id header.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from ..errors import ChangeControlError, IllegalTransition, NotFound, PersistenceFailure, Unauthorized
from ..notifications.manager import NotificationManager
from ..rbac.actors import Actor, ActorDirectory
from ..statemachine.states import (
    InfrastructureRef,
    ModificationEntity,
    ModificationStatus,
    ModificationType,
    NetworkType
)
from ..workflows.coordinator import WorkflowCoordinator
from ..workflows.queries import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, ModificationFilters

logger = logging.getLogger("ChangeControlAPI")

ERROR_STATUS_CODES = {
    Unauthorized: 403,
    IllegalTransition: 409,
    NotFound: 404,
    PersistenceFailure: 503,
}

EXPORT_MEDIA_TYPES = {
    "json": "application/json",
    "yaml": "application/x-yaml",
}


# Pydantic models for API requests

class ProposeRequest(BaseModel):
    """New modification"""
    change_type: ModificationType
    entity: ModificationEntity
    entity_id: Optional[str] = None
    network: NetworkType = NetworkType.IT
    site_id: Optional[str] = None
    zone_id: Optional[str] = None
    rack_id: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    justification: str = Field("", max_length=2000)

    def to_target(self) -> InfrastructureRef:
        return InfrastructureRef(
            entity=self.entity,
            entity_id=self.entity_id,
            network=self.network,
            site_id=self.site_id,
            zone_id=self.zone_id,
            rack_id=self.rack_id
        )


class CommentRequest(BaseModel):
    """Optional decision comment"""
    comment: Optional[str] = Field(None, max_length=2000)


def _error_status(error: ChangeControlError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return 500


def _comment(body: Optional[CommentRequest]) -> Optional[str]:
    return body.comment if body else None


def create_app(
    coordinator: WorkflowCoordinator,
    directory: ActorDirectory,
    notifications: Optional[NotificationManager] = None
) -> FastAPI:
    """
    Build the API application

    Args:
        coordinator: Workflow coordinator serving all requests
        directory: Resolves X-Actor-Id to actors
        notifications: Optional notification manager for the inbox routes

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title="ITOT Console Change Control",
        description="Role-gated change-control workflow for IT/OT infrastructure",
        version="1.0.0"
    )
    app.state.coordinator = coordinator
    app.state.directory = directory

    @app.exception_handler(ChangeControlError)
    async def change_control_error_handler(request: Request, exc: ChangeControlError):
        body = exc.to_dict()
        body.pop("retryable", None)
        return JSONResponse(status_code=_error_status(exc), content=body)

    def current_actor(x_actor_id: Optional[str] = Header(None)) -> Actor:
        if not x_actor_id or not directory.exists(x_actor_id):
            raise HTTPException(status_code=401, detail="Unknown or missing X-Actor-Id")
        return directory.get(x_actor_id)

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return {"status": "healthy", "timestamp": datetime.now().isoformat()}

    router = APIRouter(prefix="/api/modifications", tags=["modifications"])

    def query_filters(
        status: Optional[List[ModificationStatus]] = Query(None),
        change_type: Optional[List[ModificationType]] = Query(None),
        entity: Optional[List[ModificationEntity]] = Query(None),
        proposed_by: Optional[List[str]] = Query(None),
        site_id: Optional[str] = None,
        zone_id: Optional[str] = None,
        rack_id: Optional[str] = None,
        network: Optional[NetworkType] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        search: Optional[str] = None
    ) -> ModificationFilters:
        return ModificationFilters(
            statuses=status or [],
            change_types=change_type or [],
            entities=entity or [],
            proposed_by=proposed_by or [],
            site_id=site_id,
            zone_id=zone_id,
            rack_id=rack_id,
            network=network,
            date_from=date_from,
            date_to=date_to,
            search=search
        )

    def page_params(
        page: int = Query(1, ge=1),
        page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    ) -> Dict[str, int]:
        return {"page": page, "page_size": page_size}

    @router.get("")
    async def list_modifications(
        filters: ModificationFilters = Depends(query_filters),
        paging: Dict[str, int] = Depends(page_params),
        actor: Actor = Depends(current_actor)
    ):
        """List modifications, newest first, one page at a time"""
        return (await coordinator.list_page(actor, filters, **paging)).to_dict()

    @router.post("", status_code=201)
    async def propose_modification(request: ProposeRequest, actor: Actor = Depends(current_actor)):
        """Propose a new modification"""
        modification = await coordinator.propose(
            actor,
            request.to_target(),
            request.change_type,
            request.payload,
            request.justification
        )
        return modification.to_dict()

    @router.get("/stats")
    async def modification_statistics(
        filters: ModificationFilters = Depends(query_filters),
        actor: Actor = Depends(current_actor)
    ):
        """Counts by status, type, entity, proposer and network"""
        return (await coordinator.statistics(actor, filters)).to_dict()

    @router.get("/pending")
    async def pending_modifications(
        paging: Dict[str, int] = Depends(page_params),
        actor: Actor = Depends(current_actor)
    ):
        """Modifications awaiting review"""
        filters = ModificationFilters(statuses=[ModificationStatus.PENDING])
        return (await coordinator.list_page(actor, filters, **paging)).to_dict()

    @router.get("/my")
    async def my_modifications(
        paging: Dict[str, int] = Depends(page_params),
        actor: Actor = Depends(current_actor)
    ):
        """Modifications proposed by the caller"""
        filters = ModificationFilters(proposed_by=[actor.actor_id])
        return (await coordinator.list_page(actor, filters, **paging)).to_dict()

    @router.get("/export")
    async def export_modifications(
        fmt: str = "json",
        filters: ModificationFilters = Depends(query_filters),
        actor: Actor = Depends(current_actor)
    ):
        """Export modifications as JSON or YAML"""
        try:
            content = await coordinator.export(actor, fmt, filters)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return Response(content=content, media_type=EXPORT_MEDIA_TYPES[fmt.lower()])

    @router.get("/{modification_id}")
    async def get_modification(modification_id: str, actor: Actor = Depends(current_actor)):
        """Get one modification with the caller's available actions"""
        modification = await coordinator.get(actor, modification_id)
        data = modification.to_dict()
        data["available_actions"] = [e.value for e in await coordinator.available_events(actor, modification_id)]
        return data

    @router.get("/{modification_id}/history")
    async def get_modification_history(modification_id: str, actor: Actor = Depends(current_actor)):
        """Decision history, oldest first"""
        return [r.to_dict() for r in await coordinator.history(actor, modification_id)]

    @router.post("/{modification_id}/submit")
    async def submit_modification(
        modification_id: str,
        body: Optional[CommentRequest] = None,
        actor: Actor = Depends(current_actor)
    ):
        return (await coordinator.submit(actor, modification_id, _comment(body))).to_dict()

    @router.post("/{modification_id}/approve")
    async def approve_modification(
        modification_id: str,
        body: Optional[CommentRequest] = None,
        actor: Actor = Depends(current_actor)
    ):
        return (await coordinator.approve(actor, modification_id, _comment(body))).to_dict()

    @router.post("/{modification_id}/reject")
    async def reject_modification(
        modification_id: str,
        body: Optional[CommentRequest] = None,
        actor: Actor = Depends(current_actor)
    ):
        return (await coordinator.reject(actor, modification_id, _comment(body))).to_dict()

    @router.post("/{modification_id}/apply")
    async def apply_modification(
        modification_id: str,
        body: Optional[CommentRequest] = None,
        actor: Actor = Depends(current_actor)
    ):
        return (await coordinator.apply(actor, modification_id, _comment(body))).to_dict()

    @router.delete("/{modification_id}")
    async def cancel_modification(
        modification_id: str,
        comment: Optional[str] = None,
        actor: Actor = Depends(current_actor)
    ):
        """Cancel a PROPOSED or PENDING modification"""
        return (await coordinator.cancel(actor, modification_id, comment)).to_dict()

    app.include_router(router)

    if notifications is not None:
        inbox = APIRouter(prefix="/api/notifications", tags=["notifications"])

        @inbox.get("")
        async def list_notifications(unread_only: bool = False, actor: Actor = Depends(current_actor)):
            return {
                "unread": notifications.unread_count(actor.actor_id),
                "notifications": [
                    n.to_dict() for n in notifications.get_notifications(actor.actor_id, unread_only=unread_only)
                ]
            }

        @inbox.post("/{notification_id}/read")
        async def read_notification(notification_id: str, actor: Actor = Depends(current_actor)):
            notification = notifications.get_notification(notification_id)
            if notification is None or notification.recipient != actor.actor_id:
                raise HTTPException(status_code=404, detail="Notification not found")
            notifications.mark_read(notification_id)
            return notification.to_dict()

        app.include_router(inbox)

    return app
