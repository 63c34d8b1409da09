"""
Change Control API Server Runner

Wires settings, store, workflow, notifications and the REST API
together and serves them with uvicorn.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import uvicorn
from fastapi import FastAPI

from ..config.settings import ConsoleSettings, build_store
from ..events.bus import WorkflowEventBus
from ..notifications.manager import NotificationManager
from ..rbac.actors import Actor, ActorDirectory
from ..rbac.policy import AuthorizationEngine
from ..rbac.roles import Role
from ..workflows.coordinator import WorkflowCoordinator
from .server import create_app

logger = logging.getLogger("ChangeControlServer")

DEMO_ACTORS: Tuple[Actor, ...] = (
    Actor("admin", Role.ADMIN, display_name="Console Administrator"),
    Actor("manager", Role.NETWORK_MANAGER, display_name="Network Manager"),
    Actor("manager2", Role.NETWORK_MANAGER, display_name="Second Network Manager"),
    Actor("tech", Role.TECHNICIAN, display_name="Field Technician"),
    Actor("contractor", Role.CONTRACTOR, display_name="External Contractor", company="Acme Integrators"),
    Actor("viewer", Role.VIEWER, display_name="Auditor"),
)


@dataclass
class Console:
    """Wired application components"""
    settings: ConsoleSettings
    engine: AuthorizationEngine
    directory: ActorDirectory
    bus: WorkflowEventBus
    coordinator: WorkflowCoordinator
    notifications: NotificationManager
    app: FastAPI


def build_console(settings: ConsoleSettings, seed_demo: bool = False) -> Console:
    """
    Build every component from settings

    Args:
        settings: Resolved console settings
        seed_demo: Register the demo actors

    Returns:
        Console with a ready FastAPI app
    """
    engine = AuthorizationEngine(audit_limit=settings.audit_limit)
    directory = ActorDirectory(engine)
    bus = WorkflowEventBus(history_size=settings.event_history_size)
    coordinator = WorkflowCoordinator(build_store(settings), dispatcher=bus, engine=engine)

    notifications = NotificationManager(directory, max_history=settings.notification_history_size)
    notifications.attach(bus)

    if seed_demo:
        for actor in DEMO_ACTORS:
            directory.register(actor)
        logger.info(f"Registered {len(DEMO_ACTORS)} demo actors")

    app = create_app(coordinator, directory, notifications)
    return Console(settings, engine, directory, bus, coordinator, notifications, app)


async def serve(console: Console) -> None:
    """Run the API until interrupted"""
    settings = console.settings
    logger.info(f"Starting ITOT Console API on {settings.api_host}:{settings.api_port} "
                f"({settings.environment.value}, {settings.storage_backend.value} store)")

    config = uvicorn.Config(
        console.app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower()
    )
    server = uvicorn.Server(config)
    await server.serve()
