"""
End-to-End Change Control Demo

Walks a firmware change on an OT controller through the full
propose / submit / approve / apply workflow, with notifications.
"""

import asyncio
import sys
import os

# Add the project directory to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "itotconsole"))

from changecontrol.errors import ChangeControlError
from changecontrol.events import WorkflowEventBus
from changecontrol.notifications import NotificationManager
from changecontrol.rbac import ActorDirectory, AuthorizationEngine
from changecontrol.api.run_server import DEMO_ACTORS
from changecontrol.statemachine import (
    InfrastructureRef, ModificationEntity, ModificationType, NetworkType
)
from changecontrol.workflows import WorkflowCoordinator
from persistence import InMemoryModificationStore


def banner(title):
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70)


async def attempt(label, operation):
    """Run a workflow call and report the result or the refusal"""
    try:
        mod = await operation
        print(f"✓ {label}: {mod.status.value}")
        return mod
    except ChangeControlError as e:
        print(f"✗ {label}: {e.code} - {e.message}")
        return None


async def demo_happy_path(coordinator, actors):
    banner("DEMO 1: Propose, review and apply")

    target = InfrastructureRef(
        ModificationEntity.EQUIPMENT, "plc-7", NetworkType.OT, site_id="plant-a", zone_id="cell-3"
    )
    mod = await attempt("tech proposes firmware upgrade", coordinator.propose(
        actors["tech"], target, ModificationType.UPDATE, {"firmware": "4.2.1"}, "Vendor security advisory"
    ))
    await attempt("tech submits", coordinator.submit(actors["tech"], mod.id))
    await attempt("manager approves", coordinator.approve(actors["manager"], mod.id, "Maintenance window Sunday"))
    await attempt("manager2 applies", coordinator.apply(actors["manager2"], mod.id))

    print("\n>>> History:")
    for record in await coordinator.history(actors["viewer"], mod.id):
        print(f"  {record.timestamp:%H:%M:%S} {record.actor_id:<10} {record.action:<8} "
              f"{record.from_status.value} -> {record.to_status.value}")


async def demo_guard_rails(coordinator, actors):
    banner("DEMO 2: Guard rails")

    target = InfrastructureRef(ModificationEntity.PORT, "sw-12/ge0/4", NetworkType.IT, site_id="hq")
    await attempt("viewer proposes", coordinator.propose(
        actors["viewer"], target, ModificationType.DISCONNECT
    ))

    mod = await attempt("manager proposes", coordinator.propose(
        actors["manager"], target, ModificationType.DISCONNECT, justification="Retire printer port"
    ))
    await attempt("manager submits", coordinator.submit(actors["manager"], mod.id))
    await attempt("manager approves own change", coordinator.approve(actors["manager"], mod.id))
    await attempt("contractor rejects", coordinator.reject(actors["contractor"], mod.id))
    await attempt("manager2 rejects", coordinator.reject(actors["manager2"], mod.id, "Port still in use"))
    await attempt("admin cancels rejected change", coordinator.cancel(actors["admin"], mod.id))


async def demo_concurrent_review(coordinator, actors):
    banner("DEMO 3: Concurrent reviewers")

    target = InfrastructureRef(ModificationEntity.RACK, None, NetworkType.OT, site_id="plant-a")
    mod = await coordinator.propose(actors["contractor"], target, ModificationType.CREATE, {"units": 42})
    await coordinator.submit(actors["contractor"], mod.id)

    results = await asyncio.gather(
        coordinator.approve(actors["manager"], mod.id),
        coordinator.reject(actors["manager2"], mod.id),
        return_exceptions=True
    )
    for reviewer, result in zip(("manager", "manager2"), results):
        outcome = result.status.value if not isinstance(result, Exception) else type(result).__name__
        print(f"  {reviewer}: {outcome}")


async def demo_statistics(coordinator, notifications, actors):
    banner("DEMO 4: Statistics and notifications")

    stats = await coordinator.statistics(actors["viewer"])
    print(f"\n>>> {stats.total} modifications")
    for status, count in stats.by_status.items():
        if count:
            print(f"  {status}: {count}")

    print("\n>>> Unread notifications:")
    for actor_id in actors:
        unread = notifications.unread_count(actor_id)
        if unread:
            print(f"  {actor_id}: {unread}")


async def main():
    """Run complete demo"""
    banner("           ITOT Console: Change Control Demo")

    engine = AuthorizationEngine()
    directory = ActorDirectory(engine)
    for actor in DEMO_ACTORS:
        directory.register(actor)
    actors = {a.actor_id: a for a in DEMO_ACTORS}

    bus = WorkflowEventBus()
    notifications = NotificationManager(directory)
    notifications.attach(bus)
    coordinator = WorkflowCoordinator(InMemoryModificationStore(), dispatcher=bus, engine=engine)

    await demo_happy_path(coordinator, actors)
    await demo_guard_rails(coordinator, actors)
    await demo_concurrent_review(coordinator, actors)
    await demo_statistics(coordinator, notifications, actors)

    print("\n" + "=" * 70)
    print("                    Demo Complete!")
    print("=" * 70)
    print("\nStart the API with: python3 itotconsole/itotconsole.py --seed-demo")


if __name__ == "__main__":
    asyncio.run(main())
