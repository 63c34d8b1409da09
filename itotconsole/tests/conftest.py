"""
Pytest configuration file

Adds the project root to the Python path so tests can import modules,
and provides shared actor fixtures.
"""
import sys
import os

import pytest

# Add the project root to the path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from changecontrol.rbac import Actor, ActorDirectory, AuthorizationEngine, Role  # noqa: E402


@pytest.fixture
def admin():
    return Actor("admin", Role.ADMIN)


@pytest.fixture
def manager_actor():
    return Actor("manager", Role.NETWORK_MANAGER)


@pytest.fixture
def manager(manager_actor):
    return manager_actor


@pytest.fixture
def manager2():
    return Actor("manager2", Role.NETWORK_MANAGER)


@pytest.fixture
def tech():
    return Actor("tech", Role.TECHNICIAN)


@pytest.fixture
def contractor():
    return Actor("contractor", Role.CONTRACTOR, company="Acme")


@pytest.fixture
def viewer():
    return Actor("viewer", Role.VIEWER)


@pytest.fixture
def engine():
    return AuthorizationEngine()


@pytest.fixture
def directory(engine, admin, manager_actor, manager2, tech, contractor, viewer):
    d = ActorDirectory(engine)
    for actor in (admin, manager_actor, manager2, tech, contractor, viewer):
        d.register(actor)
    return d
