"""Tests for actors and the actor directory"""

import pytest
from changecontrol.errors import NotFound, Unauthorized
from changecontrol.rbac import Actor, ActorDirectory, Permission, Role


class TestActor:
    """Tests for Actor"""

    def test_effective_permissions_include_grants(self):
        actor = Actor("t1", Role.TECHNICIAN, grants=frozenset({Permission.EXPORT_DATA}))
        assert Permission.EXPORT_DATA in actor.effective_permissions
        assert Permission.PROPOSE_MODIFICATION in actor.effective_permissions
        assert actor.has_permission(Permission.EXPORT_DATA)
        assert not actor.has_permission(Permission.EDIT_INFRASTRUCTURE)

    def test_actor_is_frozen(self):
        actor = Actor("t1", Role.TECHNICIAN)
        with pytest.raises(Exception):
            actor.role = Role.ADMIN

    def test_to_dict(self):
        actor = Actor("c1", Role.CONTRACTOR, display_name="Jo", company="Acme")
        data = actor.to_dict()
        assert data["actor_id"] == "c1"
        assert data["role"] == "CONTRACTOR"
        assert data["role_label"] == "Contractor"
        assert data["company"] == "Acme"
        assert "PROPOSE_MODIFICATION" in data["permissions"]
        assert data["grants"] == []


class TestActorDirectory:
    """Tests for ActorDirectory"""

    def test_get_unknown_raises(self, directory):
        with pytest.raises(NotFound):
            directory.get("nobody")
        assert not directory.exists("nobody")

    def test_find_by_role(self, directory):
        managers = directory.find_by_role(Role.NETWORK_MANAGER)
        assert {a.actor_id for a in managers} == {"manager", "manager2"}

    def test_reviewers(self, directory):
        reviewers = {a.actor_id for a in directory.reviewers()}
        assert reviewers == {"admin", "manager", "manager2"}

    def test_assign_role_replaces_actor(self, directory, admin):
        before = directory.get("tech")
        after = directory.assign_role(admin, "tech", Role.NETWORK_MANAGER)

        assert before.role == Role.TECHNICIAN
        assert after.role == Role.NETWORK_MANAGER
        assert directory.get("tech") is after

    def test_assign_role_requires_manage_users(self, directory, manager):
        with pytest.raises(Unauthorized):
            directory.assign_role(manager, "tech", Role.ADMIN)
        assert directory.get("tech").role == Role.TECHNICIAN

    def test_grant_and_revoke(self, directory, admin):
        granted = directory.grant(admin, "viewer", Permission.EXPORT_DATA)
        assert granted.has_permission(Permission.EXPORT_DATA)

        revoked = directory.revoke(admin, "viewer", Permission.EXPORT_DATA)
        assert not revoked.has_permission(Permission.EXPORT_DATA)
        # Role permissions are unaffected by revoke
        assert revoked.has_permission(Permission.VIEW_INFRASTRUCTURE)

    def test_grant_unknown_actor(self, directory, admin):
        with pytest.raises(NotFound):
            directory.grant(admin, "ghost", Permission.EXPORT_DATA)

    def test_deactivate(self, directory, admin):
        directory.deactivate(admin, "manager2")
        assert not directory.get("manager2").active
        assert "manager2" not in {a.actor_id for a in directory.reviewers()}
        assert "manager2" not in {a.actor_id for a in directory.list_actors(active_only=True)}

    def test_statistics(self, directory):
        stats = directory.get_statistics()
        assert stats["total_actors"] == 6
        assert stats["active_actors"] == 6
        assert stats["by_role"]["NETWORK_MANAGER"] == 2

    def test_default_engine(self):
        d = ActorDirectory()
        d.register(Actor("root", Role.ADMIN))
        d.register(Actor("t", Role.TECHNICIAN))
        updated = d.assign_role(d.get("root"), "t", Role.VIEWER)
        assert updated.role == Role.VIEWER
