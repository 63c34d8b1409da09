"""Tests for the authorization engine"""

import pytest
from changecontrol.rbac import (
    AccessContext, AccessDecision, Action, Actor, AuthorizationEngine,
    DenyReason, Permission, Role
)


def ctx(proposer_id="tech", status="PENDING"):
    return AccessContext(modification_id="mod-1", proposer_id=proposer_id, status=status)


class TestAuthorize:
    """Tests for AuthorizationEngine.authorize"""

    def test_viewer_cannot_propose(self, engine, viewer):
        result = engine.authorize(viewer, Action.PROPOSE)
        assert result.decision == AccessDecision.DENY
        assert result.reason == DenyReason.NO_PERMISSION
        assert result.required_permission == Permission.PROPOSE_MODIFICATION

    def test_technician_can_propose(self, engine, tech):
        assert engine.authorize(tech, Action.PROPOSE).is_allowed

    @pytest.mark.parametrize("action", [Action.APPROVE, Action.REJECT, Action.APPLY])
    def test_review_actions_require_edit(self, engine, contractor, action):
        result = engine.authorize(contractor, action, ctx())
        assert result.reason == DenyReason.NO_PERMISSION
        assert result.required_permission == Permission.EDIT_INFRASTRUCTURE

    @pytest.mark.parametrize("action", [Action.APPROVE, Action.APPLY])
    def test_separation_of_duties(self, engine, manager, action):
        result = engine.authorize(manager, action, ctx(proposer_id="manager"))
        assert result.decision == AccessDecision.DENY
        assert result.reason == DenyReason.SEPARATION_OF_DUTIES

    def test_proposer_may_reject_own(self, engine, manager):
        assert engine.authorize(manager, Action.REJECT, ctx(proposer_id="manager")).is_allowed

    def test_admin_cannot_approve_own(self, engine, admin):
        result = engine.authorize(admin, Action.APPROVE, ctx(proposer_id="admin"))
        assert result.reason == DenyReason.SEPARATION_OF_DUTIES

    def test_submit_by_proposer(self, engine):
        # Proposer whose role no longer grants PROPOSE may still submit
        demoted = Actor("tech", Role.VIEWER)
        assert engine.authorize(demoted, Action.SUBMIT, ctx()).is_allowed

    def test_submit_by_other_with_propose(self, engine, contractor):
        assert engine.authorize(contractor, Action.SUBMIT, ctx()).is_allowed

    def test_submit_denied_for_viewer(self, engine, viewer):
        result = engine.authorize(viewer, Action.SUBMIT, ctx())
        assert result.reason == DenyReason.NO_PERMISSION

    def test_cancel_rules(self, engine, tech, admin, manager):
        assert engine.authorize(tech, Action.CANCEL, ctx()).is_allowed
        assert engine.authorize(admin, Action.CANCEL, ctx()).is_allowed
        result = engine.authorize(manager, Action.CANCEL, ctx())
        assert result.reason == DenyReason.NOT_PROPOSER

    def test_missing_context(self, engine, manager):
        result = engine.authorize(manager, Action.APPROVE)
        assert result.reason == DenyReason.MISSING_CONTEXT

    def test_inactive_actor(self, engine):
        retired = Actor("old", Role.ADMIN, active=False)
        result = engine.authorize(retired, Action.VIEW)
        assert result.reason == DenyReason.ACTOR_INACTIVE

    def test_export_and_manage_users(self, engine, manager, tech, admin):
        assert engine.authorize(manager, Action.EXPORT).is_allowed
        assert not engine.authorize(tech, Action.EXPORT).is_allowed
        assert engine.authorize(admin, Action.MANAGE_USERS).is_allowed
        assert not engine.authorize(manager, Action.MANAGE_USERS).is_allowed

    def test_grant_extends_permissions(self, engine):
        tech = Actor("t", Role.TECHNICIAN, grants=frozenset({Permission.EXPORT_DATA}))
        assert engine.authorize(tech, Action.EXPORT).is_allowed

    def test_denial_is_idempotent(self, engine, viewer):
        first = engine.authorize(viewer, Action.APPROVE, ctx())
        second = engine.authorize(viewer, Action.APPROVE, ctx())
        assert first == second

    def test_authorize_does_not_audit(self, engine, viewer):
        engine.authorize(viewer, Action.PROPOSE)
        assert engine.get_audit_log() == []


class TestAudit:
    """Tests for the audit trail"""

    def test_check_records_decisions(self, engine, viewer, tech):
        engine.check(viewer, Action.PROPOSE)
        engine.check(tech, Action.PROPOSE)

        log = engine.get_audit_log()
        assert len(log) == 2
        assert log[0].actor_id == "viewer"
        assert not log[0].result.is_allowed

        denied = engine.get_audit_log(decision=AccessDecision.DENY)
        assert [e.actor_id for e in denied] == ["viewer"]
        assert [e.actor_id for e in engine.get_audit_log(actor_id="tech")] == ["tech"]

    def test_check_matches_authorize(self, engine, manager):
        context = ctx(proposer_id="manager")
        assert engine.check(manager, Action.APPROVE, context) == engine.authorize(manager, Action.APPROVE, context)

    def test_audit_is_bounded(self, viewer):
        engine = AuthorizationEngine(audit_limit=3)
        for _ in range(5):
            engine.check(viewer, Action.VIEW)
        assert len(engine.get_audit_log(limit=100)) == 3

    def test_statistics(self, engine, viewer, tech):
        engine.check(viewer, Action.PROPOSE)
        engine.check(tech, Action.PROPOSE)
        stats = engine.get_statistics()
        assert stats["audit_entries"] == 2
        assert stats["decisions"] == {"deny": 1, "allow": 1}
        assert stats["deny_reasons"] == {"no_permission": 1}

    def test_audit_entry_to_dict(self, engine, tech):
        engine.check(tech, Action.CANCEL, ctx())
        data = engine.get_audit_log()[0].to_dict()
        assert data["action"] == "cancel"
        assert data["modification_id"] == "mod-1"
        assert data["result"]["decision"] == "allow"
