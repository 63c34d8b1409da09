"""Tests for the modification state machine"""

from datetime import datetime

import pytest
from changecontrol.errors import IllegalTransition
from changecontrol.statemachine import (
    InfrastructureRef, Modification, ModificationEntity, ModificationStateMachine,
    ModificationStatus, ModificationType, NetworkType, TransitionEvent,
    TERMINAL_STATUSES, TRANSITIONS, find_transition, reachable_statuses, transitions_from
)


def make_mod(status=ModificationStatus.PROPOSED, proposer="tech"):
    return Modification(
        id="mod-1",
        target=InfrastructureRef(ModificationEntity.PORT, "port-7", NetworkType.OT, site_id="s1"),
        change_type=ModificationType.UPDATE,
        proposer_id=proposer,
        payload={"vlan": 20},
        justification="Move PLC to control VLAN",
        status=status
    )


class TestTransitionTable:
    """Tests for the transition table"""

    def test_six_edges(self):
        assert len(TRANSITIONS) == 6

    def test_terminal_statuses_have_no_edges(self):
        for status in TERMINAL_STATUSES:
            assert transitions_from(status) == []

    def test_every_status_reachable(self):
        assert reachable_statuses() == frozenset(ModificationStatus)

    def test_find_transition(self):
        edge = find_transition(ModificationStatus.PENDING, TransitionEvent.APPROVE)
        assert edge.target == ModificationStatus.APPROVED
        assert find_transition(ModificationStatus.PROPOSED, TransitionEvent.APPROVE) is None


class TestMachine:
    """Tests for ModificationStateMachine"""

    def test_fire_returns_new_value(self, tech):
        machine = ModificationStateMachine()
        mod = make_mod()
        at = datetime(2024, 5, 1, 12, 0)

        updated = machine.fire(mod, TransitionEvent.SUBMIT, tech, comment="ready", at=at)

        assert updated is not mod
        assert mod.status == ModificationStatus.PROPOSED
        assert mod.history == ()
        assert updated.status == ModificationStatus.PENDING
        assert updated.version == mod.version + 1
        assert updated.updated_at == at
        record = updated.history[-1]
        assert record.actor_id == "tech"
        assert record.action == "submit"
        assert record.from_status == ModificationStatus.PROPOSED
        assert record.to_status == ModificationStatus.PENDING
        assert record.comment == "ready"

    def test_undefined_pair_is_illegal(self, manager):
        machine = ModificationStateMachine()
        with pytest.raises(IllegalTransition) as exc:
            machine.fire(make_mod(), TransitionEvent.APPROVE, manager)
        assert exc.value.current_status == "PROPOSED"
        assert exc.value.event == "approve"

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    @pytest.mark.parametrize("event", list(TransitionEvent))
    def test_terminal_rejects_everything(self, admin, status, event):
        machine = ModificationStateMachine()
        with pytest.raises(IllegalTransition) as exc:
            machine.fire(make_mod(status), event, admin)
        assert exc.value.reason == "status is terminal"

    def test_proposer_cannot_approve(self):
        machine = ModificationStateMachine()
        from changecontrol.rbac import Actor, Role
        proposer = Actor("manager", Role.NETWORK_MANAGER)
        mod = make_mod(ModificationStatus.PENDING, proposer="manager")
        with pytest.raises(IllegalTransition) as exc:
            machine.fire(mod, TransitionEvent.APPROVE, proposer)
        assert "separation of duties" in exc.value.reason

    def test_approve_requires_edit(self, contractor):
        machine = ModificationStateMachine()
        with pytest.raises(IllegalTransition):
            machine.fire(make_mod(ModificationStatus.PENDING), TransitionEvent.APPROVE, contractor)

    def test_override_cancel_only_while_pending(self, admin):
        machine = ModificationStateMachine()
        pending = machine.fire(make_mod(ModificationStatus.PENDING), TransitionEvent.CANCEL, admin)
        assert pending.status == ModificationStatus.CANCELLED

        with pytest.raises(IllegalTransition):
            machine.fire(make_mod(ModificationStatus.PROPOSED), TransitionEvent.CANCEL, admin)

    def test_full_path(self, tech, manager):
        machine = ModificationStateMachine()
        mod = make_mod()
        for event, actor in (
            (TransitionEvent.SUBMIT, tech),
            (TransitionEvent.APPROVE, manager),
            (TransitionEvent.APPLY, manager),
        ):
            mod = machine.fire(mod, event, actor)

        assert mod.status == ModificationStatus.APPLIED
        assert [r.to_status for r in mod.history] == [
            ModificationStatus.PENDING, ModificationStatus.APPROVED, ModificationStatus.APPLIED
        ]
        # Each record starts where the previous one ended
        for prev, nxt in zip(mod.history, mod.history[1:]):
            assert prev.to_status == nxt.from_status

    def test_allowed_events(self, tech, manager, viewer, admin):
        machine = ModificationStateMachine()
        pending = make_mod(ModificationStatus.PENDING)

        assert set(machine.allowed_events(pending, manager)) == {
            TransitionEvent.APPROVE, TransitionEvent.REJECT
        }
        assert machine.allowed_events(pending, tech) == [TransitionEvent.CANCEL]
        assert machine.allowed_events(pending, viewer) == []
        assert set(machine.allowed_events(pending, admin)) == {
            TransitionEvent.APPROVE, TransitionEvent.REJECT, TransitionEvent.CANCEL
        }
        assert machine.can_fire(pending, TransitionEvent.REJECT, manager)
        assert not machine.can_fire(pending, TransitionEvent.APPLY, manager)


class TestModificationSerialization:
    """Tests for Modification to_dict / from_dict"""

    def test_round_trip_with_history(self, tech, manager):
        machine = ModificationStateMachine()
        mod = machine.fire(make_mod(), TransitionEvent.SUBMIT, tech, comment="go")
        mod = machine.fire(mod, TransitionEvent.APPROVE, manager)

        restored = Modification.from_dict(mod.to_dict())

        assert restored == mod
        assert restored.payload == {"vlan": 20}
        assert restored.target.network == NetworkType.OT

    def test_to_dict_shape(self):
        data = make_mod().to_dict()
        assert data["status"] == "PROPOSED"
        assert data["target"]["entity"] == "PORT"
        assert data["history"] == []
        assert data["version"] == 0
