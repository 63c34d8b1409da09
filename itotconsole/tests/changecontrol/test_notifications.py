"""Tests for workflow notifications"""

import pytest
from changecontrol.events import WorkflowEvent, WorkflowEventBus, WorkflowEventType
from changecontrol.notifications import (
    ChannelRegistry, ChannelType, InAppChannel, NotificationChannel, NotificationManager,
    NotificationPriority, NotificationStatus, NotificationTemplate, OutboundMessage, TemplateManager
)


class BrokenChannel(NotificationChannel):
    channel_type = ChannelType.IN_APP

    def deliver(self, message):
        raise ConnectionError("inbox offline")


def event(event_type, actor_id="tech", proposer_id="tech", comment=None):
    return WorkflowEvent(
        event_type=event_type,
        modification_id="mod_123",
        from_status="PROPOSED",
        to_status="PENDING",
        actor_id=actor_id,
        proposer_id=proposer_id,
        comment=comment
    )


@pytest.fixture
def manager(directory):
    return NotificationManager(directory)


class TestRecipients:
    """Tests for recipient selection"""

    def test_submitted_goes_to_reviewers(self, manager):
        created = manager.handle_event(event(WorkflowEventType.SUBMITTED))
        assert sorted(n.recipient for n in created) == ["admin", "manager", "manager2"]
        assert all(n.priority == NotificationPriority.HIGH for n in created)

    def test_submitted_skips_reviewer_proposer(self, manager):
        created = manager.handle_event(
            event(WorkflowEventType.SUBMITTED, actor_id="manager", proposer_id="manager")
        )
        assert sorted(n.recipient for n in created) == ["admin", "manager2"]

    def test_decision_goes_to_proposer(self, manager):
        created = manager.handle_event(
            event(WorkflowEventType.APPROVED, actor_id="manager", comment="Go ahead")
        )
        assert [n.recipient for n in created] == ["tech"]
        assert created[0].priority == NotificationPriority.NORMAL
        assert "Go ahead" in created[0].body

    def test_own_action_not_notified(self, manager):
        assert manager.handle_event(event(WorkflowEventType.CANCELLED)) == []

    def test_proposed_confirms_to_proposer(self, manager):
        created = manager.handle_event(event(WorkflowEventType.PROPOSED))
        assert [n.recipient for n in created] == ["tech"]


class TestDelivery:
    """Tests for delivery and status tracking"""

    def test_sent_over_all_channels(self, manager):
        notification = manager.handle_event(event(WorkflowEventType.REJECTED, actor_id="manager"))[0]

        assert notification.status == NotificationStatus.SENT
        assert sorted(notification.channels) == ["inbox", "log"]
        assert notification.subject == "Modification mod_123 rejected"
        # No comment given; the default fills in
        assert notification.body.endswith("Comment: -")

        inbox = manager.channels.get("inbox")
        assert inbox.inbox("tech")[0]["notification_id"] == notification.id

    def test_failing_channel_recorded(self, directory):
        channels = ChannelRegistry()
        broken = channels.register(BrokenChannel("broken"))
        manager = NotificationManager(directory, channels=channels)

        notification = manager.handle_event(event(WorkflowEventType.APPLIED, actor_id="manager"))[0]

        assert notification.status == NotificationStatus.FAILED
        assert notification.error == "broken: inbox offline"
        assert broken.failed == 1
        assert broken.last_error == "inbox offline"

    def test_one_channel_is_enough(self, directory):
        channels = ChannelRegistry.with_defaults()
        channels.register(BrokenChannel("broken"))
        manager = NotificationManager(directory, channels=channels)

        notification = manager.handle_event(event(WorkflowEventType.APPLIED, actor_id="manager"))[0]
        assert notification.status == NotificationStatus.SENT
        assert sorted(notification.channels) == ["inbox", "log"]

    def test_disabled_channels_skipped(self, directory):
        channels = ChannelRegistry()
        channels.register(InAppChannel())
        channels.set_enabled("inbox", False)
        manager = NotificationManager(directory, channels=channels)

        notification = manager.handle_event(event(WorkflowEventType.APPLIED, actor_id="manager"))[0]
        assert notification.status == NotificationStatus.FAILED
        assert notification.error == "No enabled channels"

    def test_missing_template(self, directory):
        manager = NotificationManager(directory, templates=TemplateManager(builtin=False))

        notification = manager.handle_event(event(WorkflowEventType.APPLIED, actor_id="manager"))[0]
        assert notification.status == NotificationStatus.FAILED
        assert "No template" in notification.error

    def test_custom_template(self, directory):
        templates = TemplateManager()
        templates.register(NotificationTemplate(
            name=WorkflowEventType.APPLIED.value,
            subject="[OT] {{modification_id}} is live",
            body="Applied by {{actor_id}}"
        ))
        manager = NotificationManager(directory, templates=templates)

        notification = manager.handle_event(event(WorkflowEventType.APPLIED, actor_id="manager"))[0]
        assert notification.subject == "[OT] mod_123 is live"
        assert notification.body == "Applied by manager"


class TestReadState:
    """Tests for read and archive state"""

    def test_mark_read_and_unread_count(self, manager):
        manager.handle_event(event(WorkflowEventType.APPROVED, actor_id="manager"))
        manager.handle_event(event(WorkflowEventType.APPLIED, actor_id="manager"))
        assert manager.unread_count("tech") == 2

        first = manager.get_notifications("tech")[0]
        assert manager.mark_read(first.id)
        assert first.read_at is not None
        assert manager.unread_count("tech") == 1
        assert manager.mark_all_read("tech") == 1
        assert manager.unread_count("tech") == 0

    def test_archive(self, manager):
        notification = manager.handle_event(event(WorkflowEventType.APPROVED, actor_id="manager"))[0]
        assert manager.archive(notification.id)

        assert manager.get_notifications("tech") == []
        assert manager.get_notifications("tech", include_archived=True) == [notification]
        assert not manager.mark_read(notification.id)

    def test_unknown_notification(self, manager):
        assert not manager.mark_read("notif_missing")
        assert not manager.archive("notif_missing")
        assert manager.get_notification("notif_missing") is None

    def test_statistics(self, manager):
        manager.handle_event(event(WorkflowEventType.SUBMITTED))
        stats = manager.get_statistics()
        assert stats["total_notifications"] == 3
        assert stats["by_priority"] == {"high": 3}
        assert stats["channels"]["delivered"] == 6


class TestBusIntegration:
    """Tests for bus subscription"""

    @pytest.mark.asyncio
    async def test_attach_and_detach(self, manager):
        bus = WorkflowEventBus()
        manager.attach(bus)

        await bus.emit(event(WorkflowEventType.APPROVED, actor_id="manager"))
        assert manager.unread_count("tech") == 1

        manager.detach(bus)
        await bus.emit(event(WorkflowEventType.APPROVED, actor_id="manager"))
        assert manager.unread_count("tech") == 1


class TestChannels:
    """Tests for the channel registry"""

    def message(self):
        return OutboundMessage(notification_id="notif_1", recipient="tech", subject="Hello", body="Body")

    def test_in_app_inbox(self):
        channels = ChannelRegistry()
        inbox = channels.register(InAppChannel())
        result = channels.deliver("inbox", self.message())

        assert result.success
        assert result.reference.startswith("inapp_")
        assert inbox.inbox("tech")[0]["subject"] == "Hello"
        assert inbox.delivered == 1

    def test_unknown_channel(self):
        result = ChannelRegistry().deliver("pager", self.message())
        assert not result.success
        assert result.error == "Channel not found"

    def test_register_replaces_by_name(self):
        channels = ChannelRegistry.with_defaults()
        replacement = channels.register(InAppChannel())
        assert channels.get("inbox") is replacement
        assert [c.name for c in channels.of_type(ChannelType.IN_APP)] == ["inbox"]


class TestTemplates:
    """Tests for notification templates"""

    def test_builtins_cover_every_event(self):
        templates = TemplateManager()
        assert set(templates.names()) == {t.value for t in WorkflowEventType}

    def test_missing_variable(self):
        template = NotificationTemplate(name="t", subject="{{a}}", body="{{b}}", defaults={"b": "x"})
        assert template.missing({}) == ["a"]
        with pytest.raises(ValueError):
            template.render({"a": None})
        assert template.render({"a": 1}) == {"subject": "1", "body": "x"}


class TestHistoryLimit:
    """Tests for the notification history bound"""

    def test_oldest_dropped(self, directory):
        manager = NotificationManager(directory, max_history=2)
        first = manager.handle_event(event(WorkflowEventType.APPROVED, actor_id="manager"))[0]
        manager.handle_event(event(WorkflowEventType.REJECTED, actor_id="manager"))
        manager.handle_event(event(WorkflowEventType.APPLIED, actor_id="manager"))

        assert manager.get_notification(first.id) is None
        assert {n.event_type for n in manager.get_notifications("tech")} == {
            WorkflowEventType.APPLIED, WorkflowEventType.REJECTED
        }
        stats = manager.get_statistics()
        assert stats["total_notifications"] == 2
        assert stats["trimmed"] == 1

    def test_fan_out_respects_limit(self, directory):
        manager = NotificationManager(directory, max_history=2)
        created = manager.handle_event(event(WorkflowEventType.SUBMITTED))
        assert len(created) == 3
        assert manager.get_statistics()["total_notifications"] == 2

    def test_invalid_limit(self, directory):
        with pytest.raises(ValueError):
            NotificationManager(directory, max_history=0)
