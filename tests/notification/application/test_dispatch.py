"""Tests for DispatchDueNotifications."""

from datetime import UTC, datetime, timedelta

from protean import UnitOfWork, current_domain

from marketplace.notification.channel import get_channel, register_channel
from marketplace.notification.channel.port import ChannelPort
from marketplace.notification.dispatch import DispatchDueNotifications
from marketplace.notification.emitter import ALL_CHANNELS, NotificationEmitter
from marketplace.notification.notification import Notification, NotificationChannel, NotificationType


def _process(command):
    return current_domain.process(command, asynchronous=False)


class ExplodingChannel(ChannelPort):
    def send(self, recipient_id, title, body, data=None):
        raise ConnectionError("SMS gateway unreachable")


def _emit(**kwargs):
    kwargs.setdefault("channels", {NotificationChannel.PUSH})
    with UnitOfWork():
        return (
            NotificationEmitter()
            .emit("cust-001", NotificationType.PROMOTION, title="Weekend sale", message="Fresh fruit at 10% off", **kwargs)
            .id
        )


class TestDispatch:
    def test_due_notifications_are_sent_on_each_channel(self, load):
        notification_id = _emit(channels=ALL_CHANNELS)

        report = _process(DispatchDueNotifications())

        assert (report.sent, report.failed) == (1, 0)
        assert load(Notification, notification_id).is_sent is True
        for channel in NotificationChannel:
            sent = get_channel(channel).sent
            assert len(sent) == 1
            assert sent[0]["recipient_id"] == "cust-001"
            assert sent[0]["title"] == "Weekend sale"

    def test_sent_notifications_are_not_sent_again(self):
        _emit()
        _process(DispatchDueNotifications())
        report = _process(DispatchDueNotifications())
        assert (report.sent, report.failed) == (0, 0)
        assert len(get_channel(NotificationChannel.PUSH).sent) == 1

    def test_scheduled_notifications_wait(self, load):
        now = datetime.now(UTC)
        notification_id = _emit(scheduled_for=now + timedelta(hours=2))

        assert _process(DispatchDueNotifications(as_of=now)).sent == 0
        assert _process(DispatchDueNotifications(as_of=now + timedelta(hours=3))).sent == 1
        assert load(Notification, notification_id).is_sent is True

    def test_expired_notifications_are_skipped(self):
        _emit(expires_at=datetime.now(UTC) - timedelta(seconds=1))
        report = _process(DispatchDueNotifications())
        assert (report.sent, report.failed) == (0, 0)

    def test_rejected_everywhere_stays_unsent(self, load):
        notification_id = _emit()
        get_channel(NotificationChannel.PUSH).configure(should_succeed=False, failure_reason="Device token expired")

        report = _process(DispatchDueNotifications())

        assert (report.sent, report.failed) == (0, 1)
        assert load(Notification, notification_id).is_sent is False

    def test_one_channel_failing_does_not_block_the_others(self, load):
        notification_id = _emit(channels=ALL_CHANNELS)
        register_channel(NotificationChannel.SMS, ExplodingChannel())

        report = _process(DispatchDueNotifications())

        assert report.sent == 1
        assert load(Notification, notification_id).is_sent is True
        assert len(get_channel(NotificationChannel.EMAIL).sent) == 1
        assert len(get_channel(NotificationChannel.PUSH).sent) == 1
