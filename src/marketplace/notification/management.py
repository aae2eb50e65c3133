"""Read-state and cleanup commands for a user's notifications."""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.notification.notification import Notification

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Notification")
class MarkNotificationRead:
    notification_id: Identifier(required=True)
    user_id: Identifier(required=True)


@marketplace.command(part_of="Notification")
class MarkAllNotificationsRead:
    user_id: Identifier(required=True)


@marketplace.command(part_of="Notification")
class DeleteNotification:
    notification_id: Identifier(required=True)
    user_id: Identifier(required=True)


@marketplace.command(part_of="Notification")
class DeleteReadNotifications:
    user_id: Identifier(required=True)


@marketplace.command_handler(part_of=Notification)
class NotificationManagementHandler:
    @handle(MarkNotificationRead)
    def mark_read(self, command):
        repo = current_domain.repository_for(Notification)
        notification = repo.get_for(command.notification_id, command.user_id)
        notification.mark_read()
        repo.add(notification)
        return str(notification.id)

    @handle(MarkAllNotificationsRead)
    def mark_all_read(self, command):
        updated = current_domain.repository_for(Notification).mark_all_read(command.user_id)
        logger.info("Notifications marked read", user_id=command.user_id, count=updated)
        return updated

    @handle(DeleteNotification)
    def delete(self, command):
        repo = current_domain.repository_for(Notification)
        repo._dao.delete(repo.get_for(command.notification_id, command.user_id))

    @handle(DeleteReadNotifications)
    def delete_read(self, command):
        deleted = current_domain.repository_for(Notification).delete_read(command.user_id)
        logger.info("Read notifications deleted", user_id=command.user_id, count=deleted)
        return deleted
