from marketplace.domain import marketplace
from marketplace.exceptions import NotFound
from marketplace.notification.notification import Notification
from marketplace.shared.clock import as_utc
from marketplace.shared.pagination import DEFAULT_PAGE_SIZE, Page


@marketplace.repository(part_of=Notification)
class NotificationRepository:
    def get_for(self, notification_id, recipient_id) -> Notification:
        """A notification, only if it belongs to ``recipient_id``."""
        found = self._dao.query.filter(id=notification_id, recipient_id=recipient_id).all().items
        if not found:
            raise NotFound("Notification not found")
        return found[0]

    def _of(self, recipient_id, **criteria):
        return self._dao.query.filter(recipient_id=recipient_id, **criteria)

    def for_recipient(self, recipient_id, unread_only=False, page=1, limit=DEFAULT_PAGE_SIZE) -> Page:
        criteria = {"is_read": False} if unread_only else {}
        return Page.of(self._of(recipient_id, **criteria).order_by("-created_at"), page, limit)

    def unread_count(self, recipient_id, at=None) -> int:
        unread = self._of(recipient_id, is_read=False).all().items
        return sum(1 for notification in unread if not notification.is_expired(at))

    def mark_all_read(self, recipient_id) -> int:
        unread = self._of(recipient_id, is_read=False).all().items
        for notification in unread:
            notification.mark_read()
            self.add(notification)
        return len(unread)

    def delete_read(self, recipient_id) -> int:
        read = self._of(recipient_id, is_read=True).all().items
        for notification in read:
            self._dao.delete(notification)
        return len(read)

    def due_for_dispatch(self, as_of) -> list[Notification]:
        """Unsent, unexpired notifications whose scheduled time has come."""
        pending = self._dao.query.filter(is_sent=False).all().items
        due = [notification for notification in pending if notification.is_due(as_of)]
        return sorted(due, key=lambda notification: as_utc(notification.created_at))
