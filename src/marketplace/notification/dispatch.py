"""DispatchDueNotifications command + handler: deliver stored notifications.

Run from ``manage.py dispatch-notifications`` (or the admin maintenance
endpoint). Every unsent, unexpired notification whose scheduled time has
come is offered to each of its enabled channels. A notification counts as
sent once any channel accepts it; otherwise it stays unsent for the next run.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import DateTime
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.notification.channel import get_channel
from marketplace.notification.notification import Notification
from marketplace.shared.clock import as_utc, utc_now

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Notification")
class DispatchDueNotifications:
    as_of: DateTime()


@dataclass
class DispatchReport:
    sent: int = 0
    failed: int = 0


def _deliver(notification: Notification) -> bool:
    delivered = False
    for channel in notification.channels:
        try:
            result = get_channel(channel).send(
                recipient_id=notification.recipient_id,
                title=notification.title,
                body=notification.message,
                data=notification.data,
            )
        except Exception:
            logger.exception(
                "Channel raised during dispatch",
                notification_id=notification.id,
                channel=channel.value,
            )
            continue

        if result.get("status") == "sent":
            delivered = True
        else:
            logger.warning(
                "Channel rejected notification",
                notification_id=notification.id,
                channel=channel.value,
                error=result.get("error", "Unknown dispatch error"),
            )
    return delivered


@marketplace.command_handler(part_of=Notification)
class DispatchDueNotificationsHandler:
    @handle(DispatchDueNotifications)
    def dispatch_due(self, command):
        as_of = as_utc(command.as_of or utc_now())
        repo = current_domain.repository_for(Notification)

        report = DispatchReport()
        for notification in repo.due_for_dispatch(as_of):
            if _deliver(notification):
                notification.mark_sent()
                repo.add(notification)
                report.sent += 1
            else:
                report.failed += 1

        logger.info("Due notifications dispatched", sent=report.sent, failed=report.failed, as_of=as_of.isoformat())
        return report
