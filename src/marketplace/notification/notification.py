"""Notification aggregate: an in-app message for one user.

Notifications are created by domain events (order placed, status changed,
stock restored, price dropped) and only ever change to flip their read and
sent flags. Every notification expires; expired ones drop out of unread
counts but are not purged.
"""

import json
from datetime import timedelta
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, String, Text

from marketplace.domain import marketplace
from marketplace.shared.clock import as_utc, utc_now
from marketplace.shared.validation import ErrorCollector, choice, text


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationType(Enum):
    STOCK_ALERT = "stock_alert"
    ORDER_STATUS = "order_status"
    DELIVERY_UPDATE = "delivery_update"
    PRICE_DROP = "price_drop"
    NEW_PRODUCT = "new_product"
    PROMOTION = "promotion"
    SYSTEM_ALERT = "system_alert"


class NotificationPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class NotificationChannel(Enum):
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


PAYLOAD_FIELDS = ("order_id", "product_id", "shop_id", "url", "image", "price", "old_price", "quantity")

DEFAULT_TTL_DAYS = 30


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Notification:
    recipient_id: Identifier(required=True)
    notification_type: String(max_length=20, choices=NotificationType, required=True)
    title: String(required=True, max_length=100)
    message: String(required=True, max_length=500)
    payload: Text()  # JSON: subset of PAYLOAD_FIELDS
    priority: String(max_length=10, choices=NotificationPriority, default=NotificationPriority.MEDIUM.value)

    via_email: Boolean(default=False)
    via_sms: Boolean(default=False)
    via_push: Boolean(default=True)

    is_read: Boolean(default=False)
    read_at: DateTime()
    is_sent: Boolean(default=False)
    sent_at: DateTime()

    scheduled_for: DateTime()  # Null means immediate
    expires_at: DateTime(required=True)
    created_at: DateTime(default=utc_now)

    @classmethod
    def create(
        cls,
        recipient_id,
        notification_type,
        title,
        message,
        data=None,
        priority=NotificationPriority.MEDIUM,
        channels=None,
        scheduled_for=None,
        expires_at=None,
        ttl_days=DEFAULT_TTL_DAYS,
    ):
        errors = ErrorCollector()
        recipient_id = errors.check("recipient_id", text, recipient_id, label="Recipient", max_length=64, required=True)
        notification_type = errors.check("type", choice, notification_type, NotificationType, label="Type")
        title = errors.check("title", text, title, label="Title", max_length=100, required=True)
        message = errors.check("message", text, message, label="Message", max_length=500, required=True)
        priority = errors.check("priority", choice, priority, NotificationPriority, label="Priority")

        data = {key: value for key, value in (data or {}).items() if value is not None}
        unknown = sorted(set(data) - set(PAYLOAD_FIELDS))
        if unknown:
            errors.add("data", f"Unsupported payload fields: {', '.join(unknown)}")
        errors.raise_if_any()

        channels = {NotificationChannel.PUSH} if channels is None else set(channels)
        now = utc_now()
        return cls(
            recipient_id=recipient_id,
            notification_type=notification_type.value,
            title=title,
            message=message,
            payload=json.dumps(data),
            priority=priority.value,
            via_email=NotificationChannel.EMAIL in channels,
            via_sms=NotificationChannel.SMS in channels,
            via_push=NotificationChannel.PUSH in channels,
            is_read=False,
            is_sent=False,
            scheduled_for=scheduled_for,
            expires_at=expires_at or now + timedelta(days=ttl_days),
            created_at=now,
        )

    @property
    def data(self) -> dict:
        return json.loads(self.payload) if self.payload else {}

    @property
    def channels(self) -> list[NotificationChannel]:
        enabled = {
            NotificationChannel.EMAIL: self.via_email,
            NotificationChannel.SMS: self.via_sms,
            NotificationChannel.PUSH: self.via_push,
        }
        return [channel for channel, on in enabled.items() if on]

    def is_expired(self, at=None) -> bool:
        return as_utc(self.expires_at) <= as_utc(at or utc_now())

    def is_due(self, at=None) -> bool:
        """Unsent, unexpired, and past its scheduled time if it has one."""
        at = as_utc(at or utc_now())
        if self.is_sent or self.is_expired(at):
            return False
        return self.scheduled_for is None or as_utc(self.scheduled_for) <= at

    def mark_read(self) -> None:
        """Idempotent in effect; the read timestamp is rewritten each time."""
        self.is_read = True
        self.read_at = utc_now()

    def mark_sent(self) -> None:
        self.is_sent = True
        self.sent_at = utc_now()
