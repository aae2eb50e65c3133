"""Notification emitter: turns domain events into persisted notifications.

Each convenience constructor fixes the priority and delivery channels for
its event. Notifications are stored unsent; dispatching them over email,
SMS or push is done separately by ``DispatchDueNotifications``.
"""

from datetime import datetime
from typing import Any

import structlog
from protean.utils.globals import current_domain

from marketplace.notification.notification import (
    DEFAULT_TTL_DAYS,
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from marketplace.product.product import percent_off

logger = structlog.get_logger(__name__)

ALL_CHANNELS = {NotificationChannel.EMAIL, NotificationChannel.SMS, NotificationChannel.PUSH}
EMAIL_AND_PUSH = {NotificationChannel.EMAIL, NotificationChannel.PUSH}

_STATUS_MESSAGES = {
    "confirmed": "Your order has been confirmed and is being prepared.",
    "preparing": "Your order is being prepared and will be ready soon.",
    "ready_for_pickup": "Your order is ready for pickup!",
    "out_for_delivery": "Your order is out for delivery and will reach you soon.",
    "delivered": "Your order has been delivered successfully!",
}


def order_status_title(order_number: str, status: str) -> str:
    # Only the first underscore becomes a space: "OUT FOR_DELIVERY".
    return f"Order {order_number} - {status.replace('_', ' ', 1).upper()}"


def order_status_message(status: str) -> str:
    return _STATUS_MESSAGES.get(status, f"Your order status has been updated to {status}.")


def format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}".rstrip("0")


class NotificationEmitter:
    def __init__(self, ttl_days: int | None = None):
        if ttl_days is None:
            ttl_days = current_domain.config["custom"].get("NOTIFICATION_TTL_DAYS", DEFAULT_TTL_DAYS)
        self.ttl_days = ttl_days
        self.notifications = current_domain.repository_for(Notification)

    def emit(
        self,
        recipient_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        channels: set[NotificationChannel] | None = None,
        scheduled_for: datetime | None = None,
        expires_at: datetime | None = None,
    ) -> Notification:
        notification = Notification.create(
            recipient_id=recipient_id,
            notification_type=notification_type,
            title=title,
            message=message,
            data=data,
            priority=priority,
            channels=channels,
            scheduled_for=scheduled_for,
            expires_at=expires_at,
            ttl_days=self.ttl_days,
        )
        self.notifications.add(notification)

        logger.info(
            "Notification created",
            notification_id=notification.id,
            recipient_id=recipient_id,
            type=notification.notification_type,
            priority=notification.priority,
        )
        return notification

    def stock_alert(self, recipient_id: str, product_id: str, product_name: str, shop_id: str | None = None) -> Notification:
        return self.emit(
            recipient_id,
            NotificationType.STOCK_ALERT,
            title="Product Back in Stock!",
            message=f"{product_name} is now available in stock. Order now before it runs out again!",
            data={"product_id": product_id, "shop_id": shop_id},
            priority=NotificationPriority.HIGH,
            channels=ALL_CHANNELS,
        )

    def order_status(
        self,
        recipient_id: str,
        order_id: str,
        order_number: str,
        status: str,
        message: str | None = None,
    ) -> Notification:
        return self.emit(
            recipient_id,
            NotificationType.ORDER_STATUS,
            title=order_status_title(order_number, status),
            message=message or order_status_message(status),
            data={"order_id": order_id},
            priority=NotificationPriority.MEDIUM,
            channels=EMAIL_AND_PUSH,
        )

    def price_drop(
        self,
        recipient_id: str,
        product_id: str,
        product_name: str,
        old_price: float,
        new_price: float,
    ) -> Notification:
        discount = percent_off(old_price, new_price)
        return self.emit(
            recipient_id,
            NotificationType.PRICE_DROP,
            title="Price Drop Alert!",
            message=f"{product_name} price has dropped by {discount}%! New price: ₹{format_amount(new_price)}",
            data={"product_id": product_id, "old_price": old_price, "price": new_price},
            priority=NotificationPriority.HIGH,
            channels=EMAIL_AND_PUSH,
        )

    def generic(
        self,
        recipient_id: str,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.SYSTEM_ALERT,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        return self.emit(recipient_id, notification_type, title=title, message=message, data=data)
