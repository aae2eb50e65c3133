"""UpdateOrderStatus command + handler: the shop moves an order along.

Shop owners may only touch orders placed with their own shop; administrators
may touch any order and are the only ones who can mark one refunded. Moving
an order to ``cancelled`` here takes the same path as a customer
cancellation, so its stock is released.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.exceptions import Forbidden
from marketplace.notification.emitter import NotificationEmitter
from marketplace.order.cancellation import release_order_stock
from marketplace.order.order import Order, OrderStatus, parse_status
from marketplace.shared.actor import ActorRole
from marketplace.shared.lookup import load
from marketplace.shared.validation import ErrorCollector, text
from marketplace.shop.shop import Shop

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class UpdateOrderStatus:
    order_id: Identifier(required=True)
    status: String(max_length=30)
    actor_id: Identifier(required=True)
    actor_role: String(max_length=20, default=ActorRole.SHOP_OWNER.value)
    note: Text()
    estimated_delivery_time: DateTime()


@marketplace.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        target = parse_status(command.status)
        errors = ErrorCollector()
        note = errors.check("note", text, command.note, label="Note", max_length=200)
        errors.raise_if_any()

        order = load(Order, command.order_id)

        by_admin = command.actor_role == ActorRole.ADMIN.value
        if not by_admin:
            shop = load(Shop, order.shop_id)
            if shop.owner_id != command.actor_id:
                raise Forbidden("Not authorized to update this order")

        previous = order.status
        if target == OrderStatus.CANCELLED:
            order.cancel(command.actor_id, note)
            release_order_stock(order)
        else:
            order.advance(
                target,
                command.actor_id,
                by_admin=by_admin,
                note=note,
                estimated_delivery_time=command.estimated_delivery_time,
            )
        current_domain.repository_for(Order).add(order)

        NotificationEmitter().order_status(order.customer_id, order.id, order.order_number, target.value)

        logger.info(
            "Order status updated",
            order_id=order.id,
            from_status=previous,
            to_status=order.status,
            actor_id=command.actor_id,
        )
        return str(order.id)
