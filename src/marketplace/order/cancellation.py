"""CancelOrder command + handler: the customer backs out of an order."""

import structlog
from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.exceptions import Forbidden
from marketplace.inventory.ledger import InventoryLedger
from marketplace.notification.emitter import NotificationEmitter
from marketplace.order.order import Order, OrderStatus
from marketplace.shared.lookup import load
from marketplace.shop.shop import Shop

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class CancelOrder:
    order_id: Identifier(required=True)
    actor_id: Identifier(required=True)
    reason: Text()


def release_order_stock(order: Order) -> None:
    """Put every line of a cancelled order back into stock."""
    ledger = InventoryLedger()
    for item in order.lines:
        ledger.release(item.product_id, item.quantity)


@marketplace.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = load(Order, command.order_id)
        if order.customer_id != command.actor_id:
            raise Forbidden("Not authorized to cancel this order")

        order.cancel(command.actor_id, command.reason)
        release_order_stock(order)
        current_domain.repository_for(Order).add(order)

        emitter = NotificationEmitter()
        emitter.order_status(order.customer_id, order.id, order.order_number, OrderStatus.CANCELLED.value)
        shop = load(Shop, order.shop_id)
        emitter.order_status(
            shop.owner_id,
            order.id,
            order.order_number,
            OrderStatus.CANCELLED.value,
            message=f"Order {order.order_number} was cancelled by the customer.",
        )

        logger.info("Order cancelled", order_id=order.id, order_number=order.order_number, reason=order.cancellation_reason)
        return str(order.id)
