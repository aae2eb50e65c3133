"""PlaceOrder command + handler: turn a cart into a pending order.

One unit of work covers the whole placement: stock reservation for every
line, the daily order number, the order itself and the shop owner's
notification. Any failure leaves stock exactly as it was.
"""

import json
from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.exceptions import Unavailable
from marketplace.inventory.ledger import InventoryLedger
from marketplace.notification.emitter import NotificationEmitter, format_amount
from marketplace.order.numbering import next_order_number
from marketplace.order.order import DeliveryAddress, DeliveryType, Order, OrderStatus, PaymentMethod
from marketplace.product.product import Product
from marketplace.shared.lookup import load
from marketplace.shared.validation import ErrorCollector, choice, integer, text
from marketplace.shop.shop import Shop

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class PlaceOrder:
    customer_id: Identifier(required=True)
    items: Text(required=True)  # JSON: list of {product_id, quantity, notes}
    delivery_address: Text()  # JSON: {street, city, state, pincode, latitude, longitude}
    delivery_instructions: Text()
    payment_method: String(max_length=20, default=PaymentMethod.COD.value)
    delivery_type: String(max_length=20, default=DeliveryType.HOME_DELIVERY.value)
    order_notes: Text()


@dataclass(frozen=True)
class _ValidatedPlacement:
    lines: list[tuple[str, int]]
    notes: list[str | None]
    payment_method: PaymentMethod
    delivery_type: DeliveryType
    delivery_address: DeliveryAddress | None
    delivery_instructions: str | None
    order_notes: str | None


def _validate(command) -> _ValidatedPlacement:
    errors = ErrorCollector()
    items = json.loads(command.items) if command.items else []
    if not items:
        errors.add("items", "Please add items to your order")

    lines = []
    notes = []
    for index, item in enumerate(items):
        product_id = errors.check(
            f"items.{index}.product_id", text, item.get("product_id"), label="Product", max_length=64, required=True
        )
        quantity = errors.check(f"items.{index}.quantity", integer, item.get("quantity"), label="Quantity", minimum=1)
        notes.append(errors.check(f"items.{index}.notes", text, item.get("notes"), label="Item notes", max_length=200))
        lines.append((product_id, quantity))

    payment_method = errors.check("payment_method", choice, command.payment_method, PaymentMethod, label="Payment method")
    delivery_type = errors.check("delivery_type", choice, command.delivery_type, DeliveryType, label="Delivery type")
    address_data = json.loads(command.delivery_address) if command.delivery_address else None
    address = DeliveryAddress.build(address_data, delivery_type or DeliveryType.HOME_DELIVERY, errors)
    instructions = errors.check(
        "delivery_instructions", text, command.delivery_instructions, label="Delivery instructions", max_length=300
    )
    order_notes = errors.check("order_notes", text, command.order_notes, label="Order notes", max_length=500)
    errors.raise_if_any()

    return _ValidatedPlacement(lines, notes, payment_method, delivery_type, address, instructions, order_notes)


def _single_shop_for(product_ids) -> Shop | None:
    """The one shop selling every product, or None if no product exists."""
    products = current_domain.repository_for(Product)._dao.query.filter(id__in=list(product_ids)).all().items
    shop_ids = {str(product.shop_id) for product in products}
    if len(shop_ids) > 1:
        errors = ErrorCollector()
        errors.add("items", "All items in an order must come from the same shop")
        errors.raise_if_any()
    if not shop_ids:
        return None
    return load(Shop, shop_ids.pop())


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        placement = _validate(command)

        shop = _single_shop_for({product_id for product_id, _ in placement.lines})
        if shop is not None and not shop.is_active:
            raise Unavailable(f"Shop {shop.name} is not accepting orders")

        reservations = InventoryLedger().reserve_all(placement.lines)

        custom = current_domain.config["custom"]
        order = Order.create(
            customer_id=command.customer_id,
            shop_id=shop.id,
            order_number=next_order_number(),
            items_data=[
                {
                    "product_id": reservation.product_id,
                    "product_name": reservation.product_name,
                    "quantity": reservation.quantity,
                    "unit_price": reservation.unit_price,
                    "notes": notes,
                }
                for reservation, notes in zip(reservations, placement.notes)
            ],
            payment_method=placement.payment_method,
            delivery_type=placement.delivery_type,
            delivery_address=placement.delivery_address,
            delivery_instructions=placement.delivery_instructions,
            order_notes=placement.order_notes,
            flat_delivery_fee=custom["DELIVERY_FEE"],
            free_delivery_above=custom["FREE_DELIVERY_THRESHOLD"],
        )
        current_domain.repository_for(Order).add(order)

        NotificationEmitter().order_status(
            shop.owner_id,
            order.id,
            order.order_number,
            OrderStatus.PENDING.value,
            message=f"New order received: {order.item_count} item(s) totalling ₹{format_amount(order.total)}.",
        )

        logger.info(
            "Order placed",
            order_id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            shop_id=order.shop_id,
            total=order.total,
        )
        return str(order.id)
