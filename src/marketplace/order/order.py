"""Order aggregate: a placed purchase from a single shop.

State Machine:
    pending → confirmed → preparing → ready_for_pickup / out_for_delivery → delivered
    ready_for_pickup → out_for_delivery (home delivery) or delivered (pickup)
    cancelled from any state except delivered, cancelled and refunded
    delivered / cancelled → refunded (administrators only)

Totals are fixed when the order is created: line totals use the unit price
captured at reservation time, and nothing is recomputed afterwards.
"""

import re
from enum import Enum

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from marketplace.domain import marketplace
from marketplace.exceptions import AlreadyRated, Forbidden, InvalidTransition
from marketplace.shared.clock import utc_now
from marketplace.shared.validation import ErrorCollector, choice, clean_rating, integer, number, text


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY_FOR_PICKUP = "ready_for_pickup"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    COD = "cod"
    ONLINE = "online"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class DeliveryType(Enum):
    HOME_DELIVERY = "home_delivery"
    PICKUP = "pickup"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {
        OrderStatus.READY_FOR_PICKUP,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.CANCELLED,
    },
    OrderStatus.READY_FOR_PICKUP: {
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,  # Collected at the counter
        OrderStatus.CANCELLED,
    },
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}

_NON_CANCELLABLE_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}

_ADMIN_ONLY_STATES = {OrderStatus.REFUNDED}

DELIVERY_FEE = 50.0
FREE_DELIVERY_THRESHOLD = 500.0

_PINCODE = re.compile(r"^[0-9]{6}$")


def delivery_fee_for(
    subtotal: float,
    flat_fee: float = DELIVERY_FEE,
    free_above: float = FREE_DELIVERY_THRESHOLD,
) -> float:
    """Delivery is free once the subtotal exceeds ``free_above``."""
    return 0.0 if subtotal > free_above else flat_fee


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class DeliveryAddress:
    """Where the order goes, captured at checkout and never updated."""

    street: String(max_length=200)
    city: String(max_length=100)
    state: String(max_length=100)
    pincode: String(max_length=6)
    latitude: Float()
    longitude: Float()

    @classmethod
    def build(cls, data, delivery_type, errors):
        data = data or {}
        required = delivery_type == DeliveryType.HOME_DELIVERY
        if not data and not required:
            return None

        street = errors.check("delivery_address.street", text, data.get("street"), label="Street", max_length=200, required=required)
        city = errors.check("delivery_address.city", text, data.get("city"), label="City", max_length=100, required=required)
        state = errors.check("delivery_address.state", text, data.get("state"), label="State", max_length=100)
        pincode = errors.check("delivery_address.pincode", text, data.get("pincode"), label="Pincode", max_length=6, required=required)
        if pincode and not _PINCODE.match(pincode):
            errors.add("delivery_address.pincode", "Please provide a valid 6-digit pincode")

        latitude = longitude = None
        if data.get("latitude") is not None:
            latitude = errors.check("delivery_address.latitude", number, data["latitude"], label="Latitude")
        if data.get("longitude") is not None:
            longitude = errors.check("delivery_address.longitude", number, data["longitude"], label="Longitude")

        if errors.errors:
            return None
        return cls(street=street, city=city, state=state, pincode=pincode, latitude=latitude, longitude=longitude)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    """A line of an order. Product name and price are snapshots."""

    position: Integer(default=0)
    product_id: Identifier(required=True)
    product_name: String(required=True, max_length=100)
    quantity: Integer(required=True, min_value=1)
    unit_price: Float(required=True, min_value=0)
    line_total: Float(required=True)
    notes: String(max_length=200)


@marketplace.entity(part_of="Order")
class StatusChange:
    """Append-only status history entry."""

    sequence: Integer(default=0)
    status: String(required=True, max_length=30)
    actor_id: Identifier()
    note: String(max_length=200)
    changed_at: DateTime(default=utc_now)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    order_number: String(required=True, max_length=20)
    customer_id: Identifier(required=True)
    shop_id: Identifier(required=True)
    status: String(max_length=30, choices=OrderStatus, default=OrderStatus.PENDING.value)

    subtotal: Float(default=0.0)
    delivery_fee: Float(default=0.0)
    total: Float(default=0.0)

    payment_method: String(max_length=10, choices=PaymentMethod, default=PaymentMethod.COD.value)
    payment_status: String(max_length=10, choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    delivery_type: String(max_length=20, choices=DeliveryType, default=DeliveryType.HOME_DELIVERY.value)
    delivery_address: ValueObject(DeliveryAddress)
    delivery_instructions: String(max_length=300)
    order_notes: String(max_length=500)

    estimated_delivery_time: DateTime()
    actual_delivery_time: DateTime()
    cancellation_reason: String(max_length=200)

    rating: Integer(min_value=1, max_value=5)
    review: String(max_length=500)
    rated_at: DateTime()

    items: HasMany(OrderItem)
    status_history: HasMany(StatusChange)

    created_at: DateTime(default=utc_now)
    updated_at: DateTime(default=utc_now)

    @classmethod
    def create(
        cls,
        customer_id,
        shop_id,
        order_number,
        items_data,
        payment_method,
        delivery_type,
        delivery_address=None,
        delivery_instructions=None,
        order_notes=None,
        flat_delivery_fee=DELIVERY_FEE,
        free_delivery_above=FREE_DELIVERY_THRESHOLD,
    ):
        """Build a pending order from reserved lines.

        Each entry of ``items_data`` holds ``product_id``, ``product_name``,
        ``quantity``, ``unit_price`` and optionally ``notes``.
        """
        errors = ErrorCollector()
        if not items_data:
            errors.add("items", "Please add items to your order")
        for index, item in enumerate(items_data):
            errors.check(f"items.{index}.quantity", integer, item.get("quantity"), label="Quantity", minimum=1)
            errors.check(f"items.{index}.unit_price", number, item.get("unit_price"), label="Price", minimum=0)
        errors.raise_if_any()

        lines = [
            OrderItem(
                position=position,
                product_id=item["product_id"],
                product_name=item["product_name"],
                quantity=item["quantity"],
                unit_price=item["unit_price"],
                line_total=round(item["unit_price"] * item["quantity"], 2),
                notes=item.get("notes"),
            )
            for position, item in enumerate(items_data)
        ]
        subtotal = round(sum(line.line_total for line in lines), 2)
        fee = delivery_fee_for(subtotal, flat_delivery_fee, free_delivery_above)

        now = utc_now()
        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            shop_id=shop_id,
            status=OrderStatus.PENDING.value,
            subtotal=subtotal,
            delivery_fee=fee,
            total=round(subtotal + fee, 2),
            payment_method=payment_method.value,
            payment_status=PaymentStatus.PENDING.value,
            delivery_type=delivery_type.value,
            delivery_address=delivery_address,
            delivery_instructions=delivery_instructions,
            order_notes=order_notes,
            created_at=now,
            updated_at=now,
        )
        for line in lines:
            order.add_items(line)

        order._record(OrderStatus.PENDING, customer_id, "Order placed")
        return order

    # -----------------------------------------------------------------------
    # Derived
    # -----------------------------------------------------------------------
    @property
    def lines(self) -> list[OrderItem]:
        return sorted(self.items, key=lambda line: line.position)

    @property
    def history(self) -> list[StatusChange]:
        return sorted(self.status_history, key=lambda entry: entry.sequence)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_rated(self) -> bool:
        return self.rating is not None

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------
    def _record(self, status, actor_id, note=None) -> None:
        now = utc_now()
        self.add_status_history(
            StatusChange(
                sequence=len(self.status_history),
                status=status.value,
                actor_id=actor_id,
                note=note,
                changed_at=now,
            )
        )
        self.updated_at = now

    def _assert_can_transition(self, target) -> None:
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(f"Cannot change order status from {current.value} to {target.value}")

    def advance(self, target, actor_id, by_admin=False, note=None, estimated_delivery_time=None) -> None:
        if target in _ADMIN_ONLY_STATES and not by_admin:
            raise Forbidden(f"Only an administrator can mark an order as {target.value}")
        self._assert_can_transition(target)

        self.status = target.value
        if estimated_delivery_time is not None:
            self.estimated_delivery_time = estimated_delivery_time

        if target == OrderStatus.DELIVERED:
            self.actual_delivery_time = utc_now()
            if PaymentMethod(self.payment_method) == PaymentMethod.COD:
                self.payment_status = PaymentStatus.PAID.value
        elif target == OrderStatus.REFUNDED and PaymentStatus(self.payment_status) == PaymentStatus.PAID:
            self.payment_status = PaymentStatus.REFUNDED.value

        self._record(target, actor_id, note)

    def cancel(self, actor_id, reason=None) -> None:
        current = OrderStatus(self.status)
        if current in _NON_CANCELLABLE_STATES:
            raise InvalidTransition(f"Order cannot be cancelled once it is {current.value}")

        errors = ErrorCollector()
        reason = errors.check("reason", text, reason, label="Cancellation reason", max_length=200)
        errors.raise_if_any()

        self.cancellation_reason = reason
        self.advance(OrderStatus.CANCELLED, actor_id, note=reason)

    def rate(self, value, review=None) -> None:
        value, review = clean_rating(value, review)
        if OrderStatus(self.status) != OrderStatus.DELIVERED:
            raise InvalidTransition("Order must be delivered before rating")
        if self.is_rated:
            raise AlreadyRated("Order already rated")

        self.rating = value
        self.review = review
        self.rated_at = utc_now()
        self.updated_at = self.rated_at


def parse_status(value) -> OrderStatus:
    errors = ErrorCollector()
    status = errors.check("status", choice, value, OrderStatus, label="Status")
    errors.raise_if_any()
    return status
