"""Tests for status updates, cancellation and rating of placed orders."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from marketplace.exceptions import AlreadyRated, Forbidden, InvalidTransition
from marketplace.notification.notification import Notification
from marketplace.order.cancellation import CancelOrder
from marketplace.order.order import Order, OrderStatus, PaymentStatus
from marketplace.order.rating import RateOrder
from marketplace.order.status import UpdateOrderStatus
from marketplace.product.product import Product
from marketplace.shop.registration import RegisterShop
from marketplace.shop.shop import Shop

DELIVERY_PATH = ["confirmed", "preparing", "out_for_delivery", "delivered"]


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _notifications_for(recipient_id):
    return current_domain.repository_for(Notification).for_recipient(recipient_id).items


def _update(order_id, status, actor_id="owner-001", actor_role="shop_owner", note=None):
    return _process(
        UpdateOrderStatus(order_id=order_id, status=status, actor_id=actor_id, actor_role=actor_role, note=note)
    )


@pytest.fixture()
def rice(add_product):
    return add_product("Basmati Rice", price=120.0, stock=10)


@pytest.fixture()
def order_id(rice, place_order):
    return place_order([(rice, 3)])


class TestUpdateOrderStatus:
    def test_owner_moves_order_along(self, order_id, load):
        for status in DELIVERY_PATH:
            _update(order_id, status)

        order = load(Order, order_id)
        assert order.status == OrderStatus.DELIVERED.value
        assert order.payment_status == PaymentStatus.PAID.value
        assert [change.status for change in order.history] == ["pending", *DELIVERY_PATH]

    def test_customer_is_notified_of_each_change(self, order_id, load):
        _update(order_id, "confirmed")
        _update(order_id, "preparing")
        order = load(Order, order_id)

        notifications = _notifications_for("cust-001")
        titles = sorted(notification.title for notification in notifications)
        assert titles == [f"Order {order.order_number} - CONFIRMED", f"Order {order.order_number} - PREPARING"]
        confirmed = next(n for n in notifications if n.title.endswith("CONFIRMED"))
        assert confirmed.message == "Your order has been confirmed and is being prepared."

    def test_owner_of_another_shop_is_rejected(self, order_id, load):
        _process(RegisterShop(owner_id="owner-002", name="Gupta Dairy"))
        with pytest.raises(Forbidden) as exc:
            _update(order_id, "confirmed", actor_id="owner-002")
        assert exc.value.message == "Not authorized to update this order"
        assert load(Order, order_id).status == OrderStatus.PENDING.value

    def test_invalid_transition_changes_nothing(self, order_id, load):
        with pytest.raises(InvalidTransition):
            _update(order_id, "delivered")
        assert load(Order, order_id).status == OrderStatus.PENDING.value
        assert _notifications_for("cust-001") == []

    def test_unknown_status(self, order_id):
        with pytest.raises(ValidationError):
            _update(order_id, "shipped")

    def test_owner_cancelling_releases_stock(self, rice, order_id, load):
        _update(order_id, "confirmed")
        _update(order_id, "cancelled", note="Out of delivery range")

        order = load(Order, order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Out of delivery range"
        assert load(Product, rice).stock == 10

    def test_only_admin_refunds(self, order_id, load):
        for status in DELIVERY_PATH:
            _update(order_id, status)

        with pytest.raises(Forbidden):
            _update(order_id, "refunded")

        _update(order_id, "refunded", actor_id="admin-001", actor_role="admin")
        order = load(Order, order_id)
        assert order.status == OrderStatus.REFUNDED.value
        assert order.payment_status == PaymentStatus.REFUNDED.value

    def test_admin_may_update_any_order(self, order_id, load):
        _update(order_id, "confirmed", actor_id="admin-001", actor_role="admin")
        assert load(Order, order_id).status == OrderStatus.CONFIRMED.value


class TestCancelOrder:
    def test_customer_cancels_and_stock_returns(self, rice, order_id, load):
        _process(CancelOrder(order_id=order_id, actor_id="cust-001", reason="Changed my mind"))

        order = load(Order, order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Changed my mind"

        product = load(Product, rice)
        assert product.stock == 10
        assert product.total_sold == 0

    def test_both_parties_are_notified(self, order_id, load):
        _process(CancelOrder(order_id=order_id, actor_id="cust-001"))
        order = load(Order, order_id)

        customer_titles = [n.title for n in _notifications_for("cust-001")]
        assert customer_titles == [f"Order {order.order_number} - CANCELLED"]

        owner_messages = [n.message for n in _notifications_for("owner-001")]
        assert f"Order {order.order_number} was cancelled by the customer." in owner_messages

    def test_another_customer_cannot_cancel(self, order_id, load):
        with pytest.raises(Forbidden) as exc:
            _process(CancelOrder(order_id=order_id, actor_id="cust-999"))
        assert exc.value.message == "Not authorized to cancel this order"
        assert load(Order, order_id).status == OrderStatus.PENDING.value

    def test_delivered_order_cannot_be_cancelled(self, rice, order_id, load):
        for status in DELIVERY_PATH:
            _update(order_id, status)

        with pytest.raises(InvalidTransition):
            _process(CancelOrder(order_id=order_id, actor_id="cust-001"))
        assert load(Product, rice).stock == 7

    def test_release_survives_deleted_product(self, rice, order_id, load):
        current_domain.repository_for(Product)._dao.delete(load(Product, rice))

        _process(CancelOrder(order_id=order_id, actor_id="cust-001"))
        assert load(Order, order_id).status == OrderStatus.CANCELLED.value


class TestRateOrder:
    def _deliver(self, order_id):
        for status in DELIVERY_PATH:
            _update(order_id, status)

    def test_rating_updates_shop_summary(self, shop_id, order_id, load):
        self._deliver(order_id)
        _process(RateOrder(order_id=order_id, actor_id="cust-001", rating=4, review="Quick delivery"))

        order = load(Order, order_id)
        assert order.rating == 4
        assert order.review == "Quick delivery"

        shop = load(Shop, shop_id)
        assert shop.total_ratings == 1
        assert shop.average_rating == 4.0

    def test_only_the_customer_can_rate(self, order_id):
        self._deliver(order_id)
        with pytest.raises(Forbidden):
            _process(RateOrder(order_id=order_id, actor_id="cust-999", rating=5))

    def test_undelivered_order(self, order_id):
        with pytest.raises(InvalidTransition):
            _process(RateOrder(order_id=order_id, actor_id="cust-001", rating=5))

    def test_second_rating_is_rejected(self, shop_id, order_id, load):
        self._deliver(order_id)
        _process(RateOrder(order_id=order_id, actor_id="cust-001", rating=5))

        with pytest.raises(AlreadyRated):
            _process(RateOrder(order_id=order_id, actor_id="cust-001", rating=1))
        assert load(Shop, shop_id).average_rating == 5.0

    def test_out_of_range_rating(self, order_id):
        self._deliver(order_id)
        with pytest.raises(ValidationError):
            _process(RateOrder(order_id=order_id, actor_id="cust-001", rating=6))
