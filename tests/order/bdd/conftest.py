"""Shared BDD fixtures and step definitions for orders."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

from marketplace.exceptions import MarketplaceError
from marketplace.order.order import Order
from marketplace.order.placement import PlaceOrder
from marketplace.product.management import AddProduct
from marketplace.product.product import Product
from marketplace.shop.registration import RegisterShop

OWNER_ID = "owner-001"
ADDRESS = {"street": "12 MG Road", "city": "Pune", "state": "Maharashtra", "pincode": "411001"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for a captured rejection."""
    return {"exc": None}


@pytest.fixture()
def products():
    """Product ids by name."""
    return {}


@pytest.fixture()
def attempt(error):
    """Process a command, capturing a rejection in ``error`` instead of raising."""

    def _attempt(command):
        try:
            return current_domain.process(command, asynchronous=False)
        except (MarketplaceError, ValidationError) as exc:
            error["exc"] = exc
            return None

    return _attempt


@pytest.fixture()
def checkout(attempt):
    """Place an order for ``(product_id, quantity)`` lines."""

    def _checkout(lines, customer_id="cust-001"):
        command = PlaceOrder(
            customer_id=customer_id,
            items=json.dumps([{"product_id": product_id, "quantity": quantity} for product_id, quantity in lines]),
            delivery_address=json.dumps(ADDRESS),
        )
        return attempt(command)

    return _checkout


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
def _add_product(products, name, price, stock):
    command = AddProduct(owner_id=OWNER_ID, name=name, price=price, unit="kg", category="grocery", stock=stock)
    products[name] = current_domain.process(command, asynchronous=False)


@given(parsers.cfparse('a shop selling "{name}" at {price:f} with {stock:d} in stock'))
def shop_selling(products, name, price, stock):
    current_domain.process(RegisterShop(owner_id=OWNER_ID, name="Sharma General Store"), asynchronous=False)
    _add_product(products, name, price, stock)


@given(parsers.cfparse('the shop sells "{name}" at {price:f} with {stock:d} in stock'))
def shop_sells(products, name, price, stock):
    _add_product(products, name, price, stock)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order is rejected with "{message}"'))
def order_rejected(error, message):
    assert error["exc"] is not None
    assert error["exc"].message == message


@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def product_stock_is(products, name, stock):
    assert current_domain.repository_for(Product).get(products[name]).stock == stock
