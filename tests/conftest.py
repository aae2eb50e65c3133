import json
import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Fetch and activate the domain by pushing the associated domain_context. The activated domain can then be referred to elsewhere as `current_domain`
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from marketplace.domain import marketplace

    marketplace.init()
    marketplace.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db():
    from marketplace.domain import marketplace
    from marketplace.utils.db import drop_db, setup_db

    setup_db(marketplace)

    yield

    drop_db(marketplace)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    from marketplace.notification.channel import reset_channels

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    reset_channels()


# ---------------------------------------------------------------------------
# Shared data builders
# ---------------------------------------------------------------------------
OWNER_ID = "owner-001"
CUSTOMER_ID = "cust-001"

HOME_ADDRESS = {
    "street": "12 MG Road",
    "city": "Pune",
    "state": "Maharashtra",
    "pincode": "411001",
}


@pytest.fixture()
def shop_id():
    from protean import current_domain

    from marketplace.shop.registration import RegisterShop

    return current_domain.process(RegisterShop(owner_id=OWNER_ID, name="Sharma General Store"), asynchronous=False)


@pytest.fixture()
def add_product(shop_id):
    """Factory adding a product to the owner's shop and returning its id."""
    from protean import current_domain

    from marketplace.product.management import AddProduct

    def _add(name="Basmati Rice", price=120.0, stock=10, **kwargs):
        kwargs.setdefault("unit", "kg")
        kwargs.setdefault("category", "grocery")
        command = AddProduct(owner_id=OWNER_ID, name=name, price=price, stock=stock, **kwargs)
        return current_domain.process(command, asynchronous=False)

    return _add


@pytest.fixture()
def place_order():
    """Factory placing an order for ``CUSTOMER_ID`` and returning its id."""
    from protean import current_domain

    from marketplace.order.placement import PlaceOrder

    def _place(lines, customer_id=CUSTOMER_ID, **kwargs):
        kwargs.setdefault("delivery_address", json.dumps(HOME_ADDRESS))
        command = PlaceOrder(
            customer_id=customer_id,
            items=json.dumps([{"product_id": product_id, "quantity": quantity} for product_id, quantity in lines]),
            **kwargs,
        )
        return current_domain.process(command, asynchronous=False)

    return _place


@pytest.fixture()
def load():
    """Load an aggregate by id."""
    from protean import current_domain

    def _load(model, identifier):
        return current_domain.repository_for(model).get(identifier)

    return _load
