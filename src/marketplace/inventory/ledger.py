"""Inventory ledger: reserves and releases product stock for order lines.

Reservation is all-or-nothing across an order: ``reserve_all`` checks every
line before any stock is decremented, and runs inside the caller's unit of
work so a later failure rolls everything back.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.product.product import Product
from marketplace.shared.lookup import load
from marketplace.shared.validation import ErrorCollector, integer

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Reservation:
    product_id: str
    product_name: str
    shop_id: str
    quantity: int
    unit_price: float

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)


def _valid_quantity(quantity) -> int:
    errors = ErrorCollector()
    quantity = errors.check("quantity", integer, quantity, label="Quantity", minimum=1)
    errors.raise_if_any()
    return quantity


class InventoryLedger:
    def __init__(self):
        self.products = current_domain.repository_for(Product)

    def _product(self, product_id) -> Product:
        return load(Product, product_id, f"Product {product_id} not found")

    def reserve(self, product_id, quantity) -> float:
        """Decrement stock for one product and return its unit price before the reservation."""
        quantity = _valid_quantity(quantity)
        product = self._product(product_id)
        unit_price = product.reserve(quantity)
        self.products.add(product)

        logger.info("Stock reserved", product_id=product_id, quantity=quantity, remaining=product.stock)
        return unit_price

    def reserve_all(self, lines) -> list[Reservation]:
        """Reserve every ``(product_id, quantity)`` line, or none of them."""
        requested: dict[str, int] = {}
        for product_id, quantity in lines:
            requested[product_id] = requested.get(product_id, 0) + _valid_quantity(quantity)

        products = {}
        for product_id in sorted(requested):
            product = self._product(product_id)
            product.check_reservable(requested[product_id])
            products[product_id] = product

        reservations = []
        for product_id, quantity in lines:
            product = products[product_id]
            unit_price = product.reserve(quantity)
            reservations.append(
                Reservation(
                    product_id=str(product.id),
                    product_name=product.name,
                    shop_id=str(product.shop_id),
                    quantity=quantity,
                    unit_price=unit_price,
                )
            )

        for product in products.values():
            self.products.add(product)

        logger.info(
            "Stock reserved for order",
            products=len(products),
            units=sum(requested.values()),
        )
        return reservations

    def release(self, product_id, quantity) -> bool:
        """Return ``quantity`` units to stock.

        A product removed since the reservation cannot take stock back; that
        is logged and reported as ``False`` rather than raised.
        """
        try:
            product = self.products.get(product_id)
        except ObjectNotFoundError:
            logger.warning("Stock release skipped, product no longer exists", product_id=product_id, quantity=quantity)
            return False

        product.release(quantity)
        self.products.add(product)
        logger.info("Stock released", product_id=product_id, quantity=quantity, stock=product.stock)
        return True

    def restock(self, product: Product, new_stock) -> int:
        """Set a product's stock level, returning the previous level."""
        previous = product.set_stock(new_stock)
        self.products.add(product)

        logger.info("Stock adjusted", product_id=product.id, previous=previous, stock=product.stock)
        return previous
