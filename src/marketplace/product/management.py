"""Shop-owner product commands: catalogue entries, stock, price and status.

Stock changes go through the inventory ledger. Watchers of a product hear
about it when it comes back into stock or its price drops.
"""

import structlog
from protean import handle
from protean.fields import Float, Identifier, Integer, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.exceptions import Forbidden, Unavailable
from marketplace.inventory.ledger import InventoryLedger
from marketplace.notification.emitter import NotificationEmitter
from marketplace.product.product import DEFAULT_MIN_STOCK, Product
from marketplace.shared.lookup import load
from marketplace.shop.shop import Shop

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Product")
class AddProduct:
    owner_id: Identifier(required=True)
    name: Text()
    price: Float()
    unit: Text()
    category: Text()
    stock: Integer(default=0)
    min_stock: Integer(default=DEFAULT_MIN_STOCK)
    description: Text()
    original_price: Float()


@marketplace.command(part_of="Product")
class UpdateProduct:
    """Edit a catalogue entry; fields left unset keep their current value."""

    product_id: Identifier(required=True)
    owner_id: Identifier(required=True)
    name: Text()
    description: Text()
    category: Text()
    unit: Text()
    price: Float()
    original_price: Float()
    min_stock: Integer()
    stock: Integer()


@marketplace.command(part_of="Product")
class UpdateStock:
    product_id: Identifier(required=True)
    owner_id: Identifier(required=True)
    stock: Integer()


@marketplace.command(part_of="Product")
class ChangePrice:
    product_id: Identifier(required=True)
    owner_id: Identifier(required=True)
    price: Float()


@marketplace.command(part_of="Product")
class ToggleProductStatus:
    product_id: Identifier(required=True)
    owner_id: Identifier(required=True)


def _owned_product(product_id, owner_id) -> Product:
    product = load(Product, product_id)
    shop = load(Shop, product.shop_id)
    if shop.owner_id != owner_id:
        raise Forbidden("Not authorized to update this product")
    return product


def _restock(product: Product, new_stock) -> None:
    previous = InventoryLedger().restock(product, new_stock)

    if previous == 0 and product.stock > 0 and product.is_active:
        emitter = NotificationEmitter()
        watchers = product.watcher_ids
        for user_id in watchers:
            emitter.stock_alert(user_id, product.id, product.name, shop_id=product.shop_id)
        logger.info("Back-in-stock alerts created", product_id=product.id, count=len(watchers))


def _reprice(product: Product, new_price) -> None:
    old_price = product.change_price(new_price)
    current_domain.repository_for(Product).add(product)

    if product.price < old_price and product.is_active:
        emitter = NotificationEmitter()
        watchers = product.watcher_ids
        for user_id in watchers:
            emitter.price_drop(user_id, product.id, product.name, old_price, product.price)
        logger.info("Price drop alerts created", product_id=product.id, old_price=old_price, count=len(watchers))


@marketplace.command_handler(part_of=Product)
class ProductManagementHandler:
    @handle(AddProduct)
    def add_product(self, command):
        shop = current_domain.repository_for(Shop).owned_by(command.owner_id)
        if not shop.is_active:
            raise Unavailable(f"Shop {shop.name} is not active")

        product = Product.create(
            shop_id=shop.id,
            name=command.name,
            price=command.price,
            unit=command.unit,
            category=command.category,
            stock=command.stock,
            min_stock=command.min_stock,
            description=command.description,
            original_price=command.original_price,
        )
        current_domain.repository_for(Product).add(product)

        logger.info("Product added", product_id=product.id, shop_id=shop.id, stock=product.stock)
        return str(product.id)

    @handle(UpdateProduct)
    def update_product(self, command):
        product = _owned_product(command.product_id, command.owner_id)
        product.update_details(
            name=command.name,
            description=command.description,
            category=command.category,
            unit=command.unit,
            original_price=command.original_price,
            min_stock=command.min_stock,
        )
        current_domain.repository_for(Product).add(product)

        if command.price is not None:
            _reprice(product, command.price)
        if command.stock is not None:
            _restock(product, command.stock)

        logger.info("Product updated", product_id=product.id)
        return str(product.id)

    @handle(UpdateStock)
    def update_stock(self, command):
        product = _owned_product(command.product_id, command.owner_id)
        _restock(product, command.stock)
        return product.stock

    @handle(ChangePrice)
    def change_price(self, command):
        product = _owned_product(command.product_id, command.owner_id)
        _reprice(product, command.price)
        return product.price

    @handle(ToggleProductStatus)
    def toggle_status(self, command):
        product = _owned_product(command.product_id, command.owner_id)
        is_active = product.toggle_active()
        current_domain.repository_for(Product).add(product)

        logger.info("Product status toggled", product_id=product.id, is_active=is_active)
        return is_active
