from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.product.product import Product
from marketplace.shared.lookup import load


@marketplace.command(part_of="Product")
class WatchProduct:
    product_id: Identifier(required=True)
    user_id: Identifier(required=True)


@marketplace.command(part_of="Product")
class UnwatchProduct:
    product_id: Identifier(required=True)
    user_id: Identifier(required=True)


@marketplace.command_handler(part_of=Product)
class ProductWatchHandler:
    @handle(WatchProduct)
    def watch(self, command):
        product = load(Product, command.product_id)
        if product.watch(command.user_id):
            current_domain.repository_for(Product).add(product)

    @handle(UnwatchProduct)
    def unwatch(self, command):
        product = load(Product, command.product_id)
        if product.unwatch(command.user_id):
            current_domain.repository_for(Product).add(product)
