"""Rating aggregator: recomputes shop and product rating summaries.

Summaries are always rebuilt from the individual ratings they summarise, so
the stored sum and count can be audited against their source records at any
time:

    product: every rating entry of the product
    shop:    every delivered, rated order of the shop plus every direct shop rating
"""

import structlog
from protean.utils.globals import current_domain

from marketplace.order.order import Order, OrderStatus
from marketplace.product.product import Product
from marketplace.shop.shop import Shop

logger = structlog.get_logger(__name__)


class RatingAggregator:
    def recompute_product(self, product: Product) -> Product:
        values = [entry.rating for entry in product.ratings]
        product.apply_rating_summary(sum(values), len(values))
        current_domain.repository_for(Product).add(product)

        logger.info("Product rating recomputed", product_id=product.id, ratings=len(values), average=product.average_rating)
        return product

    def recompute_shop(self, shop: Shop, rated_order: Order | None = None) -> Shop:
        """Rebuild the shop summary; ``rated_order`` overrides its stored copy."""
        orders = {
            order.id: order
            for order in current_domain.repository_for(Order)
            ._dao.query.filter(shop_id=shop.id, status=OrderStatus.DELIVERED.value)
            .all()
            .items
        }
        if rated_order is not None:
            orders[rated_order.id] = rated_order

        order_values = [
            order.rating
            for order in orders.values()
            if order.rating is not None and order.status == OrderStatus.DELIVERED.value
        ]
        direct_values = [entry.rating for entry in shop.ratings]
        shop.apply_rating_summary(sum(order_values) + sum(direct_values), len(order_values) + len(direct_values))
        current_domain.repository_for(Shop).add(shop)

        logger.info(
            "Shop rating recomputed",
            shop_id=shop.id,
            order_ratings=len(order_values),
            shop_ratings=len(direct_values),
            average=shop.average_rating,
        )
        return shop
