"""RateProduct command + handler: one rating per user per product."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, Text

from marketplace.domain import marketplace
from marketplace.product.product import Product
from marketplace.rating.aggregator import RatingAggregator
from marketplace.shared.lookup import load
from marketplace.shared.validation import clean_rating

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Product")
class RateProduct:
    product_id: Identifier(required=True)
    user_id: Identifier(required=True)
    rating: Integer()
    review: Text()


@marketplace.command_handler(part_of=Product)
class RateProductHandler:
    @handle(RateProduct)
    def rate_product(self, command):
        rating, review = clean_rating(command.rating, command.review)

        product = load(Product, command.product_id)
        product.record_rating(command.user_id, rating, review)
        product = RatingAggregator().recompute_product(product)

        logger.info("Product rated", product_id=product.id, user_id=command.user_id, rating=rating)
        return product.average_rating
