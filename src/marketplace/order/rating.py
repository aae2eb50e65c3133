"""RateOrder command + handler: a customer rates a delivered order once."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.exceptions import Forbidden
from marketplace.order.order import Order
from marketplace.rating.aggregator import RatingAggregator
from marketplace.shared.lookup import load
from marketplace.shared.validation import clean_rating
from marketplace.shop.shop import Shop

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class RateOrder:
    order_id: Identifier(required=True)
    actor_id: Identifier(required=True)
    rating: Integer()
    review: Text()


@marketplace.command_handler(part_of=Order)
class RateOrderHandler:
    @handle(RateOrder)
    def rate_order(self, command):
        rating, review = clean_rating(command.rating, command.review)

        order = load(Order, command.order_id)
        if order.customer_id != command.actor_id:
            raise Forbidden("Not authorized to rate this order")

        order.rate(rating, review)
        current_domain.repository_for(Order).add(order)

        shop = RatingAggregator().recompute_shop(load(Shop, order.shop_id), rated_order=order)

        logger.info("Order rated", order_id=order.id, rating=rating, shop_id=shop.id, shop_average=shop.average_rating)
        return str(order.id)
