"""RateShop command + handler: a direct shop rating, one per user."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, Text

from marketplace.domain import marketplace
from marketplace.exceptions import Forbidden
from marketplace.rating.aggregator import RatingAggregator
from marketplace.shared.lookup import load
from marketplace.shared.validation import clean_rating
from marketplace.shop.shop import Shop

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Shop")
class RateShop:
    shop_id: Identifier(required=True)
    user_id: Identifier(required=True)
    rating: Integer()
    review: Text()


@marketplace.command_handler(part_of=Shop)
class RateShopHandler:
    @handle(RateShop)
    def rate_shop(self, command):
        rating, review = clean_rating(command.rating, command.review)

        shop = load(Shop, command.shop_id)
        if shop.owner_id == command.user_id:
            raise Forbidden("Shop owners cannot rate their own shop")

        shop.record_rating(command.user_id, rating, review)
        shop = RatingAggregator().recompute_shop(shop)

        logger.info("Shop rated", shop_id=shop.id, user_id=command.user_id, rating=rating)
        return shop.average_rating
