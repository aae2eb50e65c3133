import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.shop.shop import Shop

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Shop")
class RegisterShop:
    owner_id: Identifier(required=True)
    name: Text()
    description: Text()


@marketplace.command_handler(part_of=Shop)
class RegisterShopHandler:
    @handle(RegisterShop)
    def register_shop(self, command):
        repo = current_domain.repository_for(Shop)
        if repo._dao.query.filter(owner_id=command.owner_id).all().items:
            raise ValidationError({"owner_id": ["This user already owns a shop"]})

        shop = Shop.create(owner_id=command.owner_id, name=command.name, description=command.description)
        repo.add(shop)

        logger.info("Shop registered", shop_id=shop.id, owner_id=shop.owner_id)
        return str(shop.id)
