from dataclasses import dataclass
from enum import Enum


class ActorRole(Enum):
    CUSTOMER = "customer"
    SHOP_OWNER = "shop_owner"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """The authenticated user behind a request, as asserted by the auth gateway."""

    user_id: str
    role: ActorRole = ActorRole.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN
