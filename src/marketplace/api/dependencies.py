"""Request identity and pagination dependencies.

Authentication is performed upstream; the gateway forwards the caller's
identity in ``X-User-Id`` and ``X-User-Role`` headers.
"""

from fastapi import Depends, Header, HTTPException, Query

from marketplace.shared.actor import Actor, ActorRole
from marketplace.shared.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from marketplace.utils.logging import add_context


def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str = Header(default=ActorRole.CUSTOMER.value),
) -> Actor:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authorized to access this route")
    try:
        role = ActorRole(x_user_role)
    except ValueError:
        raise HTTPException(status_code=403, detail=f"User role {x_user_role} is not authorized to access this route") from None

    add_context(user_id=x_user_id, role=role.value)
    return Actor(user_id=x_user_id, role=role)


def require_roles(*roles: ActorRole):
    def dependency(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"User role {actor.role.value} is not authorized to access this route",
            )
        return actor

    return dependency


class Pagination:
    def __init__(
        self,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    ):
        self.page = page
        self.limit = limit
