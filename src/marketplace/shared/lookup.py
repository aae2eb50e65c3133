from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.exceptions import NotFound


def load(aggregate_cls, identifier, message: str | None = None):
    """Fetch an aggregate by id, raising ``NotFound`` with a readable message."""
    try:
        return current_domain.repository_for(aggregate_cls).get(identifier)
    except ObjectNotFoundError:
        raise NotFound(message or f"{aggregate_cls.__name__} not found") from None
