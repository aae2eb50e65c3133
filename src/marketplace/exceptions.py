"""Domain exceptions raised by marketplace operations.

Every exception carries the HTTP status the API surfaces it with. Field
constraint violations are raised as Protean's ``ValidationError`` instead.
"""


class MarketplaceError(Exception):
    """Base class for all marketplace domain errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(MarketplaceError):
    status_code = 404


class Forbidden(MarketplaceError):
    status_code = 403


class Unavailable(MarketplaceError):
    """The referenced entity exists but has been deactivated."""

    status_code = 400


class InsufficientStock(MarketplaceError):
    status_code = 400

    def __init__(self, message: str, product_id: str | None = None, available: int | None = None):
        super().__init__(message)
        self.product_id = product_id
        self.available = available


class InvalidTransition(MarketplaceError):
    status_code = 400


class AlreadyRated(InvalidTransition):
    pass

