"""LocalMart HTTP API package."""

from marketplace.api.routes import notification_router, order_router, product_router, shop_router

__all__ = ["order_router", "notification_router", "product_router", "shop_router"]
