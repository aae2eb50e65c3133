"""FastAPI routes for LocalMart: orders, notifications, products and shops.

Writes are processed synchronously through the domain's command handlers;
reads go straight to the repositories.
"""

import json

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from marketplace.api.dependencies import Pagination, get_actor, require_roles
from marketplace.api.schemas import (
    AddProductRequest,
    CancelOrderRequest,
    ChangePriceRequest,
    DispatchReportResponse,
    Envelope,
    MessageResponse,
    NotificationResponse,
    OrderResponse,
    PaginatedEnvelope,
    PaginationSchema,
    PlaceOrderRequest,
    ProductResponse,
    RatingRequest,
    RegisterShopRequest,
    ShopResponse,
    ShopStatsResponse,
    UnreadCountResponse,
    UpdateProductRequest,
    UpdateStatusRequest,
    UpdateStockRequest,
)
from marketplace.exceptions import Forbidden
from marketplace.notification.dispatch import DispatchDueNotifications
from marketplace.notification.management import (
    DeleteNotification,
    DeleteReadNotifications,
    MarkAllNotificationsRead,
    MarkNotificationRead,
)
from marketplace.notification.notification import Notification
from marketplace.order.cancellation import CancelOrder
from marketplace.order.order import Order, parse_status
from marketplace.order.placement import PlaceOrder
from marketplace.order.rating import RateOrder
from marketplace.order.status import UpdateOrderStatus
from marketplace.product.management import (
    AddProduct,
    ChangePrice,
    ToggleProductStatus,
    UpdateProduct,
    UpdateStock,
)
from marketplace.product.product import Product, parse_category
from marketplace.product.rating import RateProduct
from marketplace.product.watching import UnwatchProduct, WatchProduct
from marketplace.shared.actor import Actor, ActorRole
from marketplace.shared.lookup import load
from marketplace.shared.pagination import Page
from marketplace.shop.rating import RateShop
from marketplace.shop.registration import RegisterShop
from marketplace.shop.shop import Shop

customer_only = require_roles(ActorRole.CUSTOMER)
shop_owner_only = require_roles(ActorRole.SHOP_OWNER)
shop_owner_or_admin = require_roles(ActorRole.SHOP_OWNER, ActorRole.ADMIN)
admin_only = require_roles(ActorRole.ADMIN)


def _order_page(page: Page) -> PaginatedEnvelope[OrderResponse]:
    return PaginatedEnvelope[OrderResponse](
        data=[OrderResponse.model_validate(order) for order in page.items],
        pagination=PaginationSchema.from_page(page),
    )


def _order_envelope(order_id: str) -> Envelope[OrderResponse]:
    order = load(Order, order_id, "Order not found")
    return Envelope[OrderResponse](data=OrderResponse.model_validate(order))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=Envelope[OrderResponse])
async def place_order(body: PlaceOrderRequest, actor: Actor = Depends(customer_only)) -> Envelope[OrderResponse]:
    command = PlaceOrder(
        customer_id=actor.user_id,
        items=json.dumps([line.model_dump() for line in body.items]),
        delivery_address=json.dumps(body.delivery_address.model_dump()) if body.delivery_address else None,
        delivery_instructions=body.delivery_instructions,
        payment_method=body.payment_method,
        delivery_type=body.delivery_type,
        order_notes=body.order_notes,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return _order_envelope(order_id)


@order_router.get("", response_model=PaginatedEnvelope[OrderResponse])
async def list_my_orders(
    status: str | None = None,
    paging: Pagination = Depends(),
    actor: Actor = Depends(get_actor),
) -> PaginatedEnvelope[OrderResponse]:
    order_status = parse_status(status) if status else None
    page = current_domain.repository_for(Order).for_customer(
        actor.user_id, status=order_status, page=paging.page, limit=paging.limit
    )
    return _order_page(page)


@order_router.get("/shop/orders", response_model=PaginatedEnvelope[OrderResponse])
async def list_shop_orders(
    status: str | None = None,
    paging: Pagination = Depends(),
    actor: Actor = Depends(shop_owner_only),
) -> PaginatedEnvelope[OrderResponse]:
    order_status = parse_status(status) if status else None
    shop = current_domain.repository_for(Shop).owned_by(actor.user_id)
    page = current_domain.repository_for(Order).for_shop(
        shop.id, status=order_status, page=paging.page, limit=paging.limit
    )
    return _order_page(page)


@order_router.get("/shop/stats", response_model=Envelope[ShopStatsResponse])
async def shop_order_stats(
    period: int = Query(default=30, ge=1, le=365),
    actor: Actor = Depends(shop_owner_only),
) -> Envelope[ShopStatsResponse]:
    shop = current_domain.repository_for(Shop).owned_by(actor.user_id)
    stats = current_domain.repository_for(Order).stats_for_shop(shop.id, period_days=period)
    return Envelope[ShopStatsResponse](data=ShopStatsResponse.model_validate(stats))


@order_router.get("/admin/all", response_model=PaginatedEnvelope[OrderResponse])
async def list_all_orders(
    status: str | None = None,
    paging: Pagination = Depends(),
    actor: Actor = Depends(admin_only),
) -> PaginatedEnvelope[OrderResponse]:
    order_status = parse_status(status) if status else None
    page = current_domain.repository_for(Order).everything(status=order_status, page=paging.page, limit=paging.limit)
    return _order_page(page)


@order_router.get("/{order_id}", response_model=Envelope[OrderResponse])
async def get_order(order_id: str, actor: Actor = Depends(get_actor)) -> Envelope[OrderResponse]:
    order = load(Order, order_id, "Order not found")
    if not actor.is_admin and order.customer_id != actor.user_id:
        shop = load(Shop, order.shop_id)
        if shop.owner_id != actor.user_id:
            raise Forbidden("Not authorized to view this order")
    return Envelope[OrderResponse](data=OrderResponse.model_validate(order))


@order_router.put("/{order_id}/status", response_model=Envelope[OrderResponse])
async def update_order_status(
    order_id: str,
    body: UpdateStatusRequest,
    actor: Actor = Depends(shop_owner_or_admin),
) -> Envelope[OrderResponse]:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        actor_id=actor.user_id,
        actor_role=actor.role.value,
        note=body.note,
        estimated_delivery_time=body.estimated_delivery_time,
    )
    current_domain.process(command, asynchronous=False)
    return _order_envelope(order_id)


@order_router.put("/{order_id}/cancel", response_model=Envelope[OrderResponse])
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    actor: Actor = Depends(get_actor),
) -> Envelope[OrderResponse]:
    command = CancelOrder(order_id=order_id, actor_id=actor.user_id, reason=body.reason if body else None)
    current_domain.process(command, asynchronous=False)
    return _order_envelope(order_id)


@order_router.post("/{order_id}/rate", response_model=Envelope[OrderResponse])
async def rate_order(order_id: str, body: RatingRequest, actor: Actor = Depends(get_actor)) -> Envelope[OrderResponse]:
    command = RateOrder(order_id=order_id, actor_id=actor.user_id, rating=body.rating, review=body.review)
    current_domain.process(command, asynchronous=False)
    return _order_envelope(order_id)


# ---------------------------------------------------------------------------
# Notification Router
# ---------------------------------------------------------------------------
notification_router = APIRouter(prefix="/notifications", tags=["notifications"])


@notification_router.get("", response_model=PaginatedEnvelope[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    paging: Pagination = Depends(),
    actor: Actor = Depends(get_actor),
) -> PaginatedEnvelope[NotificationResponse]:
    result = current_domain.repository_for(Notification).for_recipient(
        actor.user_id, unread_only=unread_only, page=paging.page, limit=paging.limit
    )
    return PaginatedEnvelope[NotificationResponse](
        data=[NotificationResponse.model_validate(notification) for notification in result.items],
        pagination=PaginationSchema.from_page(result),
    )


@notification_router.get("/unread-count", response_model=Envelope[UnreadCountResponse])
async def unread_count(actor: Actor = Depends(get_actor)) -> Envelope[UnreadCountResponse]:
    count = current_domain.repository_for(Notification).unread_count(actor.user_id)
    return Envelope[UnreadCountResponse](data=UnreadCountResponse(unread_count=count))


@notification_router.put("/mark-all-read", response_model=MessageResponse)
async def mark_all_read(actor: Actor = Depends(get_actor)) -> MessageResponse:
    count = current_domain.process(MarkAllNotificationsRead(user_id=actor.user_id), asynchronous=False)
    return MessageResponse(message=f"{count} notifications marked as read")


@notification_router.put("/{notification_id}/read", response_model=Envelope[NotificationResponse])
async def mark_read(notification_id: str, actor: Actor = Depends(get_actor)) -> Envelope[NotificationResponse]:
    command = MarkNotificationRead(notification_id=notification_id, user_id=actor.user_id)
    current_domain.process(command, asynchronous=False)
    notification = current_domain.repository_for(Notification).get_for(notification_id, actor.user_id)
    return Envelope[NotificationResponse](data=NotificationResponse.model_validate(notification))


@notification_router.delete("/delete-read", response_model=MessageResponse)
async def delete_read(actor: Actor = Depends(get_actor)) -> MessageResponse:
    count = current_domain.process(DeleteReadNotifications(user_id=actor.user_id), asynchronous=False)
    return MessageResponse(message=f"{count} read notifications deleted")


@notification_router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(notification_id: str, actor: Actor = Depends(get_actor)) -> MessageResponse:
    command = DeleteNotification(notification_id=notification_id, user_id=actor.user_id)
    current_domain.process(command, asynchronous=False)
    return MessageResponse(message="Notification deleted")


@notification_router.post("/dispatch", response_model=Envelope[DispatchReportResponse])
async def dispatch_notifications(actor: Actor = Depends(admin_only)) -> Envelope[DispatchReportResponse]:
    report = current_domain.process(DispatchDueNotifications(), asynchronous=False)
    return Envelope[DispatchReportResponse](data=DispatchReportResponse.model_validate(report))


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


def _product_envelope(product_id: str) -> Envelope[ProductResponse]:
    product = load(Product, product_id, "Product not found")
    return Envelope[ProductResponse](data=ProductResponse.model_validate(product))


def _product_page(page: Page) -> PaginatedEnvelope[ProductResponse]:
    return PaginatedEnvelope[ProductResponse](
        data=[ProductResponse.model_validate(product) for product in page.items],
        pagination=PaginationSchema.from_page(page),
    )


@product_router.get("", response_model=PaginatedEnvelope[ProductResponse])
async def browse_products(
    shop: str | None = None,
    category: str | None = None,
    paging: Pagination = Depends(),
) -> PaginatedEnvelope[ProductResponse]:
    product_category = parse_category(category).value if category else None
    query = current_domain.repository_for(Product).browse(shop_id=shop, category=product_category)
    return _product_page(Page.of(query, page=paging.page, limit=paging.limit))


@product_router.post("", status_code=201, response_model=Envelope[ProductResponse])
async def add_product(body: AddProductRequest, actor: Actor = Depends(shop_owner_only)) -> Envelope[ProductResponse]:
    command = AddProduct(owner_id=actor.user_id, **body.model_dump())
    product_id = current_domain.process(command, asynchronous=False)
    return _product_envelope(product_id)


@product_router.get("/{product_id}", response_model=Envelope[ProductResponse])
async def get_product(product_id: str) -> Envelope[ProductResponse]:
    return _product_envelope(product_id)


@product_router.put("/{product_id}", response_model=Envelope[ProductResponse])
async def update_product(
    product_id: str, body: UpdateProductRequest, actor: Actor = Depends(shop_owner_only)
) -> Envelope[ProductResponse]:
    command = UpdateProduct(product_id=product_id, owner_id=actor.user_id, **body.model_dump(exclude_none=True))
    current_domain.process(command, asynchronous=False)
    return _product_envelope(product_id)


@product_router.put("/{product_id}/stock", response_model=Envelope[ProductResponse])
async def update_stock(
    product_id: str, body: UpdateStockRequest, actor: Actor = Depends(shop_owner_only)
) -> Envelope[ProductResponse]:
    command = UpdateStock(product_id=product_id, owner_id=actor.user_id, stock=body.stock)
    current_domain.process(command, asynchronous=False)
    return _product_envelope(product_id)


@product_router.put("/{product_id}/price", response_model=Envelope[ProductResponse])
async def change_price(
    product_id: str, body: ChangePriceRequest, actor: Actor = Depends(shop_owner_only)
) -> Envelope[ProductResponse]:
    command = ChangePrice(product_id=product_id, owner_id=actor.user_id, price=body.price)
    current_domain.process(command, asynchronous=False)
    return _product_envelope(product_id)


@product_router.put("/{product_id}/toggle-status", response_model=Envelope[ProductResponse])
async def toggle_product_status(product_id: str, actor: Actor = Depends(shop_owner_only)) -> Envelope[ProductResponse]:
    current_domain.process(ToggleProductStatus(product_id=product_id, owner_id=actor.user_id), asynchronous=False)
    return _product_envelope(product_id)


@product_router.post("/{product_id}/rating", response_model=Envelope[ProductResponse])
async def rate_product(
    product_id: str, body: RatingRequest, actor: Actor = Depends(get_actor)
) -> Envelope[ProductResponse]:
    command = RateProduct(product_id=product_id, user_id=actor.user_id, rating=body.rating, review=body.review)
    current_domain.process(command, asynchronous=False)
    return _product_envelope(product_id)


@product_router.post("/{product_id}/watch", response_model=MessageResponse)
async def watch_product(product_id: str, actor: Actor = Depends(get_actor)) -> MessageResponse:
    current_domain.process(WatchProduct(product_id=product_id, user_id=actor.user_id), asynchronous=False)
    return MessageResponse(message="Watching product")


@product_router.delete("/{product_id}/watch", response_model=MessageResponse)
async def unwatch_product(product_id: str, actor: Actor = Depends(get_actor)) -> MessageResponse:
    current_domain.process(UnwatchProduct(product_id=product_id, user_id=actor.user_id), asynchronous=False)
    return MessageResponse(message="Stopped watching product")


# ---------------------------------------------------------------------------
# Shop Router
# ---------------------------------------------------------------------------
shop_router = APIRouter(prefix="/shops", tags=["shops"])


def _shop_envelope(shop_id: str) -> Envelope[ShopResponse]:
    shop = load(Shop, shop_id, "Shop not found")
    return Envelope[ShopResponse](data=ShopResponse.model_validate(shop))


@shop_router.post("", status_code=201, response_model=Envelope[ShopResponse])
async def register_shop(body: RegisterShopRequest, actor: Actor = Depends(shop_owner_only)) -> Envelope[ShopResponse]:
    command = RegisterShop(owner_id=actor.user_id, name=body.name, description=body.description)
    shop_id = current_domain.process(command, asynchronous=False)
    return _shop_envelope(shop_id)


@shop_router.get("/{shop_id}", response_model=Envelope[ShopResponse])
async def get_shop(shop_id: str) -> Envelope[ShopResponse]:
    return _shop_envelope(shop_id)


@shop_router.get("/{shop_id}/products", response_model=PaginatedEnvelope[ProductResponse])
async def list_shop_products(
    shop_id: str,
    category: str | None = None,
    paging: Pagination = Depends(),
) -> PaginatedEnvelope[ProductResponse]:
    shop = load(Shop, shop_id, "Shop not found")
    product_category = parse_category(category).value if category else None
    query = current_domain.repository_for(Product).browse(shop_id=shop.id, category=product_category)
    return _product_page(Page.of(query, page=paging.page, limit=paging.limit))


@shop_router.post("/{shop_id}/rating", response_model=Envelope[ShopResponse])
async def rate_shop(shop_id: str, body: RatingRequest, actor: Actor = Depends(get_actor)) -> Envelope[ShopResponse]:
    command = RateShop(shop_id=shop_id, user_id=actor.user_id, rating=body.rating, review=body.review)
    current_domain.process(command, asynchronous=False)
    return _shop_envelope(shop_id)
