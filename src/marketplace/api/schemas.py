"""Pydantic request/response schemas for the LocalMart API.

These are external contracts, kept apart from the domain commands. Requests
use snake_case keys; responses are rendered in camelCase. Field
constraints the domain already enforces are left to the domain so that its
messages reach the client unchanged.
"""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from marketplace.notification.notification import NotificationChannel
from marketplace.product.product import StockStatus
from marketplace.shared.pagination import Page

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------
class PaginationSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_page: int
    total_pages: int
    total_items: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def from_page(cls, page: Page) -> "PaginationSchema":
        return cls(
            current_page=page.page,
            total_pages=page.total_pages,
            total_items=page.total,
            has_next_page=page.has_next,
            has_prev_page=page.has_prev,
        )


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


class PaginatedEnvelope(BaseModel, Generic[T]):
    success: bool = True
    data: list[T]
    pagination: PaginationSchema


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    street: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    latitude: float | None = None
    longitude: float | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class OrderLineRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)
    notes: str | None = None


class PlaceOrderRequest(BaseModel):
    items: list[OrderLineRequest]
    delivery_address: AddressSchema | None = None
    delivery_instructions: str | None = None
    payment_method: str = "cod"
    delivery_type: str = "home_delivery"
    order_notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-001", "quantity": 2}],
                    "delivery_address": {
                        "street": "12 MG Road",
                        "city": "Pune",
                        "state": "Maharashtra",
                        "pincode": "411001",
                    },
                    "payment_method": "cod",
                }
            ]
        }
    }


class UpdateStatusRequest(BaseModel):
    status: str
    note: str | None = None
    estimated_delivery_time: datetime | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class RatingRequest(BaseModel):
    rating: int
    review: str | None = None


# ---------------------------------------------------------------------------
# Catalogue Request Schemas
# ---------------------------------------------------------------------------
class RegisterShopRequest(BaseModel):
    name: str
    description: str | None = None


class AddProductRequest(BaseModel):
    name: str
    price: float
    unit: str
    category: str
    stock: int = 0
    min_stock: int = 5
    description: str | None = None
    original_price: float | None = None


class UpdateStockRequest(BaseModel):
    stock: int


class ChangePriceRequest(BaseModel):
    price: float


class UpdateProductRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    category: str | None = None
    unit: str | None = None
    price: float | None = None
    original_price: float | None = None
    min_stock: int | None = None
    stock: int | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class ResponseModel(BaseModel):
    """Read model built from domain objects and rendered with camelCase keys."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class OrderItemResponse(ResponseModel):
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    line_total: float
    notes: str | None = None


class StatusChangeResponse(ResponseModel):
    status: str
    actor_id: str | None = None
    note: str | None = None
    changed_at: datetime


class DeliveryAddressResponse(ResponseModel):
    street: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class OrderResponse(ResponseModel):
    id: str
    order_number: str
    customer_id: str
    shop_id: str
    status: str
    items: list[OrderItemResponse] = Field(validation_alias=AliasChoices("lines", "items"), serialization_alias="items")
    item_count: int
    subtotal: float
    delivery_fee: float
    total: float
    payment_method: str
    payment_status: str
    delivery_type: str
    delivery_address: DeliveryAddressResponse | None = None
    delivery_instructions: str | None = None
    order_notes: str | None = None
    estimated_delivery_time: datetime | None = None
    actual_delivery_time: datetime | None = None
    cancellation_reason: str | None = None
    rating: int | None = None
    review: str | None = None
    rated_at: datetime | None = None
    is_rated: bool
    status_history: list[StatusChangeResponse] = Field(
        validation_alias=AliasChoices("history", "statusHistory"), serialization_alias="statusHistory"
    )
    created_at: datetime
    updated_at: datetime


class StatusStatsResponse(ResponseModel):
    count: int
    total_amount: float


class ShopStatsResponse(ResponseModel):
    period_days: int
    since: datetime
    by_status: dict[str, StatusStatsResponse]
    total_orders: int
    total_revenue: float


class NotificationResponse(ResponseModel):
    id: str
    type: str = Field(validation_alias=AliasChoices("notification_type", "type"), serialization_alias="type")
    title: str
    message: str
    data: dict[str, Any]
    priority: str
    channels: list[NotificationChannel]
    is_read: bool
    read_at: datetime | None = None
    is_sent: bool
    sent_at: datetime | None = None
    scheduled_for: datetime | None = None
    expires_at: datetime
    created_at: datetime


class UnreadCountResponse(ResponseModel):
    unread_count: int


class DispatchReportResponse(ResponseModel):
    sent: int
    failed: int


class ProductResponse(ResponseModel):
    id: str
    shop_id: str
    name: str
    description: str | None = None
    category: str
    unit: str
    price: float
    original_price: float | None = None
    discount_percentage: int
    stock: int
    min_stock: int
    stock_status: StockStatus
    is_available: bool
    is_active: bool
    average_rating: float | None = None
    total_ratings: int
    total_sold: int
    created_at: datetime
    updated_at: datetime


class ShopResponse(ResponseModel):
    id: str
    owner_id: str
    name: str
    description: str | None = None
    is_active: bool
    average_rating: float | None = None
    total_ratings: int
    created_at: datetime
