"""Product aggregate: a shop's catalogue entry and its available stock.

``is_available`` is derived from ``stock`` and recomputed by every method
that moves stock (reservation, release, restock), keeping the two in step.
Products are never hard-deleted; they are deactivated.
"""

import math
from enum import Enum

from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from marketplace.domain import marketplace
from marketplace.exceptions import InsufficientStock, Unavailable
from marketplace.shared.clock import utc_now
from marketplace.shared.validation import ErrorCollector, choice, integer, number, text


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ProductCategory(Enum):
    GROCERY = "grocery"
    BEVERAGES = "beverages"
    SNACKS = "snacks"
    DAIRY = "dairy"
    FRUITS_VEGETABLES = "fruits_vegetables"
    MEAT_FISH = "meat_fish"
    BAKERY = "bakery"
    PHARMACY = "pharmacy"
    PERSONAL_CARE = "personal_care"
    HOUSEHOLD = "household"
    ELECTRONICS = "electronics"
    CLOTHING = "clothing"
    STATIONERY = "stationery"
    HARDWARE = "hardware"
    COSMETICS = "cosmetics"
    OTHER = "other"


class ProductUnit(Enum):
    KG = "kg"
    G = "g"
    L = "l"
    ML = "ml"
    PCS = "pcs"
    PACK = "pack"
    DOZEN = "dozen"
    BOTTLE = "bottle"
    CAN = "can"
    BOX = "box"
    BAG = "bag"
    PIECE = "piece"


class StockStatus(Enum):
    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    IN_STOCK = "in_stock"


DEFAULT_MIN_STOCK = 5


def percent_off(old_price: float, new_price: float) -> int:
    """Whole-number percentage by which ``new_price`` undercuts ``old_price``, halves rounded up."""
    if not old_price or new_price >= old_price:
        return 0
    return math.floor((old_price - new_price) / old_price * 100 + 0.5)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Product")
class ProductRating:
    """One user's rating of a product; a repeat submission replaces it."""

    user_id: Identifier(required=True)
    rating: Integer(required=True, min_value=1, max_value=5)
    review: String(max_length=500)
    created_at: DateTime(default=utc_now)
    updated_at: DateTime(default=utc_now)


@marketplace.entity(part_of="Product")
class ProductWatch:
    """A customer waiting to hear about restocks and price drops of a product."""

    user_id: Identifier(required=True)
    created_at: DateTime(default=utc_now)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Product:
    shop_id: Identifier(required=True)
    name: String(required=True, max_length=100)
    description: String(max_length=500)
    category: String(max_length=30, choices=ProductCategory, default=ProductCategory.OTHER.value)
    unit: String(max_length=10, choices=ProductUnit, default=ProductUnit.PCS.value)
    price: Float(required=True, min_value=0)
    original_price: Float(min_value=0)
    stock: Integer(min_value=0, default=0)
    min_stock: Integer(min_value=0, default=DEFAULT_MIN_STOCK)
    is_available: Boolean(default=False)
    is_active: Boolean(default=True)
    rating: Float(default=0.0)
    total_ratings: Integer(default=0)
    total_sold: Integer(default=0)
    ratings: HasMany(ProductRating)
    watchers: HasMany(ProductWatch)
    created_at: DateTime(default=utc_now)
    updated_at: DateTime(default=utc_now)

    @classmethod
    def create(
        cls,
        shop_id,
        name,
        price,
        unit,
        category,
        stock=0,
        min_stock=DEFAULT_MIN_STOCK,
        description=None,
        original_price=None,
    ):
        errors = ErrorCollector()
        name = errors.check("name", text, name, label="Product name", max_length=100, required=True)
        description = errors.check("description", text, description, label="Description", max_length=500)
        price = errors.check("price", number, price, label="Price", minimum=0)
        if original_price is not None:
            original_price = errors.check("original_price", number, original_price, label="Original price", minimum=0)
        unit = errors.check("unit", choice, unit, ProductUnit, label="Unit")
        category = errors.check("category", choice, category, ProductCategory, label="Category")
        stock = errors.check("stock", integer, stock, label="Stock", minimum=0)
        min_stock = errors.check("min_stock", integer, min_stock, label="Minimum stock", minimum=0)
        errors.raise_if_any()

        now = utc_now()
        return cls(
            shop_id=shop_id,
            name=name,
            description=description,
            category=category.value,
            unit=unit.value,
            price=price,
            original_price=original_price,
            stock=stock,
            min_stock=min_stock,
            is_available=stock > 0,
            is_active=True,
            rating=0.0,
            total_ratings=0,
            total_sold=0,
            created_at=now,
            updated_at=now,
        )

    def update_details(self, name=None, description=None, category=None, unit=None, original_price=None, min_stock=None):
        """Apply catalogue edits; fields left as None are unchanged."""
        errors = ErrorCollector()
        if name is not None:
            name = errors.check("name", text, name, label="Product name", max_length=100, required=True)
        if description is not None:
            description = errors.check("description", text, description, label="Description", max_length=500)
        if category is not None:
            category = errors.check("category", choice, category, ProductCategory, label="Category")
        if unit is not None:
            unit = errors.check("unit", choice, unit, ProductUnit, label="Unit")
        if original_price is not None:
            original_price = errors.check("original_price", number, original_price, label="Original price", minimum=0)
        if min_stock is not None:
            min_stock = errors.check("min_stock", integer, min_stock, label="Minimum stock", minimum=0)
        errors.raise_if_any()

        if name is not None:
            self.name = name
        if description is not None:
            self.description = description
        if category is not None:
            self.category = category.value
        if unit is not None:
            self.unit = unit.value
        if original_price is not None:
            self.original_price = original_price
        if min_stock is not None:
            self.min_stock = min_stock
        self.updated_at = utc_now()

    # -----------------------------------------------------------------------
    # Stock
    # -----------------------------------------------------------------------
    def _set_stock(self, value) -> None:
        self.stock = value
        self.is_available = value > 0

    def check_reservable(self, quantity) -> None:
        if not self.is_active:
            raise Unavailable(f"Product {self.name} is not available")
        if self.stock < quantity:
            raise InsufficientStock(
                f"Insufficient stock for {self.name}. Available: {self.stock}",
                product_id=self.id,
                available=self.stock,
            )

    def reserve(self, quantity) -> float:
        """Take ``quantity`` units out of stock, returning the unit price they sold at."""
        self.check_reservable(quantity)
        unit_price = self.price
        self._set_stock(self.stock - quantity)
        self.total_sold = (self.total_sold or 0) + quantity
        self.updated_at = utc_now()
        return unit_price

    def release(self, quantity) -> None:
        self._set_stock(self.stock + quantity)
        self.total_sold = max(0, (self.total_sold or 0) - quantity)
        self.updated_at = utc_now()

    def set_stock(self, new_stock) -> int:
        """Overwrite the stock level, returning the previous one."""
        errors = ErrorCollector()
        new_stock = errors.check("stock", integer, new_stock, label="Stock", minimum=0)
        errors.raise_if_any()

        previous = self.stock
        self._set_stock(new_stock)
        self.updated_at = utc_now()
        return previous

    @property
    def stock_status(self) -> StockStatus:
        if self.stock == 0:
            return StockStatus.OUT_OF_STOCK
        if self.stock <= self.min_stock:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK

    # -----------------------------------------------------------------------
    # Pricing and status
    # -----------------------------------------------------------------------
    def change_price(self, new_price) -> float:
        """Set a new price, returning the old one."""
        errors = ErrorCollector()
        new_price = errors.check("price", number, new_price, label="Price", minimum=0)
        errors.raise_if_any()

        old_price = self.price
        self.price = new_price
        self.updated_at = utc_now()
        return old_price

    @property
    def discount_percentage(self) -> int:
        if self.original_price is None:
            return 0
        return percent_off(self.original_price, self.price)

    def toggle_active(self) -> bool:
        self.is_active = not self.is_active
        self.updated_at = utc_now()
        return self.is_active

    # -----------------------------------------------------------------------
    # Watchers
    # -----------------------------------------------------------------------
    def watcher(self, user_id):
        return next((entry for entry in self.watchers if entry.user_id == user_id), None)

    def watch(self, user_id) -> bool:
        """Start watching; returns False when ``user_id`` already watches."""
        if self.watcher(user_id) is not None:
            return False
        self.add_watchers(ProductWatch(user_id=user_id, created_at=utc_now()))
        return True

    def unwatch(self, user_id) -> bool:
        entry = self.watcher(user_id)
        if entry is None:
            return False
        self.remove_watchers(entry)
        return True

    @property
    def watcher_ids(self) -> list[str]:
        return [entry.user_id for entry in sorted(self.watchers, key=lambda entry: entry.created_at)]

    # -----------------------------------------------------------------------
    # Ratings
    # -----------------------------------------------------------------------
    def rating_by(self, user_id):
        return next((entry for entry in self.ratings if entry.user_id == user_id), None)

    def record_rating(self, user_id, rating, review=None) -> ProductRating:
        """Store ``user_id``'s rating, replacing any earlier one."""
        now = utc_now()
        created_at = now
        existing = self.rating_by(user_id)
        if existing is not None:
            created_at = existing.created_at
            self.remove_ratings(existing)

        entry = ProductRating(user_id=user_id, rating=rating, review=review, created_at=created_at, updated_at=now)
        self.add_ratings(entry)
        return entry

    @property
    def average_rating(self) -> float | None:
        if not self.total_ratings:
            return None
        return round(self.rating / self.total_ratings, 1)

    def apply_rating_summary(self, rating_sum, count) -> None:
        self.rating = float(rating_sum)
        self.total_ratings = count


def parse_category(value) -> ProductCategory:
    errors = ErrorCollector()
    category = errors.check("category", choice, value, ProductCategory, label="Category")
    errors.raise_if_any()
    return category


@marketplace.repository(part_of=Product)
class ProductRepository:
    def browse(self, shop_id=None, category=None, include_inactive=False):
        """Query over catalogue entries, newest first."""
        criteria = {}
        if shop_id is not None:
            criteria["shop_id"] = shop_id
        if category is not None:
            criteria["category"] = category
        if not include_inactive:
            criteria["is_active"] = True
        return self._dao.query.filter(**criteria).order_by("-created_at")
