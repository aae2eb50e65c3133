"""Shop aggregate: a local shop and its rating summary.

The rating summary is kept as a cumulative sum (``rating``) and a count
(``total_ratings``); the average is derived from the two. Both fields are
only ever written by the rating aggregator's full recompute.
"""

from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from marketplace.domain import marketplace
from marketplace.exceptions import NotFound
from marketplace.shared.clock import utc_now
from marketplace.shared.validation import ErrorCollector, text


@marketplace.entity(part_of="Shop")
class ShopRating:
    """An explicit rating of a shop by one user, at most one per user."""

    user_id: Identifier(required=True)
    rating: Integer(required=True, min_value=1, max_value=5)
    review: String(max_length=500)
    created_at: DateTime(default=utc_now)
    updated_at: DateTime(default=utc_now)


@marketplace.aggregate
class Shop:
    owner_id: Identifier(required=True)
    name: String(required=True, max_length=100)
    description: String(max_length=500)
    is_active: Boolean(default=True)
    rating: Float(default=0.0)
    total_ratings: Integer(default=0)
    ratings: HasMany(ShopRating)
    created_at: DateTime(default=utc_now)

    @classmethod
    def create(cls, owner_id, name, description=None):
        errors = ErrorCollector()
        owner_id = errors.check("owner_id", text, owner_id, label="Owner", max_length=64, required=True)
        name = errors.check("name", text, name, label="Shop name", max_length=100, required=True)
        description = errors.check("description", text, description, label="Description", max_length=500)
        errors.raise_if_any()

        return cls(
            owner_id=owner_id,
            name=name,
            description=description,
            is_active=True,
            rating=0.0,
            total_ratings=0,
            created_at=utc_now(),
        )

    def rating_by(self, user_id):
        return next((entry for entry in self.ratings if entry.user_id == user_id), None)

    def record_rating(self, user_id, rating, review=None) -> ShopRating:
        """Store ``user_id``'s rating, replacing any earlier one."""
        now = utc_now()
        created_at = now
        existing = self.rating_by(user_id)
        if existing is not None:
            created_at = existing.created_at
            self.remove_ratings(existing)

        entry = ShopRating(user_id=user_id, rating=rating, review=review, created_at=created_at, updated_at=now)
        self.add_ratings(entry)
        return entry

    @property
    def average_rating(self) -> float | None:
        """Average star rating, or None while the shop is unrated."""
        if not self.total_ratings:
            return None
        return round(self.rating / self.total_ratings, 1)

    def apply_rating_summary(self, rating_sum, count) -> None:
        self.rating = float(rating_sum)
        self.total_ratings = count


@marketplace.repository(part_of=Shop)
class ShopRepository:
    def owned_by(self, owner_id) -> Shop:
        """The shop run by ``owner_id``."""
        shops = self._dao.query.filter(owner_id=owner_id).all().items
        if not shops:
            raise NotFound("No shop found for this user")
        return shops[0]

    def active(self):
        return self._dao.query.filter(is_active=True)
