"""Tests for the Shop aggregate."""

import pytest
from protean.exceptions import ValidationError

from marketplace.shop.shop import Shop


class TestShop:
    def test_create(self):
        shop = Shop.create(owner_id="owner-001", name="  Sharma General Store ")

        assert shop.name == "Sharma General Store"
        assert shop.is_active is True
        assert shop.total_ratings == 0
        assert shop.average_rating is None

    def test_name_is_required(self):
        with pytest.raises(ValidationError) as exc:
            Shop.create(owner_id="owner-001", name="")
        assert exc.value.messages == {"name": ["Shop name is required"]}

    def test_average_rating_is_rounded_to_one_decimal(self):
        shop = Shop.create(owner_id="owner-001", name="Sharma General Store")
        shop.apply_rating_summary(9, 2)
        assert shop.average_rating == 4.5
        shop.apply_rating_summary(13, 3)
        assert shop.average_rating == 4.3


class TestShopRatingEntries:
    def test_record_rating(self):
        shop = Shop.create(owner_id="owner-001", name="Sharma General Store")
        shop.record_rating("cust-001", 4, "Friendly staff")

        entry = shop.rating_by("cust-001")
        assert entry.rating == 4
        assert entry.review == "Friendly staff"

    def test_rating_again_replaces_the_entry(self):
        shop = Shop.create(owner_id="owner-001", name="Sharma General Store")
        first = shop.record_rating("cust-001", 2)
        second = shop.record_rating("cust-001", 5)

        assert len(shop.ratings) == 1
        assert shop.rating_by("cust-001").rating == 5
        assert second.created_at == first.created_at

    def test_unrated_user(self):
        shop = Shop.create(owner_id="owner-001", name="Sharma General Store")
        assert shop.rating_by("cust-001") is None
