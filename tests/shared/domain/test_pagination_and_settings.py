"""Tests for page arithmetic and the domain's custom settings."""

import pytest
from protean.utils.globals import current_domain

from marketplace.shared.pagination import DEFAULT_PAGE_SIZE, Page


class TestPage:
    @pytest.mark.parametrize(
        "page, limit, total, pages, has_next, has_prev",
        [
            (1, 10, 0, 0, False, False),
            (1, 10, 10, 1, False, False),
            (1, 10, 11, 2, True, False),
            (2, 10, 11, 2, False, True),
        ],
    )
    def test_navigation(self, page, limit, total, pages, has_next, has_prev):
        result = Page(items=[], page=page, limit=limit, total=total)
        assert result.total_pages == pages
        assert result.has_next is has_next
        assert result.has_prev is has_prev

    def test_default_page_size(self):
        assert DEFAULT_PAGE_SIZE == 20

    def test_from_list_slices_one_page(self):
        result = Page.from_list(list(range(45)), page=3, limit=20)

        assert result.items == [40, 41, 42, 43, 44]
        assert result.total == 45
        assert result.total_pages == 3
        assert result.has_next is False


class TestCustomSettings:
    def test_delivery_and_notification_settings(self):
        custom = current_domain.config["custom"]

        assert custom["DELIVERY_FEE"] == 50.0
        assert custom["FREE_DELIVERY_THRESHOLD"] == 500.0
        assert custom["NOTIFICATION_TTL_DAYS"] == 30
        assert custom["CORS_ORIGINS"] == ["*"]

    def test_tests_run_on_the_memory_provider(self):
        assert current_domain.providers["default"].conn_info["provider"] == "memory"
