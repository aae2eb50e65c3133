from dataclasses import dataclass, field
from datetime import datetime, timedelta

from marketplace.domain import marketplace
from marketplace.order.order import Order, OrderStatus
from marketplace.shared.clock import as_utc, utc_now
from marketplace.shared.pagination import DEFAULT_PAGE_SIZE, Page


@dataclass
class StatusStats:
    count: int = 0
    total_amount: float = 0.0


@dataclass
class ShopStats:
    period_days: int
    since: datetime
    by_status: dict[str, StatusStats] = field(default_factory=dict)

    @property
    def total_orders(self) -> int:
        return sum(stats.count for stats in self.by_status.values())

    @property
    def total_revenue(self) -> float:
        delivered = self.by_status.get(OrderStatus.DELIVERED.value)
        return round(delivered.total_amount, 2) if delivered else 0.0


@marketplace.repository(part_of=Order)
class OrderRepository:
    def _listing(self, status=None, **criteria):
        if status is not None:
            criteria["status"] = status.value
        return self._dao.query.filter(**criteria).order_by("-created_at")

    def for_customer(self, customer_id, status=None, page=1, limit=DEFAULT_PAGE_SIZE) -> Page:
        return Page.of(self._listing(status, customer_id=customer_id), page, limit)

    def for_shop(self, shop_id, status=None, page=1, limit=DEFAULT_PAGE_SIZE) -> Page:
        return Page.of(self._listing(status, shop_id=shop_id), page, limit)

    def everything(self, status=None, page=1, limit=DEFAULT_PAGE_SIZE) -> Page:
        return Page.of(self._listing(status), page, limit)

    def stats_for_shop(self, shop_id, period_days=30, now=None) -> ShopStats:
        """Order counts and totals per status over the trailing ``period_days``."""
        since = as_utc(now or utc_now()) - timedelta(days=period_days)
        orders = self._dao.query.filter(shop_id=shop_id).all().items

        stats = ShopStats(period_days=period_days, since=since)
        for order in orders:
            if as_utc(order.created_at) < since:
                continue
            entry = stats.by_status.setdefault(order.status, StatusStats())
            entry.count += 1
            entry.total_amount = round(entry.total_amount + order.total, 2)
        return stats
