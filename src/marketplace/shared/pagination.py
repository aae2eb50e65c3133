from dataclasses import dataclass
from math import ceil
from typing import Any

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass
class Page:
    items: list[Any]
    page: int
    limit: int
    total: int

    @classmethod
    def of(cls, query, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> "Page":
        """Run a repository query for one page of results."""
        results = query.offset((page - 1) * limit).limit(limit).all()
        return cls(items=list(results.items), page=page, limit=limit, total=results.total)

    @classmethod
    def from_list(cls, items: list[Any], page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> "Page":
        start = (page - 1) * limit
        return cls(items=items[start : start + limit], page=page, limit=limit, total=len(items))

    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1
