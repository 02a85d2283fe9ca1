from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

from ..core.constants import DEFAULT_PAGE, DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from ..core.exceptions import ValidationError

T = TypeVar("T")


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int

    def to_dict(self) -> dict:
        return {"page": self.page, "limit": self.limit, "total": self.total, "totalPages": self.total_pages}


@dataclass(frozen=True)
class Page(Generic[T]):
    data: List[T] = field(default_factory=list)
    pagination: Pagination = Pagination(page=DEFAULT_PAGE, limit=DEFAULT_PAGE_LIMIT, total=0, total_pages=0)


def normalize_paging(page: int | None, limit: int | None) -> tuple[int, int]:
    page = DEFAULT_PAGE if page is None else int(page)
    limit = DEFAULT_PAGE_LIMIT if limit is None else int(limit)
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > MAX_PAGE_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")
    return page, limit


def build_page(items: list, *, page: int, limit: int, total: int) -> Page:
    return Page(
        data=list(items),
        pagination=Pagination(page=page, limit=limit, total=int(total), total_pages=math.ceil(int(total) / limit)),
    )
