from __future__ import annotations

from dataclasses import dataclass
from math import ceil
from typing import Callable, Generic, List, Mapping, Optional, Tuple, TypeVar

from rest_framework.exceptions import ValidationError

T = TypeVar("T")
R = TypeVar("R")

# Items per page when the client does not send ?size
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Public sort keys -> model fields
PRODUCT_SORT_FIELDS = {
    "id": "id",
    "name": "name",
    "price": "price",
    "sellerId": "seller_id",
    "createdAt": "created_at",
}
CATEGORY_SORT_FIELDS = {
    "id": "id",
    "name": "name",
    "createdAt": "created_at",
}


@dataclass(frozen=True)
class SortOrder:
    field: str
    descending: bool = False

    def as_ordering(self) -> str:
        return f"-{self.field}" if self.descending else self.field


@dataclass(frozen=True)
class PageRequest:
    """Zero-based page index, page size and optional sort orders."""

    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    sort: Tuple[SortOrder, ...] = ()

    def __post_init__(self):
        if self.page < 0:
            raise ValueError("page must be >= 0")
        if self.size <= 0:
            raise ValueError("size must be > 0")

    @property
    def offset(self) -> int:
        return self.page * self.size

    def ordering(self, tiebreak: str = "id") -> List[str]:
        ordering = [order.as_ordering() for order in self.sort]
        if tiebreak not in {order.field for order in self.sort}:
            ordering.append(tiebreak)
        return ordering

    @classmethod
    def from_query_params(
        cls,
        params,
        *,
        sort_fields: Mapping[str, str],
        default_size: int = DEFAULT_PAGE_SIZE,
    ) -> "PageRequest":
        """Build a request from ``?page=0&size=20&sort=name,desc`` style params."""
        errors = {}
        page = _parse_int(params.get("page"), 0)
        if page is None or page < 0:
            errors["page"] = ["page must be an integer >= 0"]
        size = _parse_int(params.get("size"), default_size)
        if size is None or size <= 0:
            errors["size"] = ["size must be an integer > 0"]
        elif size > MAX_PAGE_SIZE:
            size = MAX_PAGE_SIZE
        raw_sorts = params.getlist("sort") if hasattr(params, "getlist") else []
        sort, sort_errors = _parse_sort(raw_sorts, sort_fields)
        if sort_errors:
            errors["sort"] = sort_errors
        if errors:
            raise ValidationError(errors)
        return cls(page=page, size=size, sort=sort)


@dataclass
class Page(Generic[T]):
    content: List[T]
    total_elements: int
    page: int
    size: int

    @property
    def total_pages(self) -> int:
        return ceil(self.total_elements / self.size) if self.size else 0

    @property
    def number_of_elements(self) -> int:
        return len(self.content)

    @property
    def first(self) -> bool:
        return self.page == 0

    @property
    def last(self) -> bool:
        return self.page >= self.total_pages - 1

    @property
    def empty(self) -> bool:
        return not self.content

    def map(self, fn: Callable[[T], R]) -> "Page[R]":
        return Page(
            content=[fn(item) for item in self.content],
            total_elements=self.total_elements,
            page=self.page,
            size=self.size,
        )


def paginate(queryset, page_request: PageRequest) -> Page:
    """Slice an ordered queryset into a page; ``total_elements`` is a real COUNT."""
    total = queryset.count()
    start = page_request.offset
    content = list(queryset[start : start + page_request.size]) if start < total else []
    return Page(
        content=content,
        total_elements=total,
        page=page_request.page,
        size=page_request.size,
    )


def _parse_int(raw: Optional[str], default: int) -> Optional[int]:
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _parse_sort(raw_sorts, sort_fields: Mapping[str, str]):
    orders: List[SortOrder] = []
    errors: List[str] = []
    for raw in raw_sorts:
        if not raw:
            continue
        name, _, direction = raw.partition(",")
        name = name.strip()
        direction = direction.strip().lower() or "asc"
        if name not in sort_fields:
            allowed = ", ".join(sorted(sort_fields))
            errors.append(f"Unsupported sort field '{name}'. Allowed: {allowed}")
            continue
        if direction not in ("asc", "desc"):
            errors.append(f"Sort direction must be 'asc' or 'desc', got '{direction}'")
            continue
        orders.append(SortOrder(sort_fields[name], descending=direction == "desc"))
    return tuple(orders), errors
