"""Product search: optional name / category / seller predicates over live products."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from django.db.models import Prefetch, Q, QuerySet

from apps.api.exceptions import EntityNotFound
from apps.common import get_logger

from .models import Category, Product
from .pagination import PageRequest
from .protocols import CategoryLookupProtocol

logger = get_logger(__name__).bind(component="catalog", layer="query")


@dataclass(frozen=True)
class ProductFilter:
    name: Optional[str] = None
    category: Optional[str] = None
    seller_id: Optional[int] = None

    @classmethod
    def from_query_params(cls, params) -> "ProductFilter":
        name = (params.get("name") or "").strip()
        category = (params.get("category") or "").strip()
        return cls(name=name or None, category=category or None)

    def for_seller(self, seller_id: int) -> "ProductFilter":
        return replace(self, seller_id=seller_id)


def product_read_queryset() -> QuerySet:
    """Live products with their live categories and image loaded up front."""
    return (
        Product.objects.active()
        .select_related("image")
        .prefetch_related(
            Prefetch("categories", queryset=Category.objects.active().order_by("id"))
        )
    )


class ProductQueryBuilder:
    """
    Builds a single product queryset whatever combination of filters is set.

    The name filter is a ``LIKE '%name%'`` substring match, the seller filter an
    exact match. The category filter is resolved first against live categories
    by exact name; an unknown category raises ``EntityNotFound`` rather than
    returning an empty page. Results are ordered by the requested sort with
    ascending id as tie-break so pages never overlap.
    """

    def __init__(self, categories: CategoryLookupProtocol):
        self.categories = categories

    def build(
        self,
        filters: ProductFilter,
        page_request: Optional[PageRequest] = None,
        *,
        base: Optional[QuerySet] = None,
    ) -> QuerySet:
        queryset = base if base is not None else product_read_queryset()
        predicate = Q()
        if filters.name:
            predicate &= Q(name__contains=filters.name)
        if filters.seller_id is not None:
            predicate &= Q(seller_id=filters.seller_id)
        if filters.category is not None:
            category = self._resolve_category(filters.category)
            predicate &= Q(categories=category)
        ordering = page_request.ordering() if page_request else ["id"]
        logger.debug(
            "Built product query",
            name=filters.name,
            category=filters.category,
            seller_id=filters.seller_id,
            ordering=ordering,
        )
        return queryset.filter(predicate).order_by(*ordering)

    def _resolve_category(self, name: str) -> Category:
        category = self.categories.get_by_name(name)
        if category is None:
            logger.info("Category filter did not resolve", category=name)
            raise EntityNotFound("Category not found", field="category")
        return category
