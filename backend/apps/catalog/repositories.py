from typing import Iterable, List, Optional

from apps.common.repository import SoftDeleteRepository

from .models import Category, Image, Product, ProductCategory
from .pagination import Page, PageRequest, paginate
from .queries import ProductFilter, ProductQueryBuilder, product_read_queryset


class CategoryRepository(SoftDeleteRepository[Category]):
    def __init__(self):
        super().__init__(Category)

    def get_by_name(self, name: str) -> Optional[Category]:
        return self.queryset().filter(name=name).order_by("id").first()

    def page(self, page_request: PageRequest) -> Page[Category]:
        return paginate(
            self.queryset().order_by(*page_request.ordering()), page_request
        )

    def name_taken(self, name: str, exclude_id: Optional[int] = None) -> bool:
        qs = self.queryset().filter(name=name)
        if exclude_id is not None:
            qs = qs.exclude(id=exclude_id)
        return qs.exists()

    def resolve_ids(self, ids: Iterable[int]) -> List[Category]:
        """Live categories among ``ids``; unknown or deleted ids are dropped."""
        ids = list(ids or [])
        if not ids:
            return []
        return list(self.queryset().filter(id__in=ids).order_by("id"))


class ProductRepository(SoftDeleteRepository[Product]):
    def __init__(self, categories: Optional[CategoryRepository] = None):
        super().__init__(Product)
        self.query_builder = ProductQueryBuilder(categories or CategoryRepository())

    def queryset(self):
        """Live products with live categories and image prefetched to avoid N+1 during mapping."""
        return product_read_queryset()

    def search(self, filters: ProductFilter, page_request: PageRequest) -> Page[Product]:
        return paginate(self.query_builder.build(filters, page_request), page_request)

    def list_by_ids(self, ids: Iterable[int]):
        return self.queryset().filter(id__in=list(ids)).order_by("id")

    # --- Helper methods for service orchestration ---
    def update_scalar(self, product: Product, **fields) -> Product:
        dirty = []
        for k, v in fields.items():
            if v is not None:
                setattr(product, k, v)
                dirty.append(k)
        if dirty:
            product.save(update_fields=dirty + ["updated_at"])
        return product

    def replace_categories(self, product: Product, categories: Iterable[Category]) -> None:
        """Delete every association row of the product, then insert the new set."""
        ProductCategory.objects.filter(product=product).delete()
        ProductCategory.objects.bulk_create(
            [ProductCategory(product=product, category=c) for c in categories]
        )
        # Drop any stale prefetch so later reads see the new set
        getattr(product, "_prefetched_objects_cache", {}).pop("categories", None)

    def set_image(self, product: Product, image: Optional[Image]) -> Product:
        product.image = image
        product.save(update_fields=["image", "updated_at"])
        return product


class ImageRepository(SoftDeleteRepository[Image]):
    def __init__(self):
        super().__init__(Image)

    def find_by_product_id(self, product_id: int) -> Optional[Image]:
        return (
            self.queryset()
            .filter(product__id=product_id, product__deleted=False)
            .first()
        )
