from __future__ import annotations

from typing import IO, Iterable, List, Optional, Protocol, TYPE_CHECKING

from .models import Category, Image, Product

if TYPE_CHECKING:
    from .pagination import Page, PageRequest
    from .queries import ProductFilter
    from .storage import StoredImage


class CategoryLookupProtocol(Protocol):
    def get_by_name(self, name: str) -> Optional[Category]:
        ...


class CategoryRepositoryProtocol(CategoryLookupProtocol, Protocol):
    def get(self, **filters) -> Optional[Category]:
        ...

    def page(self, page_request: "PageRequest") -> "Page[Category]":
        ...

    def create(self, **data) -> Category:
        ...

    def update(self, obj: Category, **data) -> Category:
        ...

    def delete(self, obj: Category) -> None:
        ...

    def name_taken(self, name: str, exclude_id: Optional[int] = None) -> bool:
        ...

    def resolve_ids(self, ids: Iterable[int]) -> List[Category]:
        ...


class ProductRepositoryProtocol(Protocol):
    def get(self, **filters) -> Optional[Product]:
        ...

    def exists(self, **filters) -> bool:
        ...

    def search(
        self, filters: "ProductFilter", page_request: "PageRequest"
    ) -> "Page[Product]":
        ...

    def list_by_ids(self, ids: Iterable[int]) -> Iterable[Product]:
        ...

    def create(self, **data) -> Product:
        ...

    def update_scalar(self, product: Product, **fields) -> Product:
        ...

    def replace_categories(self, product: Product, categories: Iterable[Category]) -> None:
        ...

    def set_image(self, product: Product, image: Optional[Image]) -> Product:
        ...

    def delete(self, product: Product) -> None:
        ...


class ImageRepositoryProtocol(Protocol):
    def find_by_product_id(self, product_id: int) -> Optional[Image]:
        ...

    def create(self, **data) -> Image:
        ...

    def delete(self, image: Image) -> None:
        ...


class ImageStorageProtocol(Protocol):
    def save(self, name: str, content) -> str:
        ...

    def delete(self, name: str) -> bool:
        ...

    def size(self, name: str) -> int:
        ...

    def open(self, name: str) -> "StoredImage":
        ...

    def url(self, name: str) -> str:
        ...
