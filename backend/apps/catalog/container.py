from __future__ import annotations

from typing import Optional

from .repositories import CategoryRepository, ImageRepository, ProductRepository
from .services import CategoryService, ImageService, ProductService
from .storage import ImageStorage


def build_category_service() -> CategoryService:
    return CategoryService(categories=CategoryRepository())


def build_product_service() -> ProductService:
    categories = CategoryRepository()
    return ProductService(
        products=ProductRepository(categories=categories),
        categories=categories,
    )


def build_image_service(*, storage: Optional[ImageStorage] = None) -> ImageService:
    return ImageService(
        images=ImageRepository(),
        products=build_product_service(),
        storage=storage or ImageStorage(),
    )
