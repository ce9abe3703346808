from typing import Iterable, List, Optional

from .dtos import CategoryDTO, ImageDTO, ProductDTO
from .models import Category, Image, Product


def _is_live(obj) -> bool:
    return obj is not None and not getattr(obj, "deleted", False)


class CategoryMapper:
    @staticmethod
    def to_dto(cat: Category) -> CategoryDTO:
        return CategoryDTO(id=cat.id, name=cat.name)

    @staticmethod
    def many_to_dto(categories: Iterable[Category]) -> List[CategoryDTO]:
        return [CategoryMapper.to_dto(c) for c in categories if _is_live(c)]


class ImageMapper:
    @staticmethod
    def to_dto(image: Optional[Image]) -> Optional[ImageDTO]:
        if not _is_live(image):
            return None
        return ImageDTO(
            id=image.id,
            archive_name=image.archive_name,
            original_name=image.original_name,
            content_type=image.content_type,
            size=image.size,
            url=image.url,
        )


class ProductMapper:
    @staticmethod
    def to_dto(product: Product) -> ProductDTO:
        # Deleted categories are hidden even when the association row remains
        categories = CategoryMapper.many_to_dto(product.categories.all())
        return ProductDTO(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            seller_id=product.seller_id,
            categories=sorted(categories, key=lambda c: c.id),
            image=ImageMapper.to_dto(getattr(product, "image", None)),
        )

    @staticmethod
    def many_to_dto(products: Iterable[Product]) -> List[ProductDTO]:
        return [ProductMapper.to_dto(p) for p in products]
