from __future__ import annotations

import os
import re
import secrets
from datetime import datetime
from functools import partial
from typing import Any, Dict, Iterable, List, Optional, Union

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.api.exceptions import ConflictError, EntityNotFound
from apps.common import get_logger

from .commands import CategoryCommand, ProductCreateCommand, ProductUpdateCommand
from .dtos import CategoryDTO, ImageDTO, ProductDTO
from .exceptions import ImageStorageError, InvalidImage
from .mappers import CategoryMapper, ImageMapper, ProductMapper
from .models import Image, Product
from .pagination import Page, PageRequest
from .protocols import (
    CategoryRepositoryProtocol,
    ImageRepositoryProtocol,
    ImageStorageProtocol,
    ProductRepositoryProtocol,
)
from .queries import ProductFilter
from .storage import StoredImage

logger = get_logger(__name__).bind(component="catalog", layer="service")

ARCHIVE_TIMESTAMP_FORMAT = "%Y-%m-%d-%H-%M-%S"
_EXTENSION_RE = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


class CategoryService:
    def __init__(self, categories: CategoryRepositoryProtocol):
        self.categories = categories
        self.logger = logger.bind(service="CategoryService")

    def _require(self, category_id: int):
        category = self.categories.get(id=category_id)
        if category is None:
            self.logger.info("Category not found", category_id=category_id)
            raise EntityNotFound("Category not found")
        return category

    def list_categories(self, page_request: PageRequest) -> Page[CategoryDTO]:
        self.logger.debug(
            "Listing categories", page=page_request.page, size=page_request.size
        )
        return self.categories.page(page_request).map(CategoryMapper.to_dto)

    def get_category(self, category_id: int) -> CategoryDTO:
        self.logger.debug("Fetching category", category_id=category_id)
        return CategoryMapper.to_dto(self._require(category_id))

    def create_category(
        self, data: Union[Dict[str, Any], CategoryCommand]
    ) -> CategoryDTO:
        cmd = data if isinstance(data, CategoryCommand) else CategoryCommand.from_raw(data)
        self.logger.info("Creating category", name=cmd.name)
        self._ensure_name_available(cmd.name)
        try:
            with transaction.atomic():
                category = self.categories.create(name=cmd.name)
        except IntegrityError as exc:
            # Lost a race against a concurrent insert of the same name
            raise ConflictError(
                f"Category '{cmd.name}' already exists", field="name"
            ) from exc
        self.logger.info("Category created", category_id=category.id)
        return CategoryMapper.to_dto(category)

    def update_category(
        self, category_id: int, data: Union[Dict[str, Any], CategoryCommand]
    ) -> CategoryDTO:
        cmd = data if isinstance(data, CategoryCommand) else CategoryCommand.from_raw(data)
        self.logger.info("Updating category", category_id=category_id)
        category = self._require(category_id)
        self._ensure_name_available(cmd.name, exclude_id=category.id)
        try:
            with transaction.atomic():
                category = self.categories.update(category, name=cmd.name)
        except IntegrityError as exc:
            raise ConflictError(
                f"Category '{cmd.name}' already exists", field="name"
            ) from exc
        self.logger.info("Category updated", category_id=category_id)
        return CategoryMapper.to_dto(category)

    def delete_category(self, category_id: int) -> None:
        self.logger.info("Deleting category", category_id=category_id)
        category = self._require(category_id)
        self.categories.delete(category)
        self.logger.info("Category deleted", category_id=category_id)

    def _ensure_name_available(self, name: str, exclude_id: Optional[int] = None):
        if self.categories.name_taken(name, exclude_id=exclude_id):
            self.logger.info("Category name already taken", name=name)
            raise ConflictError(f"Category '{name}' already exists", field="name")


class ProductService:
    def __init__(
        self,
        products: ProductRepositoryProtocol,
        categories: CategoryRepositoryProtocol,
    ):
        self.products = products
        self.categories = categories
        self.logger = logger.bind(service="ProductService")

    def _require(self, product_id: int) -> Product:
        product = self.products.get(id=product_id)
        if product is None:
            self.logger.info("Product not found", product_id=product_id)
            raise EntityNotFound("Product not found")
        return product

    def _resolve_categories(self, category_ids: Iterable[int]):
        categories = self.categories.resolve_ids(category_ids)
        if not categories:
            self.logger.info(
                "No category could be resolved", category_ids=list(category_ids)
            )
            raise EntityNotFound("Category not found", field="categoryIds")
        return categories

    def exists(self, product_id: int) -> bool:
        return self.products.exists(id=product_id)

    def list_products(
        self, filters: ProductFilter, page_request: PageRequest
    ) -> Page[ProductDTO]:
        self.logger.debug(
            "Listing products",
            name=filters.name,
            category=filters.category,
            seller_id=filters.seller_id,
            page=page_request.page,
            size=page_request.size,
        )
        return self.products.search(filters, page_request).map(ProductMapper.to_dto)

    def list_products_by_seller(
        self, seller_id: int, filters: ProductFilter, page_request: PageRequest
    ) -> Page[ProductDTO]:
        return self.list_products(filters.for_seller(seller_id), page_request)

    def list_products_by_ids(self, ids: Iterable[int]) -> List[ProductDTO]:
        ids = list(ids or [])
        self.logger.debug("Listing products by ids", count=len(ids))
        if not ids:
            return []
        return ProductMapper.many_to_dto(self.products.list_by_ids(ids))

    def get_product(self, product_id: int) -> ProductDTO:
        self.logger.debug("Fetching product", product_id=product_id)
        return ProductMapper.to_dto(self._require(product_id))

    def create_product(
        self, data: Union[Dict[str, Any], ProductCreateCommand]
    ) -> ProductDTO:
        cmd = (
            data
            if isinstance(data, ProductCreateCommand)
            else ProductCreateCommand.from_raw(data)
        )
        self.logger.info(
            "Creating product", name=cmd.name, seller_id=cmd.seller_id
        )
        categories = self._resolve_categories(cmd.category_ids)
        with transaction.atomic():
            product: Product = self.products.create(
                name=cmd.name,
                description=cmd.description,
                price=cmd.price,
                seller_id=cmd.seller_id,
            )
            self.products.replace_categories(product, categories)
        self.logger.info("Product created", product_id=product.id)
        return ProductMapper.to_dto(self._require(product.id))

    def update_product(
        self, product_id: int, data: Union[Dict[str, Any], ProductUpdateCommand]
    ) -> ProductDTO:
        cmd = (
            data
            if isinstance(data, ProductUpdateCommand)
            else ProductUpdateCommand.from_raw(product_id, data)
        )
        self.logger.info(
            "Updating product",
            product_id=product_id,
            replaces_categories=cmd.replaces_categories,
        )
        product = self._require(product_id)
        categories = None
        if cmd.replaces_categories:
            categories = self._resolve_categories(cmd.category_ids)
        with transaction.atomic():
            self.products.update_scalar(product, **cmd.scalar_fields())
            if categories is not None:
                self.products.replace_categories(product, categories)
        self.logger.info("Product updated", product_id=product_id)
        return ProductMapper.to_dto(self._require(product_id))

    def delete_product(self, product_id: int) -> None:
        self.logger.info("Deleting product", product_id=product_id)
        product = self._require(product_id)
        self.products.delete(product)
        self.logger.info("Product deleted", product_id=product_id)

    # Image pointer management, driven by ImageService
    def attach_image(self, product_id: int, image: Image) -> Product:
        product = self._require(product_id)
        self.logger.debug("Attaching image", product_id=product_id, image_id=image.id)
        return self.products.set_image(product, image)

    def detach_image(self, product_id: int) -> Product:
        product = self._require(product_id)
        self.logger.debug("Detaching image", product_id=product_id)
        return self.products.set_image(product, None)


def generate_archive_name(
    product_id: int, original_name: Optional[str], now: Optional[datetime] = None
) -> str:
    """
    Storage file name for a product image:
    ``{productId}-{YYYY-MM-DD-HH-MM-SS}-{8 hex chars}{.ext}``.

    The extension is taken from the uploaded file name and dropped when it is
    not a plain alphanumeric suffix.
    """
    ext = os.path.splitext(os.path.basename(original_name or ""))[1].lower()
    if not _EXTENSION_RE.match(ext):
        ext = ""
    stamp = (now or timezone.now()).strftime(ARCHIVE_TIMESTAMP_FORMAT)
    return f"{product_id}-{stamp}-{secrets.token_hex(4)}{ext}"


class ImageService:
    def __init__(
        self,
        images: ImageRepositoryProtocol,
        products: ProductService,
        storage: ImageStorageProtocol,
    ):
        self.images = images
        self.products = products
        self.storage = storage
        self.logger = logger.bind(service="ImageService")

    def _require_product(self, product_id: int) -> None:
        if not self.products.exists(product_id):
            self.logger.info("Product not found", product_id=product_id)
            raise EntityNotFound("Product not found")

    def get_by_product_id(self, product_id: int) -> ImageDTO:
        self.logger.debug("Fetching image by product", product_id=product_id)
        self._require_product(product_id)
        image = self.images.find_by_product_id(product_id)
        if image is None:
            self.logger.info("Product has no image", product_id=product_id)
            raise EntityNotFound("Product image not found")
        return ImageMapper.to_dto(image)

    def upload(
        self,
        product_id: int,
        content,
        file_name: str,
        content_type: Optional[str],
        size: Optional[int] = None,
    ) -> ImageDTO:
        """
        Store a new image for the product, replacing any current one.

        The file is written first; the row swap runs in one transaction and the
        old file is removed only after commit. A failed transaction removes the
        freshly stored file so the previous image stays intact.
        """
        self.logger.info(
            "Uploading product image",
            product_id=product_id,
            file=file_name,
            content_type=content_type,
        )
        self._require_product(product_id)
        if not content_type or not content_type.lower().startswith("image/"):
            self.logger.info(
                "Rejected non-image upload",
                product_id=product_id,
                content_type=content_type,
            )
            raise InvalidImage(field="file")

        archive_name = self.storage.save(
            generate_archive_name(product_id, file_name), content
        )
        try:
            with transaction.atomic():
                previous = self.images.find_by_product_id(product_id)
                if previous is not None:
                    self.images.delete(previous)
                    self.products.detach_image(product_id)
                image = self.images.create(
                    archive_name=archive_name,
                    original_name=file_name or archive_name,
                    content_type=content_type,
                    size=size if size is not None else self.storage.size(archive_name),
                    url=self.storage.url(archive_name),
                )
                self.products.attach_image(product_id, image)
                if previous is not None:
                    transaction.on_commit(
                        partial(self._remove_file, previous.archive_name)
                    )
        except Exception:
            self.logger.warning(
                "Image swap failed, removing stored file",
                product_id=product_id,
                file=archive_name,
            )
            self._remove_file(archive_name)
            raise
        self.logger.info(
            "Product image saved", product_id=product_id, image_id=image.id
        )
        return ImageMapper.to_dto(image)

    def delete(self, product_id: int) -> bool:
        """Soft-delete the product's image; ``False`` when it has none."""
        self.logger.info("Deleting product image", product_id=product_id)
        self._require_product(product_id)
        image = self.images.find_by_product_id(product_id)
        if image is None:
            self.logger.info("No image to delete", product_id=product_id)
            return False
        with transaction.atomic():
            self.images.delete(image)
            self.products.detach_image(product_id)
            transaction.on_commit(partial(self._remove_file, image.archive_name))
        self.logger.info(
            "Product image deleted", product_id=product_id, image_id=image.id
        )
        return True

    def load(self, archive_name: str) -> StoredImage:
        self.logger.debug("Loading image file", file=archive_name)
        return self.storage.open(archive_name)

    def _remove_file(self, archive_name: str) -> None:
        try:
            self.storage.delete(archive_name)
        except ImageStorageError:
            # Rows are already committed; an orphaned file is only logged
            self.logger.exception("Could not remove image file", file=archive_name)
