from decimal import Decimal
from typing import List

from rest_framework import serializers

from .pagination import Page


class CategorySerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(max_length=100, trim_whitespace=True)

    def to_representation(self, instance):
        # Support dataclass DTO or dict
        if instance is None:
            return None
        if hasattr(instance, "__dataclass_fields__"):
            return {"id": instance.id, "name": instance.name}
        return super().to_representation(instance)


class ImageSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    archiveName = serializers.CharField(source="archive_name")
    originalName = serializers.CharField(source="original_name")
    contentType = serializers.CharField(source="content_type")
    size = serializers.IntegerField()
    url = serializers.CharField()


class ProductReadSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    description = serializers.CharField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2)
    sellerId = serializers.IntegerField(source="seller_id")
    categories = CategorySerializer(many=True)
    image = ImageSerializer(required=False)

    def to_representation(self, instance):
        if instance is None:
            return None
        data = {
            "id": instance.id,
            "name": instance.name,
            "description": instance.description,
            "price": self.fields["price"].to_representation(instance.price),
            "sellerId": instance.seller_id,
            "categories": CategorySerializer(instance.categories, many=True).data,
        }
        # image key is omitted entirely for products without one
        if instance.image is not None:
            data["image"] = ImageSerializer(instance.image).data
        return data


class ProductCreateSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=3, max_length=255)
    description = serializers.CharField(min_length=3)
    price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0")
    )
    sellerId = serializers.IntegerField(source="seller_id")
    categoryIds = serializers.ListField(
        child=serializers.IntegerField(), allow_empty=False, source="category_ids"
    )


class ProductUpdateSerializer(serializers.Serializer):
    """Every field is optional; ``null`` and a missing key both mean unchanged."""

    name = serializers.CharField(
        min_length=3, max_length=255, required=False, allow_null=True
    )
    description = serializers.CharField(min_length=3, required=False, allow_null=True)
    price = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0"),
        required=False,
        allow_null=True,
    )
    categoryIds = serializers.ListField(
        child=serializers.IntegerField(),
        required=False,
        allow_null=True,
        source="category_ids",
    )


class ImageUploadSerializer(serializers.Serializer):
    file = serializers.FileField(allow_empty_file=False)


def parse_product_ids(raw) -> List[int]:
    """Validate a list of product ids; raises ``ValidationError`` on bad input."""
    field = serializers.ListField(child=serializers.IntegerField(min_value=1))
    return field.run_validation(raw)


def page_data(page: Page, item_serializer_class) -> dict:
    """Render a page of DTOs in the paged response shape."""
    return {
        "content": item_serializer_class(page.content, many=True).data,
        "totalElements": page.total_elements,
        "totalPages": page.total_pages,
        "number": page.page,
        "size": page.size,
        "numberOfElements": page.number_of_elements,
        "first": page.first,
        "last": page.last,
        "empty": page.empty,
    }
