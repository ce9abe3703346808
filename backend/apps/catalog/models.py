from django.db import models
from django.db.models import Q

from apps.common.models import SoftDeleteModel


class Category(SoftDeleteModel):
    name = models.CharField(max_length=100)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "categories"
        constraints = [
            # Names only need to be unique among live rows so a deleted name can be reused.
            models.UniqueConstraint(
                fields=["name"],
                condition=Q(deleted=False),
                name="category_active_name_uniq",
            ),
        ]
        indexes = [
            models.Index(fields=["name"], name="category_name_idx"),
        ]

    def __str__(self):
        return self.name


class Image(SoftDeleteModel):
    archive_name = models.CharField(max_length=255)
    original_name = models.CharField(max_length=255)
    content_type = models.CharField(max_length=100)
    size = models.BigIntegerField()
    url = models.CharField(max_length=500)

    class Meta:
        db_table = "images"

    def __str__(self):
        return self.archive_name


class Product(SoftDeleteModel):
    name = models.CharField(max_length=255)
    description = models.TextField()
    price = models.DecimalField(max_digits=12, decimal_places=2)
    seller_id = models.BigIntegerField()
    categories = models.ManyToManyField(
        Category, related_name="products", through="ProductCategory"
    )
    image = models.OneToOneField(
        Image,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="product",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        indexes = [
            models.Index(fields=["name"], name="product_name_idx"),
            models.Index(fields=["seller_id"], name="product_seller_idx"),
            models.Index(fields=["deleted"], name="product_deleted_idx"),
        ]

    def __str__(self):
        return self.name


class ProductCategory(models.Model):
    product = models.ForeignKey(Product, on_delete=models.CASCADE)
    category = models.ForeignKey(Category, on_delete=models.CASCADE)

    class Meta:
        unique_together = ("product", "category")
        db_table = "products_categories"
        indexes = [
            models.Index(fields=["product", "category"], name="prod_cat_combo_idx"),
        ]
