from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.catalog.models import Category, Image, Product, ProductCategory

CATEGORIES = [
    "Electronics",
    "Books",
    "Clothing",
    "Home & Kitchen",
]

# (name, description, price, seller id, category names)
PRODUCTS = [
    (
        "Smartphone X",
        "Six inch display, 128 GB storage and a dual camera.",
        "1999.90",
        1,
        ["Electronics"],
    ),
    (
        "Wireless Headphones",
        "Over-ear headphones with noise cancelling and 30 hours of battery.",
        "349.00",
        1,
        ["Electronics"],
    ),
    (
        "Clean Code",
        "A handbook of agile software craftsmanship.",
        "89.90",
        2,
        ["Books"],
    ),
    (
        "Cotton T-Shirt",
        "Plain crew neck t-shirt, 100% cotton.",
        "39.90",
        3,
        ["Clothing"],
    ),
    (
        "Espresso Machine",
        "Fifteen bar pump espresso maker with milk frother.",
        "799.00",
        2,
        ["Home & Kitchen", "Electronics"],
    ),
]


class Command(BaseCommand):
    help = "Seed sample categories and products for the catalog."

    def add_arguments(self, parser):
        parser.add_argument(
            "--flush", action="store_true", help="Delete existing data before seeding"
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options["flush"]:
            self.stdout.write("Flushing existing data...")
            ProductCategory.objects.all().delete()
            Product.objects.all().delete()
            Image.objects.all().delete()
            Category.objects.all().delete()

        self.stdout.write("Seeding categories...")
        name_to_cat = {}
        for name in CATEGORIES:
            cat, _ = Category.objects.active().get_or_create(name=name)
            name_to_cat[name] = cat

        self.stdout.write("Seeding products...")
        created = 0
        for name, description, price, seller_id, cat_names in PRODUCTS:
            product, was_created = Product.objects.active().get_or_create(
                name=name,
                seller_id=seller_id,
                defaults=dict(description=description, price=Decimal(price)),
            )
            created += int(was_created)
            for cname in cat_names:
                ProductCategory.objects.get_or_create(
                    product=product, category=name_to_cat[cname]
                )

        self.stdout.write(
            self.style.SUCCESS(f"Catalog seed completed ({created} new products).")
        )
