import json
import shutil
import tempfile
from decimal import Decimal

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.catalog.models import Category, Image, Product, ProductCategory

ALL_AUTHORITIES = (
    "[category:create, category:update, category:delete, product:create, "
    "product:update, product:delete, product:create:image, product:delete:image]"
)
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


class CatalogAPITestCase(APITestCase):
    def setUp(self):
        self.upload_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.upload_dir, ignore_errors=True)
        override = override_settings(UPLOAD_DIR=self.upload_dir, UPLOAD_URL="/files/")
        override.enable()
        self.addCleanup(override.disable)

    def as_admin(self, authorities=ALL_AUTHORITIES):
        self.client.credentials(HTTP_USER_NAME="admin", HTTP_USER_AUTHORITIES=authorities)

    def create_category(self, name):
        return Category.objects.create(name=name)

    def create_product(self, name="Phone", categories=(), seller_id=1, price="99.90"):
        product = Product.objects.create(
            name=name, description="A description", price=Decimal(price), seller_id=seller_id
        )
        for category in categories:
            ProductCategory.objects.create(product=product, category=category)
        return product


class CategoryAPITests(CatalogAPITestCase):
    def setUp(self):
        super().setUp()
        self.list_url = reverse("catalog-categories-list")

    def test_list_is_public_and_paged(self):
        for name in ("A", "B", "C"):
            self.create_category(name)
        response = self.client.get(self.list_url, {"size": 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual([c["name"] for c in body["content"]], ["A", "B"])
        self.assertEqual(body["totalElements"], 3)
        self.assertEqual(body["totalPages"], 2)
        self.assertEqual(body["number"], 0)
        self.assertEqual(body["size"], 2)
        self.assertEqual(body["numberOfElements"], 2)
        self.assertTrue(body["first"])
        self.assertFalse(body["last"])
        self.assertFalse(body["empty"])

    def test_create_requires_authority(self):
        response = self.client.post(self.list_url, {"name": "Books"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["code"], "FORBIDDEN")
        self.as_admin(authorities="[product:create]")
        response = self.client.post(self.list_url, {"name": "Books"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Category.objects.exists())

    def test_crud_flow(self):
        self.as_admin()
        created = self.client.post(self.list_url, {"name": "Books"}, format="json")
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        detail_url = reverse("catalog-categories-detail", args=[created.data["id"]])

        renamed = self.client.put(detail_url, {"name": "Novels"}, format="json")
        self.assertEqual(renamed.status_code, status.HTTP_200_OK)
        self.assertEqual(renamed.data, {"id": created.data["id"], "name": "Novels"})

        deleted = self.client.delete(detail_url)
        self.assertEqual(deleted.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(detail_url).status_code, status.HTTP_404_NOT_FOUND)
        row = Category.objects.get(pk=created.data["id"])
        self.assertTrue(row.deleted)
        self.assertIsNotNone(row.deleted_at)

    def test_duplicate_name_conflicts(self):
        self.create_category("Books")
        self.as_admin()
        response = self.client.post(self.list_url, {"name": "Books"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "CONFLICT")
        self.assertEqual(response.data["errors"][0]["field"], "name")

    def test_blank_name_is_validation_error(self):
        self.as_admin()
        response = self.client.post(self.list_url, {"name": ""}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "VALIDATION_ERROR")
        self.assertEqual(response.data["message"], "Bad Request")
        self.assertEqual(response.data["errors"][0]["field"], "name")

    def test_unknown_sort_field(self):
        response = self.client.get(self.list_url, {"sort": "price,asc"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["errors"][0]["field"], "sort")


class ProductAPITests(CatalogAPITestCase):
    def setUp(self):
        super().setUp()
        self.list_url = reverse("catalog-products-list")
        self.electronics = self.create_category("Electronics")
        self.books = self.create_category("Books")

    def test_category_filter_scenario(self):
        phone = self.create_product("Phone", [self.electronics])
        response = self.client.get(self.list_url, {"category": "Electronics"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p["id"] for p in response.json()["content"]], [phone.id])

        self.as_admin()
        delete_url = reverse("catalog-categories-detail", args=[self.electronics.id])
        self.assertEqual(self.client.delete(delete_url).status_code, status.HTTP_204_NO_CONTENT)

        response = self.client.get(self.list_url, {"category": "Electronics"})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "NOT_FOUND")
        self.assertEqual(
            response.data["errors"], [{"field": "category", "message": "Category not found"}]
        )

    def test_filters_by_name_and_seller(self):
        self.create_product("Phone", [self.electronics], seller_id=1)
        mine = self.create_product("Phone Case", [self.electronics], seller_id=2)
        self.create_product("Book", [self.books], seller_id=2)
        url = reverse("catalog-products-seller", args=[2])
        response = self.client.get(url, {"name": "Phone"})
        self.assertEqual([p["id"] for p in response.json()["content"]], [mine.id])

    def test_product_representation(self):
        product = self.create_product("Phone", [self.books, self.electronics], price="10.50")
        response = self.client.get(reverse("catalog-products-detail", args=[product.id]))
        body = response.json()
        self.assertEqual(
            body,
            {
                "id": product.id,
                "name": "Phone",
                "description": "A description",
                "price": 10.5,
                "sellerId": 1,
                "categories": [
                    {"id": self.electronics.id, "name": "Electronics"},
                    {"id": self.books.id, "name": "Books"},
                ],
            },
        )

    def test_missing_product_envelope(self):
        response = self.client.get(reverse("catalog-products-detail", args=[999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        body = response.data
        self.assertEqual(body["code"], "NOT_FOUND")
        self.assertEqual(body["message"], "Not Found")
        self.assertEqual(body["status"], 404)
        self.assertEqual(body["errors"], [{"field": "body", "message": "Product not found"}])
        self.assertIn("timestamp", body)

    def test_create_product(self):
        self.as_admin()
        payload = {
            "name": "Phone",
            "description": "Smart phone",
            "price": "1999.90",
            "sellerId": 7,
            "categoryIds": [self.electronics.id, 999],
        }
        response = self.client.post(self.list_url, payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertEqual(body["sellerId"], 7)
        self.assertEqual(body["categories"], [{"id": self.electronics.id, "name": "Electronics"}])
        self.assertNotIn("image", body)

    def test_create_with_unknown_categories_persists_nothing(self):
        self.as_admin()
        payload = {
            "name": "Phone",
            "description": "Smart phone",
            "price": "10",
            "sellerId": 7,
            "categoryIds": [998, 999],
        }
        response = self.client.post(self.list_url, payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["errors"][0]["message"], "Category not found")
        self.assertFalse(Product.objects.exists())

    def test_create_validation(self):
        self.as_admin()
        payload = {"name": "ab", "description": "ok!", "price": "-1", "sellerId": 1, "categoryIds": []}
        response = self.client.post(self.list_url, payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        fields = {e["field"] for e in response.data["errors"]}
        self.assertEqual(fields, {"name", "price", "categoryIds"})

    def test_partial_update(self):
        product = self.create_product("Phone", [self.electronics], price="10.00")
        self.as_admin()
        url = reverse("catalog-products-detail", args=[product.id])
        response = self.client.put(url, {"name": "Smartphone", "price": None}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual(body["name"], "Smartphone")
        self.assertEqual(body["price"], 10.0)
        self.assertEqual(body["description"], "A description")
        self.assertEqual([c["id"] for c in body["categories"]], [self.electronics.id])

        response = self.client.put(url, {"categoryIds": [self.books.id]}, format="json")
        self.assertEqual([c["id"] for c in response.json()["categories"]], [self.books.id])

    def test_update_requires_authority(self):
        product = self.create_product("Phone", [self.electronics])
        self.as_admin(authorities="[product:create]")
        url = reverse("catalog-products-detail", args=[product.id])
        response = self.client.put(url, {"name": "Other"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_is_soft(self):
        product = self.create_product("Phone", [self.electronics])
        self.as_admin()
        url = reverse("catalog-products-detail", args=[product.id])
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(Product.objects.get(pk=product.pk).deleted)

    def test_cart_lookup_from_query_and_body(self):
        first = self.create_product("First", [self.electronics])
        second = self.create_product("Second", [self.electronics])
        gone = self.create_product("Gone", [self.electronics])
        gone.mark_deleted()
        url = reverse("catalog-products-cart")

        response = self.client.get(url, {"ids": f"{second.id},{gone.id},{first.id},999"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p["id"] for p in response.json()], [first.id, second.id])

        response = self.client.generic(
            "GET", url, json.dumps([second.id]), content_type="application/json"
        )
        self.assertEqual([p["id"] for p in response.json()], [second.id])

    def test_cart_rejects_bad_ids(self):
        response = self.client.get(reverse("catalog-products-cart"), {"ids": "1,abc"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data["errors"][0]["field"].startswith("ids"))


class ProductImageAPITests(CatalogAPITestCase):
    def setUp(self):
        super().setUp()
        self.product = self.create_product("Phone")
        self.url = reverse("catalog-products-image", args=[self.product.id])

    def upload(self, name="phone.png", content=PNG_BYTES, content_type="image/png"):
        upload = SimpleUploadedFile(name, content, content_type=content_type)
        return self.client.post(self.url, {"file": upload}, format="multipart")

    def test_upload_requires_authority(self):
        response = self.upload()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_upload_and_serve(self):
        self.as_admin()
        response = self.upload()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertEqual(body["originalName"], "phone.png")
        self.assertEqual(body["contentType"], "image/png")
        self.assertEqual(body["size"], len(PNG_BYTES))
        self.assertEqual(body["url"], f"/files/{body['archiveName']}")

        meta = self.client.get(self.url)
        self.assertEqual(meta.json()["id"], body["id"])
        detail = self.client.get(reverse("catalog-products-detail", args=[self.product.id]))
        self.assertEqual(detail.json()["image"]["archiveName"], body["archiveName"])

        served = self.client.get(reverse("catalog-image-file", args=[body["archiveName"]]))
        self.assertEqual(served.status_code, status.HTTP_200_OK)
        self.assertEqual(served["Content-Type"], "image/png")
        self.assertEqual(b"".join(served.streaming_content), PNG_BYTES)
        served.close()

    def test_reupload_replaces_image_and_file(self):
        self.as_admin()
        first = self.upload().json()
        with self.captureOnCommitCallbacks(execute=True):
            second = self.upload(name="new.jpg", content=b"jpeg", content_type="image/jpeg").json()
        self.assertEqual(Image.objects.active().count(), 1)
        self.assertEqual(Image.objects.active().get().id, second["id"])
        self.assertEqual(
            self.client.get(reverse("catalog-image-file", args=[first["archiveName"]])).status_code,
            status.HTTP_404_NOT_FOUND,
        )

    def test_non_image_rejected(self):
        self.as_admin()
        response = self.upload(name="notes.txt", content=b"hello", content_type="text/plain")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "INVALID_IMAGE")
        self.assertFalse(Image.objects.exists())

    def test_missing_file_field(self):
        self.as_admin()
        response = self.client.post(self.url, {}, format="multipart")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["errors"][0]["field"], "file")

    def test_upload_for_missing_product(self):
        self.as_admin()
        url = reverse("catalog-products-image", args=[999])
        upload = SimpleUploadedFile("a.png", PNG_BYTES, content_type="image/png")
        response = self.client.post(url, {"file": upload}, format="multipart")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_image(self):
        self.as_admin()
        archive_name = self.upload().json()["archiveName"]
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.delete(self.url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_404_NOT_FOUND)
        self.assertIsNone(Product.objects.get(pk=self.product.pk).image_id)
        served = self.client.get(reverse("catalog-image-file", args=[archive_name]))
        self.assertEqual(served.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(served.data["code"], "IMAGE_NOT_FOUND")

    def test_delete_without_image_is_no_content(self):
        self.as_admin()
        self.assertEqual(self.client.delete(self.url).status_code, status.HTTP_204_NO_CONTENT)

    def test_delete_image_of_missing_product(self):
        self.as_admin()
        url = reverse("catalog-products-image", args=[999])
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_404_NOT_FOUND)


class LiteralPathTests(CatalogAPITestCase):
    """Routes answer on the bare paths clients call, with or without a slash."""

    def test_category_routes_without_trailing_slash(self):
        self.as_admin()
        created = self.client.post(
            "/api/v1/catalog/categories", {"name": "Books"}, format="json"
        )
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        category_id = created.json()["id"]

        fetched = self.client.get(f"/api/v1/catalog/categories/{category_id}")
        self.assertEqual(fetched.status_code, status.HTTP_200_OK)
        self.assertEqual(fetched.json()["name"], "Books")

        renamed = self.client.put(
            f"/api/v1/catalog/categories/{category_id}", {"name": "Novels"}, format="json"
        )
        self.assertEqual(renamed.status_code, status.HTTP_200_OK)
        self.assertEqual(renamed.json()["name"], "Novels")

        deleted = self.client.delete(f"/api/v1/catalog/categories/{category_id}")
        self.assertEqual(deleted.status_code, status.HTTP_204_NO_CONTENT)

    def test_product_routes_without_trailing_slash(self):
        category = self.create_category("Electronics")
        self.as_admin()
        created = self.client.post(
            "/api/v1/catalog/products",
            {
                "name": "Phone",
                "description": "Smart phone",
                "price": "10.50",
                "sellerId": 3,
                "categoryIds": [category.id],
            },
            format="json",
        )
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        product_id = created.json()["id"]

        updated = self.client.put(
            f"/api/v1/catalog/products/{product_id}", {"price": "12.00"}, format="json"
        )
        self.assertEqual(updated.status_code, status.HTTP_200_OK)
        self.assertEqual(updated.json()["price"], 12)

        self.assertEqual(
            self.client.get("/api/v1/catalog/products").json()["totalElements"], 1
        )
        self.assertEqual(
            self.client.get("/api/v1/catalog/products/sellers/3").json()["totalElements"], 1
        )
        self.assertEqual(
            len(self.client.get("/api/v1/catalog/products/cart", {"ids": str(product_id)}).json()),
            1,
        )
        self.assertEqual(
            self.client.get(f"/api/v1/catalog/products/{product_id}/images").status_code,
            status.HTTP_404_NOT_FOUND,
        )

        deleted = self.client.delete(f"/api/v1/catalog/products/{product_id}")
        self.assertEqual(deleted.status_code, status.HTTP_204_NO_CONTENT)
        self.assertTrue(Product.objects.get(pk=product_id).deleted)

    def test_trailing_slash_is_still_accepted(self):
        category = self.create_category("Garden")
        response = self.client.get(f"/api/v1/catalog/categories/{category.id}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_reverse_yields_bare_paths(self):
        self.assertEqual(reverse("catalog-products-list"), "/api/v1/catalog/products")
        self.assertEqual(
            reverse("catalog-products-image", args=[5]), "/api/v1/catalog/products/5/images"
        )


class DefaultUploadUrlTests(APITestCase):
    def setUp(self):
        self.upload_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.upload_dir, ignore_errors=True)
        override = override_settings(
            UPLOAD_DIR=self.upload_dir, UPLOAD_URL="/api/v1/catalog/products/images/"
        )
        override.enable()
        self.addCleanup(override.disable)
        self.product = Product.objects.create(
            name="Phone", description="A description", price=Decimal("5.00"), seller_id=1
        )

    def test_uploaded_image_url_serves_the_file(self):
        self.client.credentials(
            HTTP_USER_NAME="admin", HTTP_USER_AUTHORITIES="[product:create:image]"
        )
        upload = SimpleUploadedFile("phone.png", PNG_BYTES, content_type="image/png")
        response = self.client.post(
            f"/api/v1/catalog/products/{self.product.id}/images",
            {"file": upload},
            format="multipart",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        url = response.json()["url"]
        self.assertTrue(url.startswith("/api/v1/catalog/products/images/"))
        self.assertFalse(url.endswith("/"))

        served = self.client.get(url)
        self.assertEqual(served.status_code, status.HTTP_200_OK)
        self.assertEqual(served["Content-Type"], "image/png")
        self.assertEqual(b"".join(served.streaming_content), PNG_BYTES)
        served.close()
