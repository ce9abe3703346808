from django.urls import re_path

from .views import (
    CategoryDetailView,
    CategoryListView,
    ImageFileView,
    ProductCartView,
    ProductDetailView,
    ProductImageView,
    ProductListView,
    SellerProductListView,
)

# Every route accepts an optional trailing slash
urlpatterns = [
    re_path(r"^categories/?$", CategoryListView.as_view(), name="catalog-categories-list"),
    re_path(
        r"^categories/(?P<category_id>\d+)/?$",
        CategoryDetailView.as_view(),
        name="catalog-categories-detail",
    ),
    re_path(r"^products/?$", ProductListView.as_view(), name="catalog-products-list"),
    re_path(
        r"^products/sellers/(?P<seller_id>\d+)/?$",
        SellerProductListView.as_view(),
        name="catalog-products-seller",
    ),
    re_path(r"^products/cart/?$", ProductCartView.as_view(), name="catalog-products-cart"),
    re_path(
        r"^products/images/(?P<name>[^/]+)/?$",
        ImageFileView.as_view(),
        name="catalog-image-file",
    ),
    re_path(
        r"^products/(?P<product_id>\d+)/?$",
        ProductDetailView.as_view(),
        name="catalog-products-detail",
    ),
    re_path(
        r"^products/(?P<product_id>\d+)/images/?$",
        ProductImageView.as_view(),
        name="catalog-products-image",
    ),
]
