from django.http import FileResponse
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.api.schemas import ErrorResponseSerializer, paginated_response
from apps.common import get_logger

from .container import (
    build_category_service,
    build_image_service,
    build_product_service,
)
from .pagination import CATEGORY_SORT_FIELDS, PRODUCT_SORT_FIELDS, PageRequest
from .queries import ProductFilter
from .serializers import (
    CategorySerializer,
    ImageSerializer,
    ImageUploadSerializer,
    ProductCreateSerializer,
    ProductReadSerializer,
    ProductUpdateSerializer,
    page_data,
    parse_product_ids,
)

logger = get_logger(__name__).bind(component="catalog", layer="view")

ERROR_400 = OpenApiResponse(response=ErrorResponseSerializer, description="Validation failed")
ERROR_403 = OpenApiResponse(response=ErrorResponseSerializer, description="Missing authority")
ERROR_404 = OpenApiResponse(response=ErrorResponseSerializer, description="Not found")
ERROR_409 = OpenApiResponse(response=ErrorResponseSerializer, description="Name already in use")

PAGE_PARAMETERS = [
    OpenApiParameter("page", int, description="Zero-based page index", required=False),
    OpenApiParameter("size", int, description="Page size (max 100)", required=False),
    OpenApiParameter(
        "sort",
        str,
        description="Sort order as `field,asc|desc`; repeatable",
        required=False,
        many=True,
    ),
]
PRODUCT_FILTER_PARAMETERS = [
    OpenApiParameter("name", str, description="Substring of the product name", required=False),
    OpenApiParameter("category", str, description="Exact category name", required=False),
] + PAGE_PARAMETERS


@extend_schema(tags=["Categories"])
class CategoryListView(APIView):
    service = build_category_service()
    required_authorities = {"POST": "category:create"}
    log = logger.bind(view="CategoryListView")

    @extend_schema(
        operation_id="categories_list",
        summary="List categories",
        parameters=PAGE_PARAMETERS,
        responses={200: paginated_response(CategorySerializer), 400: ERROR_400},
    )
    def get(self, request):
        page_request = PageRequest.from_query_params(
            request.query_params, sort_fields=CATEGORY_SORT_FIELDS
        )
        self.log.debug("Listing categories", page=page_request.page)
        page = self.service.list_categories(page_request)
        return Response(page_data(page, CategorySerializer))

    @extend_schema(
        operation_id="categories_create",
        summary="Create category",
        request=CategorySerializer,
        responses={
            201: CategorySerializer,
            400: ERROR_400,
            403: ERROR_403,
            409: ERROR_409,
        },
    )
    def post(self, request):
        serializer = CategorySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = self.service.create_category(serializer.validated_data)
        self.log.info("Category created via API", category_id=dto.id)
        return Response(CategorySerializer(dto).data, status=status.HTTP_201_CREATED)


@extend_schema(
    tags=["Categories"],
    parameters=[OpenApiParameter("category_id", int, OpenApiParameter.PATH)],
)
class CategoryDetailView(APIView):
    service = build_category_service()
    required_authorities = {"PUT": "category:update", "DELETE": "category:delete"}
    log = logger.bind(view="CategoryDetailView")

    @extend_schema(
        operation_id="categories_retrieve",
        summary="Get category",
        responses={200: CategorySerializer, 404: ERROR_404},
    )
    def get(self, request, category_id: int):
        return Response(CategorySerializer(self.service.get_category(category_id)).data)

    @extend_schema(
        operation_id="categories_update",
        summary="Rename category",
        request=CategorySerializer,
        responses={
            200: CategorySerializer,
            400: ERROR_400,
            403: ERROR_403,
            404: ERROR_404,
            409: ERROR_409,
        },
    )
    def put(self, request, category_id: int):
        serializer = CategorySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = self.service.update_category(category_id, serializer.validated_data)
        return Response(CategorySerializer(dto).data)

    @extend_schema(
        operation_id="categories_destroy",
        summary="Delete category",
        responses={204: None, 403: ERROR_403, 404: ERROR_404},
    )
    def delete(self, request, category_id: int):
        self.service.delete_category(category_id)
        self.log.info("Category deleted via API", category_id=category_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(tags=["Products"])
class ProductListView(APIView):
    service = build_product_service()
    required_authorities = {"POST": "product:create"}
    log = logger.bind(view="ProductListView")

    @extend_schema(
        operation_id="products_list",
        summary="Search products",
        description=(
            "Optional name substring and exact category filters. Unknown "
            "category names answer 404."
        ),
        parameters=PRODUCT_FILTER_PARAMETERS,
        responses={
            200: paginated_response(ProductReadSerializer),
            400: ERROR_400,
            404: ERROR_404,
        },
    )
    def get(self, request):
        filters = ProductFilter.from_query_params(request.query_params)
        page_request = PageRequest.from_query_params(
            request.query_params, sort_fields=PRODUCT_SORT_FIELDS
        )
        self.log.debug(
            "Handling product list request",
            name=filters.name,
            category=filters.category,
        )
        page = self.service.list_products(filters, page_request)
        return Response(page_data(page, ProductReadSerializer))

    @extend_schema(
        operation_id="products_create",
        summary="Create product",
        request=ProductCreateSerializer,
        responses={
            201: ProductReadSerializer,
            400: ERROR_400,
            403: ERROR_403,
            404: ERROR_404,
        },
    )
    def post(self, request):
        serializer = ProductCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = self.service.create_product(serializer.validated_data)
        self.log.info(
            "Product created via API", product_id=dto.id, user=str(request.user)
        )
        return Response(ProductReadSerializer(dto).data, status=status.HTTP_201_CREATED)


@extend_schema(
    tags=["Products"],
    parameters=[OpenApiParameter("seller_id", int, OpenApiParameter.PATH)],
)
class SellerProductListView(APIView):
    service = build_product_service()
    log = logger.bind(view="SellerProductListView")

    @extend_schema(
        operation_id="products_by_seller",
        summary="Search a seller's products",
        parameters=PRODUCT_FILTER_PARAMETERS,
        responses={
            200: paginated_response(ProductReadSerializer),
            400: ERROR_400,
            404: ERROR_404,
        },
    )
    def get(self, request, seller_id: int):
        filters = ProductFilter.from_query_params(request.query_params)
        page_request = PageRequest.from_query_params(
            request.query_params, sort_fields=PRODUCT_SORT_FIELDS
        )
        page = self.service.list_products_by_seller(seller_id, filters, page_request)
        return Response(page_data(page, ProductReadSerializer))


@extend_schema(tags=["Products"])
class ProductCartView(APIView):
    service = build_product_service()
    parser_classes = [JSONParser]
    log = logger.bind(view="ProductCartView")

    @extend_schema(
        operation_id="products_by_ids",
        summary="Products for a list of ids",
        description=(
            "Ids come from `?ids=1,2,3` or a JSON array body. Unknown or deleted "
            "ids are left out; results are ordered by id."
        ),
        parameters=[
            OpenApiParameter("ids", str, description="Comma separated ids", required=False)
        ],
        responses={200: ProductReadSerializer(many=True), 400: ERROR_400},
    )
    def get(self, request):
        try:
            ids = parse_product_ids(self._requested_ids(request))
        except ValidationError as exc:
            raise ValidationError({"ids": exc.detail}) from exc
        self.log.debug("Listing products for cart", count=len(ids))
        dtos = self.service.list_products_by_ids(ids)
        return Response(ProductReadSerializer(dtos, many=True).data)

    @staticmethod
    def _requested_ids(request):
        raw = request.query_params.get("ids")
        if raw is not None:
            return [part.strip() for part in raw.split(",") if part.strip()]
        return request.data or []


@extend_schema(
    tags=["Products"],
    parameters=[OpenApiParameter("product_id", int, OpenApiParameter.PATH)],
)
class ProductDetailView(APIView):
    service = build_product_service()
    required_authorities = {"PUT": "product:update", "DELETE": "product:delete"}
    log = logger.bind(view="ProductDetailView")

    @extend_schema(
        operation_id="products_retrieve",
        summary="Get product",
        responses={200: ProductReadSerializer, 404: ERROR_404},
    )
    def get(self, request, product_id: int):
        self.log.debug("Fetching product detail", product_id=product_id)
        return Response(ProductReadSerializer(self.service.get_product(product_id)).data)

    @extend_schema(
        operation_id="products_update",
        summary="Update product",
        description="Fields left out or sent as null are not changed. categoryIds replaces the whole set.",
        request=ProductUpdateSerializer,
        responses={
            200: ProductReadSerializer,
            400: ERROR_400,
            403: ERROR_403,
            404: ERROR_404,
        },
    )
    def put(self, request, product_id: int):
        serializer = ProductUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.log.info("Updating product via API", product_id=product_id)
        dto = self.service.update_product(product_id, serializer.validated_data)
        return Response(ProductReadSerializer(dto).data)

    @extend_schema(
        operation_id="products_destroy",
        summary="Delete product",
        responses={204: None, 403: ERROR_403, 404: ERROR_404},
    )
    def delete(self, request, product_id: int):
        self.service.delete_product(product_id)
        self.log.info("Product deleted via API", product_id=product_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(
    tags=["Product images"],
    parameters=[OpenApiParameter("product_id", int, OpenApiParameter.PATH)],
)
class ProductImageView(APIView):
    service = build_image_service()
    parser_classes = [MultiPartParser, FormParser]
    required_authorities = {
        "POST": "product:create:image",
        "DELETE": "product:delete:image",
    }
    log = logger.bind(view="ProductImageView")

    @extend_schema(
        operation_id="product_image_retrieve",
        summary="Get image metadata of a product",
        responses={200: ImageSerializer, 404: ERROR_404},
    )
    def get(self, request, product_id: int):
        return Response(ImageSerializer(self.service.get_by_product_id(product_id)).data)

    @extend_schema(
        operation_id="product_image_upload",
        summary="Upload product image",
        description="Replaces the current image, if any.",
        request={"multipart/form-data": ImageUploadSerializer},
        responses={
            201: ImageSerializer,
            400: ERROR_400,
            403: ERROR_403,
            404: ERROR_404,
        },
    )
    def post(self, request, product_id: int):
        serializer = ImageUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data["file"]
        dto = self.service.upload(
            product_id,
            upload,
            file_name=upload.name,
            content_type=getattr(upload, "content_type", None),
            size=upload.size,
        )
        self.log.info("Product image uploaded via API", product_id=product_id)
        return Response(ImageSerializer(dto).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="product_image_destroy",
        summary="Delete product image",
        responses={204: None, 403: ERROR_403, 404: ERROR_404},
    )
    def delete(self, request, product_id: int):
        removed = self.service.delete(product_id)
        self.log.info(
            "Product image delete handled", product_id=product_id, removed=removed
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(
    tags=["Product images"],
    parameters=[OpenApiParameter("name", str, OpenApiParameter.PATH)],
)
class ImageFileView(APIView):
    service = build_image_service()
    log = logger.bind(view="ImageFileView")

    @extend_schema(
        operation_id="product_image_file",
        summary="Download an image file",
        responses={
            (200, "application/octet-stream"): OpenApiTypes.BINARY,
            404: ERROR_404,
        },
    )
    def get(self, request, name: str):
        stored = self.service.load(name)
        self.log.debug("Serving image file", file=stored.name, size=stored.size)
        return FileResponse(stored.stream, content_type=stored.content_type)
