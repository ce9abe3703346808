from django.urls import include, path

urlpatterns = [
    path("v1/catalog/", include("apps.catalog.urls")),
]
