from drf_spectacular.extensions import OpenApiAuthenticationExtension
from drf_spectacular.utils import inline_serializer
from rest_framework import serializers


class ErrorEntrySerializer(serializers.Serializer):
    field = serializers.CharField()
    message = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    code = serializers.CharField()
    message = serializers.CharField(help_text="HTTP status text")
    status = serializers.IntegerField()
    errors = ErrorEntrySerializer(many=True)
    timestamp = serializers.DateTimeField()


def paginated_response(
    item_serializer_class: type[serializers.Serializer],
) -> type[serializers.Serializer]:
    """Inline page serializer: content[item] plus totals and position flags."""
    name = getattr(item_serializer_class, "__name__", "Items")
    return inline_serializer(
        name=f"Page{name}",
        fields={
            "content": item_serializer_class(many=True),
            "totalElements": serializers.IntegerField(),
            "totalPages": serializers.IntegerField(),
            "number": serializers.IntegerField(),
            "size": serializers.IntegerField(),
            "numberOfElements": serializers.IntegerField(),
            "first": serializers.BooleanField(),
            "last": serializers.BooleanField(),
            "empty": serializers.BooleanField(),
        },
    )


class TrustedHeaderAuthenticationScheme(OpenApiAuthenticationExtension):
    target_class = "apps.api.authentication.TrustedHeaderAuthentication"
    name = "gatewayHeaders"

    def get_security_definition(self, auto_schema):
        return {
            "type": "apiKey",
            "in": "header",
            "name": "User-name",
            "description": (
                "Identity forwarded by the gateway. Granted authorities travel in "
                "the User-authorities header, e.g. `[product:create, product:update]`."
            ),
        }
