from rest_framework.permissions import BasePermission

from apps.common import get_logger

logger = get_logger(__name__).bind(component="api", layer="permission")


class HasRequiredAuthority(BasePermission):
    """
    Grants access when the view lists no authority for the request method, or
    when the authenticated principal holds the listed one.

    Views declare ``required_authorities = {"POST": "product:create", ...}``.
    """

    message = "You do not have permission to perform this action"

    def has_permission(self, request, view):
        required = (getattr(view, "required_authorities", None) or {}).get(
            request.method
        )
        if not required:
            return True
        user = getattr(request, "user", None)
        if not getattr(user, "is_authenticated", False):
            return False
        granted = required in getattr(user, "authorities", ())
        if not granted:
            logger.info(
                "Missing authority",
                username=getattr(user, "username", None),
                authority=required,
                view=view.__class__.__name__,
            )
        return granted
