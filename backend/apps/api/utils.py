from collections.abc import Mapping
from http import HTTPStatus
from typing import Any, Dict, List, Optional

from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.serializers import as_serializer_error

DEFAULT_ERROR_STATUS = status.HTTP_400_BAD_REQUEST
DEFAULT_ERROR_FIELD = "body"

ERROR_STATUS_MAP = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "INVALID_IMAGE": status.HTTP_400_BAD_REQUEST,
    "IMAGE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "IMAGE_STORAGE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "UNAUTHORIZED": status.HTTP_401_UNAUTHORIZED,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "METHOD_NOT_ALLOWED": status.HTTP_405_METHOD_NOT_ALLOWED,
    "CONFLICT": status.HTTP_409_CONFLICT,
    "UNSUPPORTED_MEDIA_TYPE": status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    "SERVER_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "SERVICE_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_text(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def field_errors(details: Any, prefix: str = "") -> List[Dict[str, str]]:
    """
    Flatten serializer style error details into ``{field, message}`` entries.

    Nested serializer errors are joined with dots (``image.size``), list items
    by index (``categoryIds.0``). Non-field errors are reported against ``body``.
    """

    if isinstance(details, ValidationError):
        details = as_serializer_error(details)
    if details is None:
        return []
    if isinstance(details, Mapping):
        out: List[Dict[str, str]] = []
        for key, value in details.items():
            key = str(key)
            if key in ("non_field_errors", "detail"):
                out.extend(field_errors(value, prefix))
            else:
                out.extend(field_errors(value, f"{prefix}.{key}" if prefix else key))
        return out
    if isinstance(details, (list, tuple)):
        out = []
        for index, item in enumerate(details):
            if isinstance(item, (Mapping, list, tuple)):
                nested = f"{prefix}.{index}" if prefix else str(index)
                out.extend(field_errors(item, nested))
            else:
                out.extend(field_errors(item, prefix))
        return out
    return [{"field": prefix or DEFAULT_ERROR_FIELD, "message": str(details)}]


def _is_entry_list(errors: Any) -> bool:
    return (
        isinstance(errors, (list, tuple))
        and bool(errors)
        and all(
            isinstance(e, Mapping) and set(e.keys()) == {"field", "message"}
            for e in errors
        )
    )


def error_response(
    code: str,
    detail: str,
    errors: Optional[Any] = None,
    http_status: Optional[int] = None,
    *,
    field: str = DEFAULT_ERROR_FIELD,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """
    Return the uniform error envelope used by every catalog endpoint.

    Args:
        code: Machine-readable error identifier.
        detail: Human-readable explanation, reported as the single error entry
            when ``errors`` is not given.
        errors: Optional validation details (serializer errors, a list of
            ``{field, message}`` entries, or a plain mapping).
        http_status: Explicit HTTP status code to override the default mapping.
        field: Field the ``detail`` message is attributed to.
        headers: Optional response headers to include alongside the payload.
    """

    if not isinstance(code, str):
        raise TypeError("error_response requires code to be a string")
    if not isinstance(detail, str):
        raise TypeError("error_response requires detail to be a string")

    code = code.strip()
    detail = detail.strip()

    if not code:
        raise ValueError("error_response requires a non-empty code")
    if not detail:
        raise ValueError("error_response requires a non-empty detail")

    normalized_code = code.upper()

    status_code = (
        int(http_status)
        if http_status is not None
        else ERROR_STATUS_MAP.get(normalized_code, DEFAULT_ERROR_STATUS)
    )

    if headers is not None and not isinstance(headers, Mapping):
        raise TypeError("error_response headers must be a mapping if provided")

    if not 100 <= status_code <= 599:
        raise ValueError("error_response status must be a valid HTTP status code")

    if _is_entry_list(errors):
        entries = [
            {"field": str(e["field"]), "message": str(e["message"])} for e in errors
        ]
    else:
        entries = field_errors(errors) if errors is not None else []
    if not entries:
        entries = [{"field": field, "message": detail}]

    payload: Dict[str, Any] = {
        "code": normalized_code,
        "message": status_text(status_code),
        "status": status_code,
        "errors": entries,
        "timestamp": timezone.now().isoformat(),
    }

    headers_dict = (
        {str(key): str(value) for key, value in headers.items()} if headers else None
    )

    return Response(payload, status=status_code, headers=headers_dict)
