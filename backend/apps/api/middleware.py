import time

from django.utils.deprecation import MiddlewareMixin

from apps.common import get_logger

logger = get_logger(__name__).bind(component='api', layer='middleware')


class RequestLogMiddleware(MiddlewareMixin):
    """
    Logs one line per request with method, path, status and duration.
    The gateway identity header is included when present.
    """

    def process_request(self, request):
        request._started_at = time.monotonic()

    def process_response(self, request, response):
        started = getattr(request, '_started_at', None)
        duration_ms = round((time.monotonic() - started) * 1000, 2) if started else None
        status_code = getattr(response, 'status_code', None)
        log = logger.bind(
            method=getattr(request, 'method', None),
            path=getattr(request, 'path', None),
            user=request.headers.get('User-name') or None,
        )
        if status_code is not None and status_code >= 500:
            log.warning('Request failed', status=status_code, duration_ms=duration_ms)
        else:
            log.info('Request handled', status=status_code, duration_ms=duration_ms)
        return response
