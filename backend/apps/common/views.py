import os
import time

from django.conf import settings
from django.db import connections
from django.db.utils import OperationalError
from django.http import JsonResponse

from .logger import get_logger

logger = get_logger(__name__).bind(component='common', layer='health')


def _db_check(alias='default'):
    started = time.time()
    try:
        conn = connections[alias]
        conn.cursor().execute('SELECT 1')
        latency = round((time.time() - started) * 1000, 2)
        logger.debug('Database health check succeeded', alias=alias, latency_ms=latency)
        return {'status': 'ok', 'latency_ms': latency}
    except OperationalError as e:
        # Expected operational DB issues (connection refused, etc.)
        logger.warning('Database health check encountered operational error', alias=alias, error=str(e))
        return {'status': 'fail', 'error': str(e)}


def _upload_dir_check(path=None):
    path = str(path or settings.UPLOAD_DIR)
    if not os.path.isdir(path):
        # FileSystemStorage creates the directory on first save
        logger.debug('Upload directory not created yet', path=path)
        parent = os.path.dirname(os.path.abspath(path)) or '.'
        if os.access(parent, os.W_OK):
            return {'status': 'ok', 'detail': 'created on first upload'}
        logger.warning('Upload directory missing and parent not writable', path=path)
        return {'status': 'fail', 'error': 'upload directory cannot be created'}
    if not os.access(path, os.W_OK):
        logger.warning('Upload directory not writable', path=path)
        return {'status': 'fail', 'error': 'upload directory not writable'}
    return {'status': 'ok'}


def live_health(request):
    """Liveness probe: process is up and can service requests."""
    logger.debug('Liveness probe served')
    return JsonResponse({'status': 'alive'})


def ready_health(request):
    """Readiness probe: database reachable and image storage writable."""
    checks = {
        'database': _db_check(),
        'uploads': _upload_dir_check(),
    }
    failing = [name for name, r in checks.items() if r.get('status') == 'fail']
    overall_status = 'ok' if not failing else 'degraded'
    http_status = 200 if not failing else 503
    logger.info('Readiness probe evaluated', status=overall_status, failing_components=failing)
    return JsonResponse({'status': overall_status, 'checks': checks}, status=http_status)
