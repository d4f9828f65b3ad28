import logging
from time import time

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """
    Logs one line per request with method, path, status, user and duration.
    Mutating requests are logged at INFO, reads at DEBUG.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        start_time = time()
        response = self.get_response(request)
        duration_ms = (time() - start_time) * 1000

        # JWT users are attached by DRF on the wrapped request only
        drf_request = getattr(response, 'renderer_context', {}).get('request')
        username = getattr(getattr(drf_request, 'user', None), 'username', None) or 'anonymous'

        level = logging.DEBUG if request.method in ('GET', 'HEAD', 'OPTIONS') else logging.INFO
        if response.status_code >= 500:
            level = logging.ERROR
        logger.log(
            level,
            "%s %s -> %s (%s, %.1f ms)",
            request.method,
            request.path,
            response.status_code,
            username,
            duration_ms,
        )
        return response
