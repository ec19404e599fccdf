"""
ASGI middleware for tracking HTTP request metrics.
Records request count, duration, and errors per normalized route.
"""
import re
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from app.utils.metrics import http_requests_total, http_request_duration_seconds, errors_total

_UUID_RE = re.compile(
    r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}',
    re.IGNORECASE
)
_NUMERIC_SEGMENT_RE = re.compile(r'/\d+(?=/|$)')
# Provider task ids are opaque strings, so match them by position
_TASK_STATUS_RE = re.compile(r'^(/api/generation/status/)[^/]+$')
_TASK_ABANDON_RE = re.compile(r'^(/api/generation/)[^/]+(/abandon)$')


def normalize_path(path: str) -> str:
    """
    Collapse ids in a path into placeholders to bound label cardinality.

    /api/generation/status/abc123 -> /api/generation/status/{task_id}
    """
    path = _TASK_STATUS_RE.sub(r'\1{task_id}', path)
    path = _TASK_ABANDON_RE.sub(r'\1{task_id}\2', path)
    path = _UUID_RE.sub('{id}', path)
    return _NUMERIC_SEGMENT_RE.sub('/{id}', path)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next):
        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.time()
        method = request.method
        path = normalize_path(request.url.path)

        try:
            response = await call_next(request)
        except Exception:
            errors_total.labels(error_type="exception").inc()
            raise

        http_requests_total.labels(method=method, path=path, status=response.status_code).inc()
        http_request_duration_seconds.labels(method=method, path=path).observe(time.time() - start_time)

        if response.status_code >= 400:
            errors_total.labels(error_type=f"{response.status_code // 100}xx").inc()

        return response
