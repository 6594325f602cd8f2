"""
Prometheus metrics middleware for HTTP requests.

Records request counts, latency and in-flight requests per route template.
WebSocket traffic is not seen here; it is counted by the session layer.
"""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

from webhook_relay.utils.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)


def _endpoint_label(request: Request) -> str:
    """
    Resolve the route template for a request (e.g. "/alert/{webhook_id}").

    Labelling by template keeps metric cardinality bounded and keeps webhook
    ids, which act as private channel names, out of the metrics output.
    """
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return "unmatched"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Tracks:
    - http_requests_total{method,endpoint,status_code}
    - http_request_duration_seconds{method,endpoint}
    - http_requests_in_progress{method,endpoint}

    A request whose handler raises is counted with status 500.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        labels = {"method": request.method, "endpoint": _endpoint_label(request)}
        status_code = 500

        in_progress = http_requests_in_progress.labels(**labels)
        in_progress.inc()
        started = time.perf_counter()

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            http_request_duration_seconds.labels(**labels).observe(
                time.perf_counter() - started
            )
            http_requests_total.labels(**labels, status_code=status_code).inc()
            in_progress.dec()
