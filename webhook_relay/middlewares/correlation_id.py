"""
Correlation ids for HTTP requests.

Each webhook POST gets a short id so its intake line, its per-connection
delivery warnings and its access log line can be grouped.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "X-Correlation-ID"
CORRELATION_ID_LENGTH = 8

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def _new_correlation_id() -> str:
    return uuid.uuid4().hex[:CORRELATION_ID_LENGTH]


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Take the caller's X-Correlation-ID (truncated to 8 characters) or mint
    one, expose it on `request.state.request_id` and in a context variable
    for the duration of the request, and echo it back on the response.

    WebSocket scopes pass through untouched; subscriber log lines are tagged
    with their client id instead.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = (
            request.headers.get(CORRELATION_HEADER) or _new_correlation_id()
        )[:CORRELATION_ID_LENGTH]
        request.state.request_id = cid

        token = correlation_id.set(cid)
        try:
            response = await call_next(request)
        finally:
            correlation_id.reset(token)

        response.headers[CORRELATION_HEADER] = cid
        return response


def get_correlation_id() -> str:
    """The current request's correlation id, or "" outside a request."""
    return correlation_id.get()
