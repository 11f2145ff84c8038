"""
Request correlation middleware.

Binds a correlation ID to the logging context of every request and echoes
it back in the X-Request-ID response header.
"""

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from smart_vitals.config.logging import set_correlation_id

HEADER_NAME = "X-Request-ID"
MAX_INCOMING_ID_LENGTH = 64


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware that tags each request with a correlation ID."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get(HEADER_NAME, "")[:MAX_INCOMING_ID_LENGTH]
        correlation_id = set_correlation_id(incoming or None)
        response = await call_next(request)
        response.headers[HEADER_NAME] = correlation_id
        return response
