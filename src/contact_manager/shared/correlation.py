"""
Correlation ID propagation for HTTP requests and WebSocket sessions.

The current ID lives in ``correlation_id_var`` so every structured log line
emitted while handling a request carries it.
"""

import uuid
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from contact_manager.shared.logging import correlation_id_var

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


@contextmanager
def correlation_id_context(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of the block.

    Args:
        correlation_id: ID to bind, a new one is generated when omitted.

    Yields:
        The bound correlation ID.
    """
    cid = correlation_id or generate_correlation_id()
    token = correlation_id_var.set(cid)
    try:
        yield cid
    finally:
        correlation_id_var.reset(token)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Take the correlation ID from request headers (or generate one) and echo it back."""

    def __init__(
        self,
        app: Any,
        header_name: str = CORRELATION_ID_HEADER,
        generator: Callable[[], str] = generate_correlation_id,
    ) -> None:
        super().__init__(app)
        self.header_name = header_name
        self.generator = generator

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        correlation_id = (
            request.headers.get(self.header_name)
            or request.headers.get(REQUEST_ID_HEADER)
            or self.generator()
        )

        with correlation_id_context(correlation_id):
            response = await call_next(request)

        response.headers[self.header_name] = correlation_id
        return response
