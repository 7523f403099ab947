"""Request context middleware for correlation and request identifiers.

Key features:
- **Correlation ID propagation**: Extracts or generates unique IDs per request
- **Request ID**: One fresh identifier per HTTP exchange
- **Context variables**: Uses Python contextvars for async-safe propagation
- **Loguru integration**: Binds both identifiers to all logs of the request
- **Response headers**: Echoes the identifiers for client-side tracing
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.api.constants import CORRELATION_ID_HEADER, REQUEST_ID_HEADER
from src.core.context import (
    RequestContext,
    generate_correlation_id,
    generate_request_id,
)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to manage request context and correlation IDs."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process the request with context management.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: Response with correlation and request ID headers.
        """
        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        )
        request_id = generate_request_id()

        RequestContext.set_correlation_id(correlation_id)
        RequestContext.set_request_id(request_id)

        # contextualize keeps the ids scoped to this request's logs
        with logger.contextualize(correlation_id=correlation_id, request_id=request_id):
            response = await call_next(request)

            response.headers[CORRELATION_ID_HEADER] = correlation_id
            response.headers[REQUEST_ID_HEADER] = request_id

            return response
