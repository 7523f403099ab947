"""HTTP access logging with timings.

Every request that reaches this stage produces one "Request completed" (or
"Request failed") record carrying method, path, status, duration and client,
plus a warning when the request was slower than the configured threshold.
Static assets are logged too since this stage sits in front of them.
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.api.utils.client import get_client_host
from src.core.config import LogConfig

MAX_USER_AGENT_LENGTH = 200


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses.

    Args:
        app: The ASGI application.
        log_config: Logging configuration.
        trust_proxy_headers: Resolve the client from proxy headers.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        log_config: LogConfig,
        trust_proxy_headers: bool = False,
    ) -> None:
        super().__init__(app)
        self.log_config = log_config
        self.excluded_paths = set(log_config.excluded_paths)
        self.trust_proxy_headers = trust_proxy_headers

    def _get_user_agent(self, request: Request) -> str:
        """Extract the user agent, truncated to keep log lines bounded."""
        ua = request.headers.get("user-agent", "")
        return ua[:MAX_USER_AGENT_LENGTH] if ua else "unknown"

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process the request and log details.

        Raises:
            Exception: Any exception raised downstream is re-raised after
                logging.
        """
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        with logger.contextualize(
            method=request.method,
            path=request.url.path,
            client_host=get_client_host(
                request.scope, trust_proxy_headers=self.trust_proxy_headers
            ),
            user_agent=self._get_user_agent(request),
        ):
            start_time = time.perf_counter()

            try:
                response = await call_next(request)
            except Exception as exc:
                duration_ms = (time.perf_counter() - start_time) * 1000
                logger.error(
                    "Request failed",
                    duration_ms=round(duration_ms, 2),
                    error_type=type(exc).__name__,
                )
                raise

            duration_ms = (time.perf_counter() - start_time) * 1000

            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
                response_size=int(response.headers.get("content-length", 0)),
            )

            if duration_ms > self.log_config.slow_request_threshold_ms:
                logger.warning(
                    "Slow request detected",
                    duration_ms=round(duration_ms, 2),
                    threshold_ms=self.log_config.slow_request_threshold_ms,
                )

            return response
