"""Fixed-window rate limiting stage.

Each client address gets ``max_requests`` requests per window. The request
that goes over the limit is answered here with ``429`` and nothing behind
this stage runs for it.
"""

from loguru import logger
from starlette.datastructures import MutableHeaders
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.api.utils.client import get_client_host
from src.infrastructure.rate_limit import RateLimitStore


class RateLimitMiddleware:
    """Admission control keyed on the client address.

    Args:
        app: The ASGI application to wrap.
        store: Counter storage.
        max_requests: Requests allowed per client per window.
        window_seconds: Window length in seconds.
        message: Body of the rejection response.
        key_prefix: Namespace of the counters in the store.
        trust_proxy_headers: Resolve the client from proxy headers.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        store: RateLimitStore,
        max_requests: int,
        window_seconds: int,
        message: str = "Too many requests",
        key_prefix: str = "ratelimit",
        trust_proxy_headers: bool = False,
    ) -> None:
        self.app = app
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self.key_prefix = key_prefix
        self.trust_proxy_headers = trust_proxy_headers

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        client = get_client_host(scope, trust_proxy_headers=self.trust_proxy_headers)
        count, reset_in = await self.store.increment(
            f"{self.key_prefix}:{client}", self.window_seconds
        )
        limit_headers = {
            "X-RateLimit-Limit": str(self.max_requests),
            "X-RateLimit-Remaining": str(max(self.max_requests - count, 0)),
        }

        if count > self.max_requests:
            logger.warning(
                "Rate limit exceeded",
                client_host=client,
                limit=self.max_requests,
                retry_after=reset_in,
            )
            response = PlainTextResponse(
                self.message,
                status_code=429,
                headers={"Retry-After": str(reset_in), **limit_headers},
            )
            await response(scope, receive, send)
            return

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in limit_headers.items():
                    headers[name] = value
            await send(message)

        await self.app(scope, receive, send_wrapper)
