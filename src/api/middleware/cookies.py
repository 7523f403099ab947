"""Cookie parsing stage."""

from starlette.datastructures import Headers
from starlette.requests import cookie_parser
from starlette.types import ASGIApp, Receive, Scope, Send


class CookieParsingMiddleware:
    """Parse the ``Cookie`` header once and expose it as ``request.state.cookies``."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] in ("http", "websocket"):
            cookie_header = Headers(scope=scope).get("cookie", "")
            scope.setdefault("state", {})["cookies"] = cookie_parser(cookie_header)
        await self.app(scope, receive, send)
