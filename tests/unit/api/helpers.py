"""ASGI helpers shared by the API unit tests."""

from collections.abc import Awaitable, Callable

from httpx import AsyncClient
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

type ClientFactory = Callable[[ASGIApp], Awaitable[AsyncClient]]


async def echo_app(scope: Scope, receive: Receive, send: Send) -> None:
    """Inner application echoing what the stages left for the handler."""
    request = Request(scope, receive)
    raw = await request.body()
    state = scope.get("state", {})
    response = JSONResponse(
        {
            "body": state.get("body"),
            "raw": raw.decode("utf-8"),
            "query": dict(request.query_params),
            "content_length": request.headers.get("content-length"),
        }
    )
    await response(scope, receive, send)


def make_request(path: str = "/", method: str = "GET") -> Request:
    """Build a minimal HTTP request for calling handlers directly."""
    return Request(
        {
            "type": "http",
            "method": method,
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "scheme": "http",
            "server": ("test", 80),
            "client": ("127.0.0.1", 50000),
            "headers": [],
            "query_string": b"",
        }
    )
