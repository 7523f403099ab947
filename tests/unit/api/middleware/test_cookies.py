"""Unit tests for src/api/middleware/cookies.py module."""

import pytest
from starlette.responses import JSONResponse
from starlette.types import Receive, Scope, Send

from src.api.middleware.cookies import CookieParsingMiddleware
from tests.unit.api.helpers import ClientFactory


async def cookies_app(scope: Scope, receive: Receive, send: Send) -> None:
    await JSONResponse(scope["state"]["cookies"])(scope, receive, send)


@pytest.mark.unit
class TestCookieParsingMiddleware:
    """Test the cookie parsing stage."""

    async def test_parses_cookie_header(self, client_factory: ClientFactory) -> None:
        client = await client_factory(CookieParsingMiddleware(cookies_app))

        response = await client.get("/", headers={"Cookie": "a=1; theme=dark"})

        assert response.json() == {"a": "1", "theme": "dark"}

    async def test_no_cookie_header(self, client_factory: ClientFactory) -> None:
        client = await client_factory(CookieParsingMiddleware(cookies_app))

        response = await client.get("/")

        assert response.json() == {}
