"""Unit tests for src/api/middleware/security_headers.py module."""

import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from src.api.middleware.security_headers import (
    STATIC_SECURITY_HEADERS,
    SecurityHeadersMiddleware,
    build_content_security_policy,
)
from tests.unit.api.helpers import ClientFactory


async def homepage(_request: Request) -> PlainTextResponse:
    return PlainTextResponse("ok")


def make_app(**options: object) -> Starlette:
    app = Starlette(routes=[Route("/", homepage)])
    app.add_middleware(SecurityHeadersMiddleware, **options)  # type: ignore[arg-type]
    return app


@pytest.mark.unit
class TestBuildContentSecurityPolicy:
    """Test CSP serialization."""

    def test_joins_directives(self) -> None:
        policy = build_content_security_policy(
            {
                "default-src": ["'self'"],
                "img-src": ["'self'", "https://res.cloudinary.com/"],
                "upgrade-insecure-requests": [],
            }
        )

        assert policy == (
            "default-src 'self'; img-src 'self' https://res.cloudinary.com/; "
            "upgrade-insecure-requests"
        )


@pytest.mark.unit
class TestSecurityHeadersMiddleware:
    """Test the headers added to every response."""

    async def test_adds_all_headers(self, client_factory: ClientFactory) -> None:
        # Arrange
        client = await client_factory(
            make_app(content_security_policy={"default-src": ["'self'"]})
        )

        # Act
        response = await client.get("/")

        # Assert
        for header, value in STATIC_SECURITY_HEADERS.items():
            assert response.headers[header] == value
        assert response.headers["Content-Security-Policy"] == "default-src 'self'"
        assert response.headers["Strict-Transport-Security"] == (
            "max-age=15552000; includeSubDomains"
        )

    async def test_hsts_disabled(self, client_factory: ClientFactory) -> None:
        client = await client_factory(make_app(hsts_enabled=False))

        response = await client.get("/")

        assert "Strict-Transport-Security" not in response.headers
        assert "Content-Security-Policy" not in response.headers

    async def test_hsts_preload(self, client_factory: ClientFactory) -> None:
        client = await client_factory(
            make_app(hsts_max_age=60, hsts_include_subdomains=False, hsts_preload=True)
        )

        response = await client.get("/")

        assert response.headers["Strict-Transport-Security"] == "max-age=60; preload"

    async def test_headers_on_not_found(self, client_factory: ClientFactory) -> None:
        client = await client_factory(make_app())

        response = await client.get("/missing")

        assert response.status_code == 404
        assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
