"""Shared fixtures for API unit tests."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.types import ASGIApp

from tests.unit.api.helpers import ClientFactory


@pytest.fixture
async def client_factory() -> AsyncGenerator[ClientFactory]:
    """Create httpx clients for bare ASGI applications."""
    clients: list[AsyncClient] = []

    async def _create(app: ASGIApp) -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield _create

    for client in clients:
        await client.aclose()
