"""Integration tests for application startup and shutdown."""

import pytest
from pytest_mock import MockerFixture

from src.api.main import lifespan
from src.infrastructure.sessions import MemorySessionStore
from tests.integration.conftest import AppFactory


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.integration
class TestLifespan:
    """Test the startup housekeeping."""

    async def test_purges_expired_sessions(self, app_factory: AppFactory) -> None:
        # Arrange
        clock = FakeClock()
        store = MemorySessionStore(60, clock=clock)
        await store.set("stale", {"user_id": 1})
        clock.now += 61
        await store.set("fresh", {"user_id": 2})
        app = app_factory(session_store=store)

        # Act
        async with lifespan(app):
            remaining = len(store)

        # Assert
        assert remaining == 1
        assert await store.get("fresh") == {"user_id": 2}

    async def test_starts_without_database(
        self, app_factory: AppFactory, mocker: MockerFixture
    ) -> None:
        # Arrange
        store = mocker.AsyncMock(spec=MemorySessionStore)
        mocker.patch(
            "src.api.main.check_database_connection",
            return_value=(False, "connection refused"),
        )
        app = app_factory(session_store=store)

        # Act
        async with lifespan(app):
            pass

        # Assert
        store.purge_expired.assert_not_called()
