"""Shared fixtures for integration tests.

Every test gets its own SQLite database file and a freshly built application
whose mailer records messages instead of talking to an SMTP relay.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.api.main import create_app
from src.core.config import Settings, get_settings
from src.core.security import hash_password
from src.infrastructure.database import Base, User, UserRepository
from src.infrastructure.database.session import (
    _db_manager,
    close_database,
    get_async_session,
    get_engine,
)
from src.infrastructure.rate_limit import MemoryRateLimitStore
from src.infrastructure.sessions import MemorySessionStore
from src.services.mail import ContactMessage, DeliveryResult

TEST_PASSWORD = "correct-horse-battery"  # noqa: S105


class RecordingMailer:
    """Mailer double keeping every message it was asked to send."""

    def __init__(self, *, deliver: bool = True) -> None:
        self.deliver = deliver
        self.messages: list[ContactMessage] = []

    async def send(self, message: ContactMessage) -> DeliveryResult:
        self.messages.append(message)
        if self.deliver:
            return DeliveryResult(delivered=True, message_id="<test@renimusic.com>")
        return DeliveryResult(delivered=False, reason="Connection refused")


type AppFactory = Callable[..., FastAPI]
type ClientFactory = Callable[[FastAPI], Awaitable[AsyncClient]]
type UserFactory = Callable[..., Awaitable[User]]


@pytest.fixture
async def database(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> AsyncGenerator[str]:
    """Point the application at a fresh SQLite database with all tables."""
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'renimusic.db'}"
    monkeypatch.setenv("DATABASE_CONFIG__DATABASE_URL", database_url)
    get_settings.cache_clear()
    _db_manager.reset()

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield database_url

    await close_database()
    get_settings.cache_clear()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def app_factory(database: str, mailer: RecordingMailer) -> AppFactory:
    """Build applications against the test database.

    Keyword arguments are forwarded to ``create_app``; ``settings`` defaults
    to the current environment.
    """
    _ = database

    def _create(**kwargs: object) -> FastAPI:
        kwargs.setdefault("settings", get_settings())
        kwargs.setdefault("mailer", mailer)
        kwargs.setdefault("session_store", MemorySessionStore(3600))
        kwargs.setdefault("rate_limit_store", MemoryRateLimitStore())
        return create_app(**kwargs)  # type: ignore[arg-type]

    return _create


@pytest.fixture
def app(app_factory: AppFactory) -> FastAPI:
    return app_factory()


@pytest.fixture
async def client_factory() -> AsyncGenerator[ClientFactory]:
    """Factory for additional clients, each with its own cookie jar."""
    clients: list[AsyncClient] = []

    async def _create(application: FastAPI) -> AsyncClient:
        client = AsyncClient(
            transport=ASGITransport(app=application), base_url="http://test"
        )
        clients.append(client)
        return client

    yield _create

    for client in clients:
        await client.aclose()


@pytest.fixture
async def client(app: FastAPI, client_factory: ClientFactory) -> AsyncClient:
    return await client_factory(app)


@pytest.fixture
def create_user(database: str) -> UserFactory:
    """Insert a user with ``TEST_PASSWORD`` as password."""
    _ = database

    async def _create(
        email: str, *, name: str = "Test User", is_admin: bool = False
    ) -> User:
        async with get_async_session() as db:
            return await UserRepository(db).create(
                User(
                    name=name,
                    email=email,
                    password_hash=hash_password(TEST_PASSWORD, rounds=4),
                    is_admin=is_admin,
                )
            )

    return _create


@pytest.fixture
def login() -> Callable[[AsyncClient, str], Awaitable[None]]:
    """Log a client in; fails the test if the credentials are refused."""

    async def _login(client: AsyncClient, email: str) -> None:
        response = await client.post(
            "/auth/login", data={"email": email, "password": TEST_PASSWORD}
        )
        assert response.status_code == 303
        assert response.headers["location"] != "/auth/login"

    return _login


@pytest.fixture
def settings_with(monkeypatch: pytest.MonkeyPatch) -> Callable[..., Settings]:
    """Build settings from the environment plus ``NAME=value`` overrides."""

    def _build(**env: str) -> Settings:
        for name, value in env.items():
            monkeypatch.setenv(name, value)
        get_settings.cache_clear()
        return get_settings()

    return _build
