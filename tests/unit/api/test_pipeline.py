"""Unit tests for src/api/pipeline.py module."""

import pytest
from fastapi import FastAPI
from pytest_mock import MockerFixture
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from src.api.middleware.rate_limit import RateLimitMiddleware
from src.api.pipeline import (
    ConditionalMiddleware,
    Stage,
    always,
    build_stages,
    install_stages,
    path_prefix,
)
from src.api.templating import create_templates
from src.core.config import Settings
from src.infrastructure.rate_limit import MemoryRateLimitStore
from src.infrastructure.sessions import MemorySessionStore
from tests.unit.api.helpers import ClientFactory

EXPECTED_ORDER = [
    "security_headers",
    "cors",
    "compression",
    "request_context",
    "request_logging",
    "error_boundary",
    "cookies",
    "static_assets",
    "templates",
    "body_parsing",
    "sanitization",
    "session",
    "authentication",
    "flash",
    "template_globals",
    "admin_rate_limit",
]


def make_stages(mocker: MockerFixture) -> list[Stage]:
    settings = Settings()
    return build_stages(
        settings,
        templates=create_templates(settings.templates_dir),
        session_store=MemorySessionStore(60),
        rate_limit_store=MemoryRateLimitStore(),
        user_loader=mocker.AsyncMock(return_value=None),
    )


class Marker:
    """Middleware appending its label to a shared trace list."""

    def __init__(self, app: ASGIApp, *, label: str, trace: list[str]) -> None:
        self.app = app
        self.label = label
        self.trace = trace

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        self.trace.append(self.label)
        await self.app(scope, receive, send)


async def ok_app(scope: Scope, receive: Receive, send: Send) -> None:
    await PlainTextResponse("ok")(scope, receive, send)


@pytest.mark.unit
class TestPathPrefix:
    """Test the path predicate."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/admin", True),
            ("/admin/", True),
            ("/admin/users", True),
            ("/administer", False),
            ("/", False),
        ],
    )
    def test_matches(self, path: str, expected: bool) -> None:
        assert path_prefix("/admin/")({"path": path}) is expected

    def test_always(self) -> None:
        assert always({"path": "/anything"})


@pytest.mark.unit
class TestBuildStages:
    """Test the site's stage list."""

    def test_order(self, mocker: MockerFixture) -> None:
        assert [stage.name for stage in make_stages(mocker)] == EXPECTED_ORDER

    def test_only_rate_limit_is_conditional(self, mocker: MockerFixture) -> None:
        conditional = [
            stage for stage in make_stages(mocker) if stage.applies_to is not always
        ]

        assert [stage.name for stage in conditional] == ["admin_rate_limit"]
        assert conditional[0].middleware is RateLimitMiddleware
        assert conditional[0].applies_to({"path": "/admin/"})
        assert not conditional[0].applies_to({"path": "/contact"})

    def test_cors_trusts_single_origin_with_credentials(
        self, mocker: MockerFixture
    ) -> None:
        cors = next(stage for stage in make_stages(mocker) if stage.name == "cors")

        assert cors.options["allow_origins"] == ["https://www.renimusic.com"]
        assert cors.options["allow_credentials"] is True

    def test_rate_limit_options(self, mocker: MockerFixture) -> None:
        stage = make_stages(mocker)[-1]

        assert stage.options["max_requests"] == 100
        assert stage.options["window_seconds"] == 3600
        assert stage.options["message"] == "Too many requests"


@pytest.mark.unit
class TestInstallStages:
    """Test installing stages on an application."""

    async def test_first_stage_is_outermost(
        self, client_factory: ClientFactory
    ) -> None:
        # Arrange
        trace: list[str] = []
        app = FastAPI()
        app.get("/")(lambda: "ok")
        stages = [
            Stage(label, Marker, {"label": label, "trace": trace})
            for label in ("first", "second", "third")
        ]

        # Act
        install_stages(app, stages)
        client = await client_factory(app)
        await client.get("/")

        # Assert
        assert trace == ["first", "second", "third"]
        assert app.state.stages == tuple(stages)

    async def test_conditional_stage_is_skipped(
        self, client_factory: ClientFactory
    ) -> None:
        # Arrange
        trace: list[str] = []
        app = FastAPI()
        app.get("/admin/")(lambda: "admin")
        app.get("/")(lambda: "home")
        install_stages(
            app,
            [
                Stage(
                    "admin_only",
                    Marker,
                    {"label": "admin", "trace": trace},
                    applies_to=path_prefix("/admin"),
                )
            ],
        )
        client = await client_factory(app)

        # Act
        await client.get("/")
        await client.get("/admin/")

        # Assert
        assert trace == ["admin"]

    def test_duplicate_names_rejected(self) -> None:
        stages = [Stage("cookies", Marker), Stage("cookies", Marker)]

        with pytest.raises(ValueError, match="Duplicate pipeline stage names: cookies"):
            install_stages(FastAPI(), stages)


@pytest.mark.unit
class TestConditionalMiddleware:
    """Test the predicate wrapper directly."""

    async def test_non_http_scope_passes_through(self, mocker: MockerFixture) -> None:
        inner = mocker.AsyncMock()
        wrapped = mocker.Mock()
        middleware = ConditionalMiddleware(
            inner, middleware=mocker.Mock(return_value=wrapped), predicate=always
        )

        await middleware({"type": "lifespan"}, mocker.AsyncMock(), mocker.AsyncMock())

        inner.assert_awaited_once()

    async def test_matching_request_runs_wrapped(
        self, client_factory: ClientFactory
    ) -> None:
        trace: list[str] = []
        middleware = ConditionalMiddleware(
            ok_app, middleware=Marker, predicate=always, label="m", trace=trace
        )
        client = await client_factory(middleware)

        await client.get("/")

        assert trace == ["m"]
