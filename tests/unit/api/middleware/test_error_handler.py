"""Unit tests for src/api/middleware/error_handler.py module."""

from types import SimpleNamespace

import orjson
import pytest
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.responses import PlainTextResponse
from starlette.types import Receive, Scope, Send

from src.api.middleware.error_handler import (
    ErrorBoundaryMiddleware,
    generic_exception_handler,
    http_exception_handler,
    renimusic_error_handler,
    resolve_handler,
    status_code_for,
    validation_error_handler,
)
from src.core.config import Settings
from src.core.exceptions import (
    ErrorCode,
    ForbiddenError,
    NotFoundError,
    PayloadTooLargeError,
    RenimusicError,
    UnauthorizedError,
    ValidationError,
)
from tests.unit.api.helpers import ClientFactory, make_request


@pytest.mark.unit
class TestStatusCodeFor:
    """Test the exception to status code mapping."""

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (PayloadTooLargeError("big", limit=1), 413),
            (ValidationError("bad"), 400),
            (UnauthorizedError("who"), 401),
            (ForbiddenError("no"), 403),
            (NotFoundError("gone"), 404),
            (RenimusicError(ErrorCode.INTERNAL_ERROR, "boom"), 500),
        ],
    )
    def test_mapping(self, error: RenimusicError, status_code: int) -> None:
        assert status_code_for(error) == status_code


@pytest.mark.unit
class TestResolveHandler:
    """Test handler dispatch."""

    @pytest.mark.parametrize(
        ("error", "handler"),
        [
            (ValidationError("bad"), renimusic_error_handler),
            (RequestValidationError([]), validation_error_handler),
            (HTTPException(404), http_exception_handler),
            (KeyError("x"), generic_exception_handler),
        ],
    )
    def test_dispatch(self, error: Exception, handler: object) -> None:
        assert resolve_handler(error) is handler


@pytest.mark.unit
class TestHandlers:
    """Test the error response bodies."""

    async def test_renimusic_error_response(self) -> None:
        # Arrange
        error = ForbiddenError("Administrator access required")

        # Act
        response = await renimusic_error_handler(make_request("/admin/"), error)

        # Assert
        body = orjson.loads(response.body)
        assert response.status_code == 403
        assert body["error_code"] == "FORBIDDEN"
        assert body["message"] == "Administrator access required"
        assert body["severity"] == "HIGH"
        assert body["request_id"].startswith("req-")
        assert body["service_info"]["name"] == "Renimusic"

    async def test_payload_too_large_details(self) -> None:
        error = PayloadTooLargeError("Too big", limit=100)

        response = await renimusic_error_handler(make_request(method="POST"), error)

        assert response.status_code == 413
        assert orjson.loads(response.body)["details"] == {"limit_bytes": 100}

    async def test_wrong_exception_type(self) -> None:
        with pytest.raises(TypeError, match="Expected RenimusicError"):
            await renimusic_error_handler(make_request(), ValueError("x"))

    async def test_http_exception_keeps_headers(self) -> None:
        error = HTTPException(405, "Method Not Allowed", headers={"Allow": "GET"})

        response = await http_exception_handler(make_request(method="PUT"), error)

        assert response.status_code == 405
        assert response.headers["Allow"] == "GET"
        assert orjson.loads(response.body)["error_code"] == "NOT_FOUND"

    async def test_validation_error_lists_fields(self) -> None:
        error = RequestValidationError(
            [{"loc": ("body", "email"), "msg": "Field required", "type": "missing"}]
        )

        response = await validation_error_handler(make_request(method="POST"), error)

        body = orjson.loads(response.body)
        assert response.status_code == 422
        assert body["details"] == {"validation_errors": {"email": ["Field required"]}}

    async def test_generic_error_in_development_shows_type(self) -> None:
        response = await generic_exception_handler(make_request(), KeyError("flash"))

        body = orjson.loads(response.body)
        assert response.status_code == 500
        assert body["message"] == "Internal server error: KeyError"
        assert body["severity"] == "CRITICAL"

    async def test_generic_error_in_production_hides_details(
        self, monkeypatch: pytest.MonkeyPatch, clear_settings_cache: None
    ) -> None:
        # Arrange
        _ = clear_settings_cache
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("SESSION_CONFIG__SECRET", "production-secret")

        # Act
        response = await generic_exception_handler(
            make_request(), RuntimeError("database password is hunter2")
        )

        # Assert
        body = orjson.loads(response.body)
        assert body["message"] == "An internal server error occurred"
        assert body["details"] is None
        assert body["debug_info"] is None
        assert "hunter2" not in response.body.decode()

    async def test_application_settings_take_precedence(
        self, monkeypatch: pytest.MonkeyPatch, clear_settings_cache: None
    ) -> None:
        # Arrange
        _ = clear_settings_cache
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("SESSION_CONFIG__SECRET", "production-secret")
        production = Settings()
        monkeypatch.setenv("ENVIRONMENT", "development")
        request = make_request()
        request.scope["app"] = SimpleNamespace(
            state=SimpleNamespace(settings=production)
        )

        # Act
        response = await generic_exception_handler(
            request, RuntimeError("database password is hunter2")
        )

        # Assert
        body = orjson.loads(response.body)
        assert body["message"] == "An internal server error occurred"
        assert body["service_info"]["environment"] == "production"
        assert "hunter2" not in response.body.decode()


@pytest.mark.unit
class TestErrorBoundaryMiddleware:
    """Test conversion of stage exceptions into responses."""

    async def test_stage_error_becomes_response(
        self, client_factory: ClientFactory
    ) -> None:
        async def failing_stage(scope: Scope, receive: Receive, send: Send) -> None:
            raise PayloadTooLargeError("Request body exceeds the 10 byte limit", 10)

        client = await client_factory(ErrorBoundaryMiddleware(failing_stage))

        response = await client.post("/contact_me", content=b"x" * 20)

        assert response.status_code == 413
        assert response.json()["error_code"] == "PAYLOAD_TOO_LARGE"

    async def test_unexpected_error_becomes_500(
        self, client_factory: ClientFactory
    ) -> None:
        async def failing_stage(scope: Scope, receive: Receive, send: Send) -> None:
            raise RuntimeError("boom")

        client = await client_factory(ErrorBoundaryMiddleware(failing_stage))

        response = await client.get("/")

        assert response.status_code == 500
        assert response.json()["error_code"] == "INTERNAL_ERROR"

    async def test_error_after_response_started_propagates(
        self, client_factory: ClientFactory
    ) -> None:
        async def half_sent(scope: Scope, receive: Receive, send: Send) -> None:
            await send({"type": "http.response.start", "status": 200, "headers": []})
            raise RuntimeError("late failure")

        client = await client_factory(ErrorBoundaryMiddleware(half_sent))

        with pytest.raises(RuntimeError, match="late failure"):
            await client.get("/")

    async def test_success_passes_through(self, client_factory: ClientFactory) -> None:
        async def ok(scope: Scope, receive: Receive, send: Send) -> None:
            await PlainTextResponse("ok")(scope, receive, send)

        client = await client_factory(ErrorBoundaryMiddleware(ok))

        response = await client.get("/")

        assert response.text == "ok"
