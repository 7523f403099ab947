"""Centralized exception handling.

The same handler functions serve two entry points:

- they are registered as the application's exception handlers, which covers
  exceptions raised by route handlers and dependencies;
- ``ErrorBoundaryMiddleware`` dispatches to them for exceptions raised by the
  pipeline stages themselves (body parsing limits, sanitization rejections,
  ...), which never reach the application's exception handlers.

Either way a request produces exactly one ``ErrorResponse``.
"""

import traceback
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException
from starlette.requests import ClientDisconnect
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.api.constants import HTTP_500_INTERNAL_SERVER_ERROR
from src.api.schemas.errors import ErrorResponse, ServiceInfo
from src.api.utils.responses import ORJSONResponse
from src.core.config import Settings, get_settings
from src.core.context import RequestContext, generate_request_id
from src.core.error_context import sanitize_error_context
from src.core.exceptions import (
    ErrorCode,
    ForbiddenError,
    NotFoundError,
    PayloadTooLargeError,
    RenimusicError,
    Severity,
    UnauthorizedError,
    ValidationError,
)

type ExceptionHandler = Callable[[Request, Exception], Awaitable[Response]]

# First match wins, so subclasses come before their bases
ERROR_STATUS_CODES: tuple[tuple[type[RenimusicError], int], ...] = (
    (PayloadTooLargeError, status.HTTP_413_CONTENT_TOO_LARGE),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
)

HTTP_ERROR_CODES: dict[int, tuple[ErrorCode, Severity]] = {
    status.HTTP_400_BAD_REQUEST: (ErrorCode.VALIDATION_ERROR, Severity.LOW),
    status.HTTP_401_UNAUTHORIZED: (ErrorCode.UNAUTHORIZED, Severity.HIGH),
    status.HTTP_403_FORBIDDEN: (ErrorCode.FORBIDDEN, Severity.HIGH),
    status.HTTP_404_NOT_FOUND: (ErrorCode.NOT_FOUND, Severity.LOW),
    status.HTTP_405_METHOD_NOT_ALLOWED: (ErrorCode.NOT_FOUND, Severity.LOW),
    status.HTTP_413_CONTENT_TOO_LARGE: (ErrorCode.PAYLOAD_TOO_LARGE, Severity.LOW),
}


def get_service_info(settings: Settings) -> ServiceInfo:
    """Create ServiceInfo from application settings."""
    return ServiceInfo(
        name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )


def settings_for(request: Request) -> Settings:
    """Settings of the application serving ``request``, else the global ones."""
    app = request.scope.get("app")
    settings = getattr(getattr(app, "state", None), "settings", None)
    return settings if isinstance(settings, Settings) else get_settings()


def current_request_id() -> str:
    """Request id of the current exchange, or a fresh one outside a request."""
    return RequestContext.get_request_id() or generate_request_id()


def status_code_for(exc: RenimusicError) -> int:
    """Map an application exception to its HTTP status code."""
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def renimusic_error_handler(request: Request, exc: Exception) -> Response:
    """Handle RenimusicError exceptions.

    Raises:
        TypeError: If exc is not a RenimusicError instance
    """
    if not isinstance(exc, RenimusicError):
        raise TypeError(f"Expected RenimusicError, got {type(exc).__name__}")

    settings = settings_for(request)
    correlation_id = RequestContext.get_correlation_id()
    status_code = status_code_for(exc)

    error_context = sanitize_error_context(
        exc,
        {
            "request_method": request.method,
            "request_path": str(request.url.path),
            "error_code": exc.error_code,
        },
    )

    log = logger.warning if exc.is_expected else logger.error
    log(
        "Handling {exception_type}: {message}",
        exception_type=type(exc).__name__,
        message=exc.message,
        status_code=status_code,
        **error_context,
    )

    debug_info = None
    if settings.environment == "development":
        debug_info = {
            "stack_trace": exc.stack_trace,
            "error_context": exc.context or {},
            "exception_type": type(exc).__name__,
        }
        if exc.cause:
            debug_info["cause"] = {
                "type": type(exc.cause).__name__,
                "message": str(exc.cause),
            }

    error_response = ErrorResponse(
        error_code=exc.error_code,
        message=exc.message,
        details=exc.context or None,
        correlation_id=correlation_id,
        request_id=current_request_id(),
        severity=exc.severity.value,
        service_info=get_service_info(settings),
        debug_info=debug_info,
    )

    return ORJSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json"),
    )


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Handle FastAPI RequestValidationError exceptions.

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    settings = settings_for(request)

    field_errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field_path = error.get("loc", ())
        field_name = ".".join(str(loc) for loc in field_path[1:] if loc != "__root__")
        field_errors.setdefault(field_name or "root", []).append(
            error.get("msg", "Invalid value")
        )

    error_context = sanitize_error_context(
        exc,
        {
            "path": str(request.url.path),
            "method": request.method,
            "validation_errors": field_errors,
        },
    )
    logger.warning(
        "Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        **error_context,
    )

    error_response = ErrorResponse(
        error_code=ErrorCode.VALIDATION_ERROR.value,
        message="Request validation failed",
        details={"validation_errors": field_errors},
        correlation_id=RequestContext.get_correlation_id(),
        request_id=current_request_id(),
        severity=Severity.LOW.value,
        service_info=get_service_info(settings),
    )

    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=error_response.model_dump(mode="json"),
    )


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette HTTPException (unknown routes, wrong methods, ...).

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    settings = settings_for(request)

    error_code, severity = HTTP_ERROR_CODES.get(
        exc.status_code, (ErrorCode.INTERNAL_ERROR, Severity.MEDIUM)
    )
    if exc.status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        severity = Severity.HIGH

    error_context = sanitize_error_context(
        exc,
        {
            "status": exc.status_code,
            "method": request.method,
            "path": str(request.url.path),
            "detail": exc.detail,
        },
    )
    logger.warning("HTTP exception", **error_context)

    error_response = ErrorResponse(
        error_code=error_code.value,
        message=str(exc.detail),
        correlation_id=RequestContext.get_correlation_id(),
        request_id=current_request_id(),
        severity=severity.value,
        service_info=get_service_info(settings),
    )

    return ORJSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(mode="json"),
        headers=exc.headers,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle any other exception.

    In production, hides internal error details from clients.
    """
    settings = settings_for(request)

    error_context = sanitize_error_context(
        exc,
        {
            "request_method": request.method,
            "request_path": str(request.url.path),
        },
    )
    logger.opt(exception=exc).error(
        "Unhandled exception: {exception_type}",
        exception_type=type(exc).__name__,
        **error_context,
    )

    if settings.environment == "production":
        message = "An internal server error occurred"
        details = None
        debug_info = None
    else:
        message = f"Internal server error: {type(exc).__name__}"
        details = {"error": str(exc), "type": type(exc).__name__}
        debug_info = {
            "stack_trace": traceback.format_tb(exc.__traceback__),
            "error_context": {
                "error_message": str(exc),
                "error_args": [str(arg) for arg in exc.args],
            },
            "exception_type": type(exc).__name__,
        }

    error_response = ErrorResponse(
        error_code=ErrorCode.INTERNAL_ERROR.value,
        message=message,
        details=details,
        correlation_id=RequestContext.get_correlation_id(),
        request_id=current_request_id(),
        severity=Severity.CRITICAL.value,
        service_info=get_service_info(settings),
        debug_info=debug_info,
    )

    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(mode="json"),
    )


def resolve_handler(exc: Exception) -> ExceptionHandler:
    """Pick the handler responsible for ``exc``."""
    if isinstance(exc, RenimusicError):
        return renimusic_error_handler
    if isinstance(exc, RequestValidationError):
        return validation_error_handler
    if isinstance(exc, HTTPException):
        return http_exception_handler
    return generic_exception_handler


class ErrorBoundaryMiddleware:
    """Convert exceptions escaping the wrapped stages into error responses.

    If the response has already started there is nothing left to convert and
    the exception propagates to the server.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except ClientDisconnect:
            logger.debug("Client disconnected before the request body was read")
        except Exception as exc:
            if response_started:
                raise
            handler = resolve_handler(exc)
            response = await handler(Request(scope), exc)
            await response(scope, receive, send)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(RenimusicError, renimusic_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
