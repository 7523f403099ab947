"""Declarative request pipeline.

The middleware chain is an ordered list of ``Stage`` descriptors built by
``build_stages`` and installed by ``install_stages``. The first stage in the
list sees the request first and the response last. A stage with a path
predicate only runs for requests it applies to; other requests skip it.

Request direction (outermost first):

 1. security_headers   CSP and hardening headers
 2. cors               single trusted origin, credentials allowed
 3. compression        gzip for larger responses
 -  request_context    correlation and request ids
 4. request_logging    access log with timings
 -  error_boundary     one error response per failed request
 5. cookies            parsed Cookie header
 6. static_assets      public files, short-circuits the rest
 7. templates          Jinja2 renderer
 8. body_parsing       JSON and urlencoded bodies with size limits
 9. sanitization       operator keys and markup neutralised
10. session            server-side session
11. authentication     principal restored from the session
12. flash              flash message queue
13. template_globals   user and flash messages for every page
14. admin_rate_limit   /admin only, fixed window per client
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from fastapi import FastAPI
from loguru import logger
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.templating import Jinja2Templates
from starlette.types import ASGIApp, Receive, Scope, Send

from src.api.auth import SessionAuthBackend, UserLoader
from src.api.constants import GZIP_MINIMUM_SIZE
from src.api.middleware.body_parsing import BodyParsingMiddleware
from src.api.middleware.cookies import CookieParsingMiddleware
from src.api.middleware.error_handler import ErrorBoundaryMiddleware
from src.api.middleware.flash import FlashMiddleware
from src.api.middleware.rate_limit import RateLimitMiddleware
from src.api.middleware.request_context import RequestContextMiddleware
from src.api.middleware.request_logging import RequestLoggingMiddleware
from src.api.middleware.sanitization import SanitizationMiddleware
from src.api.middleware.security_headers import SecurityHeadersMiddleware
from src.api.middleware.sessions import ServerSideSessionMiddleware
from src.api.middleware.static_assets import StaticAssetsMiddleware
from src.api.middleware.templates import (
    TemplateGlobalsMiddleware,
    TemplateRendererMiddleware,
)
from src.core.config import Settings
from src.infrastructure.rate_limit import RateLimitStore
from src.infrastructure.sessions import SessionStore

type ScopePredicate = Callable[[Scope], bool]


def always(_scope: Scope) -> bool:
    return True


def path_prefix(prefix: str) -> ScopePredicate:
    """Predicate matching ``prefix`` itself and every path below it.

    Example:
        >>> under_admin = path_prefix("/admin")
        >>> under_admin({"path": "/admin/users"}), under_admin({"path": "/administer"})
        (True, False)
    """
    prefix = prefix.rstrip("/")

    def matches(scope: Scope) -> bool:
        path: str = scope.get("path", "")
        return path == prefix or path.startswith(prefix + "/")

    return matches


@dataclass(frozen=True, slots=True)
class Stage:
    """One step of the request pipeline."""

    name: str
    middleware: type[Any]
    options: dict[str, Any] = field(default_factory=dict)
    applies_to: ScopePredicate = always


class ConditionalMiddleware:
    """Run ``middleware`` only for requests matching ``predicate``.

    Non-HTTP connections and non-matching requests go straight to the next
    application.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        middleware: type[Any],
        predicate: ScopePredicate,
        **options: Any,
    ) -> None:
        self.app = app
        self.wrapped = middleware(app, **options)
        self.predicate = predicate

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and self.predicate(scope):
            await self.wrapped(scope, receive, send)
        else:
            await self.app(scope, receive, send)


def build_stages(
    settings: Settings,
    *,
    templates: Jinja2Templates,
    session_store: SessionStore,
    rate_limit_store: RateLimitStore,
    user_loader: UserLoader,
) -> list[Stage]:
    """Build the ordered stage list for the site."""
    security = settings.security_config
    session_config = settings.session_config
    rate_limit = settings.rate_limit_config

    return [
        Stage(
            "security_headers",
            SecurityHeadersMiddleware,
            {
                "content_security_policy": security.content_security_policy,
                "hsts_enabled": security.hsts_enabled,
                "hsts_max_age": security.hsts_max_age,
            },
        ),
        Stage(
            "cors",
            CORSMiddleware,
            {
                "allow_origins": [security.cors_origin],
                "allow_credentials": True,
                "allow_methods": ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
            },
        ),
        Stage("compression", GZipMiddleware, {"minimum_size": GZIP_MINIMUM_SIZE}),
        Stage("request_context", RequestContextMiddleware),
        Stage(
            "request_logging",
            RequestLoggingMiddleware,
            {
                "log_config": settings.log_config,
                "trust_proxy_headers": security.trust_proxy_headers,
            },
        ),
        Stage("error_boundary", ErrorBoundaryMiddleware),
        Stage("cookies", CookieParsingMiddleware),
        Stage("static_assets", StaticAssetsMiddleware, {"directory": settings.static_dir}),
        Stage("templates", TemplateRendererMiddleware, {"templates": templates}),
        Stage(
            "body_parsing",
            BodyParsingMiddleware,
            {
                "json_limit": settings.body_config.json_limit_bytes,
                "form_limit": settings.body_config.form_limit_bytes,
            },
        ),
        Stage(
            "sanitization",
            SanitizationMiddleware,
            {
                "operator_key_action": settings.sanitize_config.operator_key_action,
                "escape_markup": settings.sanitize_config.escape_markup,
            },
        ),
        Stage(
            "session",
            ServerSideSessionMiddleware,
            {
                "store": session_store,
                "secret": session_config.secret.get_secret_value(),
                "cookie_name": session_config.cookie_name,
                "max_age": session_config.cookie_max_age_seconds,
                "same_site": session_config.same_site,
                "https_only": session_config.cookie_secure,
            },
        ),
        Stage(
            "authentication",
            AuthenticationMiddleware,
            {"backend": SessionAuthBackend(user_loader)},
        ),
        Stage("flash", FlashMiddleware),
        Stage("template_globals", TemplateGlobalsMiddleware),
        Stage(
            "admin_rate_limit",
            RateLimitMiddleware,
            {
                "store": rate_limit_store,
                "max_requests": rate_limit.max_requests,
                "window_seconds": rate_limit.window_seconds,
                "message": rate_limit.message,
                "key_prefix": "admin",
                "trust_proxy_headers": security.trust_proxy_headers,
            },
            applies_to=path_prefix(rate_limit.path_prefix),
        ),
    ]


def install_stages(app: FastAPI, stages: Sequence[Stage]) -> None:
    """Install ``stages`` so that the first one is the outermost.

    Raises:
        ValueError: If two stages share a name.
    """
    names = [stage.name for stage in stages]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        msg = f"Duplicate pipeline stage names: {', '.join(duplicates)}"
        raise ValueError(msg)

    # add_middleware prepends, so install innermost first
    for stage in reversed(stages):
        if stage.applies_to is always:
            app.add_middleware(stage.middleware, **stage.options)
        else:
            app.add_middleware(
                ConditionalMiddleware,
                middleware=stage.middleware,
                predicate=stage.applies_to,
                **stage.options,
            )

    app.state.stages = tuple(stages)
    logger.info("Request pipeline installed", stages=names)
