"""Template renderer and template globals stages."""

from typing import Any

from starlette.templating import Jinja2Templates
from starlette.types import ASGIApp, Receive, Scope, Send

from src.api.constants import FLASH_ERROR, FLASH_SUCCESS


class TemplateRendererMiddleware:
    """Expose the configured Jinja2 renderer as ``request.state.templates``."""

    def __init__(self, app: ASGIApp, *, templates: Jinja2Templates) -> None:
        self.app = app
        self.templates = templates

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            scope.setdefault("state", {})["templates"] = self.templates
        await self.app(scope, receive, send)


class TemplateGlobals:
    """Variables every page can use: ``user``, ``success_message`` and
    ``error_message``.

    Evaluated at render time, so flash messages are only consumed by a
    request that actually renders a page (and not by a redirect).
    """

    def __init__(self, scope: Scope) -> None:
        self.scope = scope

    def as_context(self) -> dict[str, Any]:
        user = self.scope.get("user")
        flash = self.scope.get("state", {}).get("flash")
        return {
            "user": user if user is not None and user.is_authenticated else None,
            "success_message": flash.consume(FLASH_SUCCESS) if flash else [],
            "error_message": flash.consume(FLASH_ERROR) if flash else [],
        }


class TemplateGlobalsMiddleware:
    """Expose ``TemplateGlobals`` as ``request.state.template_globals``."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            scope.setdefault("state", {})["template_globals"] = TemplateGlobals(scope)
        await self.app(scope, receive, send)
