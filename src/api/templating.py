"""Page rendering helpers."""

from pathlib import Path
from typing import Any

from starlette.requests import Request
from starlette.responses import Response
from starlette.templating import Jinja2Templates

from src.api.middleware.templates import TemplateGlobals


def create_templates(directory: Path) -> Jinja2Templates:
    """Build the Jinja2 renderer for the page templates."""
    return Jinja2Templates(directory=directory)


def render(
    request: Request,
    name: str,
    context: dict[str, Any] | None = None,
    status_code: int = 200,
) -> Response:
    """Render a page with the template globals merged into ``context``."""
    templates: Jinja2Templates = request.state.templates
    template_globals: TemplateGlobals | None = getattr(
        request.state, "template_globals", None
    )
    page_context = template_globals.as_context() if template_globals else {}
    page_context.update(context or {})
    return templates.TemplateResponse(
        request, name, page_context, status_code=status_code
    )
