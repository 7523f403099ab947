"""FastAPI dependencies resolving application-wide collaborators."""

from typing import Annotated, Any

from fastapi import Depends, Request

from src.core.config import Settings
from src.services.mail import Mailer


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_mailer(request: Request) -> Mailer:
    """Mailer used for contact notifications."""
    return request.app.state.mailer


def get_form_data(request: Request) -> dict[str, Any]:
    """The parsed, sanitized request body as flat form fields.

    Repeated fields keep their last value and a non-object JSON body is
    treated as empty.
    """
    body = getattr(request.state, "body", None)
    if not isinstance(body, dict):
        return {}
    fields: dict[str, Any] = {}
    for key, value in body.items():
        if isinstance(value, list):
            value = value[-1] if value else ""
        fields[key] = value
    return fields


AppSettings = Annotated[Settings, Depends(get_app_settings)]
ContactMailer = Annotated[Mailer, Depends(get_mailer)]
FormData = Annotated[dict[str, Any], Depends(get_form_data)]
