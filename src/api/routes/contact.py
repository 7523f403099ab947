"""Contact form endpoint."""

import pydantic
from fastapi import APIRouter, Request, status
from fastapi.responses import RedirectResponse
from loguru import logger

from src.api.constants import FLASH_ERROR, FLASH_SUCCESS
from src.api.dependencies import AppSettings, ContactMailer, FormData
from src.api.middleware.flash import flash
from src.api.schemas.contact import ContactForm
from src.core.exceptions import ValidationError
from src.services.mail import compose_contact_message

router = APIRouter(tags=["contact"])

SENT_MESSAGE = "Email has been sent"
FAILED_MESSAGE = "Your message could not be sent, please try again later"


@router.post("/contact_me", name="contact_me")
async def contact_me(
    request: Request,
    form_data: FormData,
    mailer: ContactMailer,
    settings: AppSettings,
) -> RedirectResponse:
    """Send the submitted contact form to the site's mailbox.

    Exactly one delivery attempt is made. Either way the visitor is sent
    back to the contact page with a flash message describing the outcome.

    Raises:
        ValidationError: If a field is not a plain value.
    """
    try:
        form = ContactForm.model_validate(form_data)
    except pydantic.ValidationError as e:
        raise ValidationError("Invalid contact form submission", cause=e) from e

    message = compose_contact_message(
        **form.model_dump(), config=settings.mail_config
    )
    result = await mailer.send(message)

    if result.delivered:
        flash(request, FLASH_SUCCESS, SENT_MESSAGE)
    else:
        logger.error("Contact form could not be delivered", reason=result.reason)
        flash(request, FLASH_ERROR, FAILED_MESSAGE)

    return RedirectResponse("/contact", status_code=status.HTTP_303_SEE_OTHER)
