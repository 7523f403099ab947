"""Contact notification emails sent through an SMTP relay.

Delivery is a single attempt with a timeout. Transport failures are reported
as a ``DeliveryResult`` rather than raised, so callers always get an outcome
they can show to the visitor.
"""

from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Protocol

import aiosmtplib
from loguru import logger

from src.core.config import MailConfig
from src.core.observability import trace_operation


@dataclass(frozen=True, slots=True)
class ContactMessage:
    """A composed notification, ready for delivery."""

    sender: str
    recipient: str
    subject: str
    html: str
    text: str
    reply_to: str | None = None

    def to_email(self, message_id: str) -> EmailMessage:
        """Build the MIME message with a plain-text and an HTML part."""
        email = EmailMessage()
        email["From"] = self.sender
        email["To"] = self.recipient
        email["Subject"] = self.subject
        email["Message-ID"] = message_id
        if self.reply_to:
            email["Reply-To"] = self.reply_to
        email.set_content(self.text)
        email.add_alternative(self.html, subtype="html")
        return email


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Outcome of one delivery attempt."""

    delivered: bool
    message_id: str | None = None
    reason: str | None = None


class Mailer(Protocol):
    """Anything able to deliver a contact message."""

    async def send(self, message: ContactMessage) -> DeliveryResult: ...


def is_single_line_address(value: str) -> bool:
    """Whether ``value`` can be used as a header value holding one address."""
    return "@" in value and len(value.splitlines()) == 1 and value.isprintable()


def compose_contact_message(
    *,
    name: str,
    phone: str,
    email: str,
    subject: str,
    message: str,
    config: MailConfig,
) -> ContactMessage:
    """Compose the notification for one contact form submission.

    Field values are used as received; they have already been through the
    request sanitization stage.
    """
    html = (
        "<p>You have a new contact request</p>\n"
        "<h3>Contact Details</h3>\n"
        "<ul>\n"
        f"  <li>Name: {name}</li>\n"
        f"  <li>Subject: {subject}</li>\n"
        f"  <li>Email: {email}</li>\n"
        f"  <li>Phone: {phone}</li>\n"
        "</ul>\n"
        "<h3>Message</h3>\n"
        f"<p>{message}</p>\n"
    )
    text = (
        "You have a new contact request\n\n"
        f"Name: {name}\n"
        f"Subject: {subject}\n"
        f"Email: {email}\n"
        f"Phone: {phone}\n\n"
        f"Message:\n{message}\n"
    )
    return ContactMessage(
        sender=config.sender,
        recipient=config.recipient,
        subject=config.subject,
        html=html,
        text=text,
        reply_to=email if is_single_line_address(email) else None,
    )


class SmtpMailer:
    """Mailer delivering through the configured SMTP relay with aiosmtplib."""

    def __init__(self, config: MailConfig) -> None:
        self.config = config

    async def send(self, message: ContactMessage) -> DeliveryResult:
        """Deliver ``message`` once.

        Returns:
            DeliveryResult: ``delivered`` with the Message-ID on success, or the
            failure reason.
        """
        config = self.config
        message_id = make_msgid(domain=config.recipient.rpartition("@")[2] or None)
        with trace_operation(
            "mail.send", smtp_host=config.host, smtp_port=config.port
        ) as span:
            try:
                email = message.to_email(message_id)
                await aiosmtplib.send(
                    email,
                    hostname=config.host,
                    port=config.port,
                    username=config.username,
                    password=(
                        config.password.get_secret_value() if config.password else None
                    ),
                    use_tls=config.use_tls,
                    start_tls=config.start_tls and not config.use_tls,
                    validate_certs=config.validate_certs,
                    timeout=config.timeout_seconds,
                )
            except (aiosmtplib.SMTPException, OSError, ValueError) as e:
                span.set_attribute("mail.delivered", False)
                logger.error(
                    "Contact message delivery failed: {}",
                    type(e).__name__,
                    smtp_host=config.host,
                    reason=str(e),
                )
                return DeliveryResult(delivered=False, reason=str(e) or type(e).__name__)

            span.set_attribute("mail.delivered", True)

        logger.info("Contact message sent", message_id=message_id)
        return DeliveryResult(delivered=True, message_id=message_id)
