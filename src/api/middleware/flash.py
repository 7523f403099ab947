"""Flash message stage.

Flash messages are short notices stored in the session by one request (for
example right before a redirect) and shown, then discarded, by the next
page render.
"""

from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from src.api.middleware.sessions import Session

FLASH_SESSION_KEY = "flash"


class FlashQueue:
    """Per-category message queues kept inside the session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, category: str, message: str) -> None:
        """Queue ``message`` under ``category``."""
        messages: dict[str, list[str]] = self.session.get(FLASH_SESSION_KEY) or {}
        messages.setdefault(category, []).append(message)
        self.session[FLASH_SESSION_KEY] = messages

    def peek(self, category: str) -> list[str]:
        """Return queued messages without consuming them."""
        return list((self.session.get(FLASH_SESSION_KEY) or {}).get(category, []))

    def consume(self, category: str) -> list[str]:
        """Return and remove all messages queued under ``category``."""
        messages = self.session.get(FLASH_SESSION_KEY)
        if not messages or category not in messages:
            return []
        consumed = messages.pop(category)
        if messages:
            self.session[FLASH_SESSION_KEY] = messages
        else:
            del self.session[FLASH_SESSION_KEY]
        return consumed


class FlashMiddleware:
    """Expose a ``FlashQueue`` as ``request.state.flash``."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            session = scope.get("session")
            if not isinstance(session, Session):
                msg = "FlashMiddleware requires the session stage to run first"
                raise RuntimeError(msg)
            scope.setdefault("state", {})["flash"] = FlashQueue(session)
        await self.app(scope, receive, send)


def flash(request: Request, category: str, message: str) -> None:
    """Queue a flash message for the next rendered page."""
    request.state.flash.add(category, message)
