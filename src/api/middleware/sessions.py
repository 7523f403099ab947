"""Server-side session stage.

The browser holds a cookie with a signed, random session id; the session
data lives in a ``SessionStore``. A session is only written (and a cookie
only issued) once something is stored in it, and an unmodified session is
merely touched to extend its expiry.

``request.session`` is a ``Session`` dict. Besides normal mapping access it
supports ``invalidate()`` (drop everything, e.g. at logout) and
``regenerate()`` (keep the data under a fresh id, e.g. at login).
"""

import secrets
from typing import Any, Literal

from itsdangerous import BadSignature, Signer
from loguru import logger
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.infrastructure.sessions import SessionStore

SESSION_ID_BYTES = 32
SIGNER_SALT = "renimusic.session"


def new_session_id() -> str:
    """Generate an unguessable session id."""
    return secrets.token_urlsafe(SESSION_ID_BYTES)


class Session(dict[str, Any]):
    """Session data with change tracking.

    Top-level writes mark the session as modified. Code that mutates a
    nested value in place must call ``mark_modified()``.
    """

    def __init__(
        self, data: dict[str, Any] | None = None, *, session_id: str | None = None
    ) -> None:
        super().__init__(data or {})
        self.session_id = session_id
        self.modified = False
        self.invalidated = False
        self.regenerated = False

    @property
    def is_new(self) -> bool:
        return self.session_id is None

    def mark_modified(self) -> None:
        self.modified = True

    def invalidate(self) -> None:
        """Discard all data and the stored record."""
        super().clear()
        self.invalidated = True
        self.modified = True

    def regenerate(self) -> None:
        """Move the data to a new session id when the response is sent."""
        self.regenerated = True
        self.modified = True

    def __setitem__(self, key: str, value: Any) -> None:  # noqa: ANN401 - any JSON value
        super().__setitem__(key, value)
        self.modified = True

    def __delitem__(self, key: str) -> None:
        super().__delitem__(key)
        self.modified = True

    def clear(self) -> None:
        super().clear()
        self.modified = True

    def pop(self, key: str, *args: Any) -> Any:  # noqa: ANN401
        self.modified = True
        return super().pop(key, *args)

    def popitem(self) -> tuple[str, Any]:
        self.modified = True
        return super().popitem()

    def setdefault(self, key: str, default: Any = None) -> Any:  # noqa: ANN401
        if key not in self:
            self.modified = True
        return super().setdefault(key, default)

    def update(self, *args: Any, **kwargs: Any) -> None:
        super().update(*args, **kwargs)
        self.modified = True


class ServerSideSessionMiddleware:
    """Load the session before the request and persist it with the response.

    Args:
        app: The ASGI application to wrap.
        store: Where session data is kept.
        secret: Key used to sign the session cookie.
        cookie_name: Name of the session cookie.
        max_age: Cookie lifetime in seconds.
        same_site: SameSite attribute of the cookie.
        https_only: Add the Secure attribute.
        path: Cookie path.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        store: SessionStore,
        secret: str,
        cookie_name: str = "renimusic.sid",
        max_age: int = 24 * 60 * 60,
        same_site: Literal["lax", "strict", "none"] = "lax",
        https_only: bool = False,
        path: str = "/",
    ) -> None:
        self.app = app
        self.store = store
        self.signer = Signer(secret, salt=SIGNER_SALT)
        self.cookie_name = cookie_name
        self.max_age = max_age
        self.path = path
        self.security_flags = f"httponly; samesite={same_site}"
        if https_only:
            self.security_flags += "; secure"

    def _unsign(self, value: str | None) -> str | None:
        if not value:
            return None
        try:
            return self.signer.unsign(value).decode("utf-8")
        except BadSignature:
            logger.debug("Ignoring session cookie with an invalid signature")
            return None

    def _cookie(self, value: str, max_age: int) -> str:
        return (
            f"{self.cookie_name}={value}; path={self.path}; "
            f"Max-Age={max_age}; {self.security_flags}"
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        had_cookie = self.cookie_name in connection.cookies
        session_id = self._unsign(connection.cookies.get(self.cookie_name))
        data = await self.store.get(session_id) if session_id else None
        session = Session(data, session_id=session_id if data is not None else None)
        scope["session"] = session

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                await self._commit(session, MutableHeaders(scope=message), had_cookie)
            await send(message)

        await self.app(scope, receive, send_wrapper)

    async def _commit(
        self, session: Session, headers: MutableHeaders, had_cookie: bool
    ) -> None:
        if (session.invalidated or session.regenerated) and session.session_id:
            await self.store.destroy(session.session_id)
            session.session_id = None

        if session.modified and (session or session.session_id):
            session_id = session.session_id or new_session_id()
            session.session_id = session_id
            await self.store.set(session_id, dict(session))
            signed = self.signer.sign(session_id).decode("utf-8")
            headers.append("set-cookie", self._cookie(signed, self.max_age))
        elif session.session_id:
            await self.store.touch(session.session_id)
        elif had_cookie and session.invalidated:
            headers.append("set-cookie", self._cookie("null", 0))
