"""Session-based authentication.

The authenticated principal is the user whose id is stored in the session
under ``user_id``. Starlette's ``AuthenticationMiddleware`` runs
``SessionAuthBackend`` on every request so that ``request.user`` and
``request.auth`` are always set; route dependencies then enforce access.
"""

from collections.abc import Awaitable, Callable
from typing import Annotated, Self

from fastapi import Depends, Request
from loguru import logger
from starlette.authentication import AuthCredentials, AuthenticationBackend, BaseUser
from starlette.requests import HTTPConnection

from src.core.exceptions import ForbiddenError, UnauthorizedError
from src.infrastructure.database.models import User
from src.infrastructure.database.session import get_async_session
from src.infrastructure.database.users import UserRepository

SESSION_USER_KEY = "user_id"


class SiteUser(BaseUser):
    """The authenticated principal, detached from the database session."""

    def __init__(self, user_id: int, name: str, email: str, *, is_admin: bool) -> None:
        self.id = user_id
        self.name = name
        self.email = email
        self.is_admin = is_admin

    @classmethod
    def from_model(cls, user: User) -> Self:
        return cls(user.id, user.name, user.email, is_admin=user.is_admin)

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return self.name

    @property
    def identity(self) -> str:
        return str(self.id)

    def __repr__(self) -> str:
        return f"SiteUser(id={self.id}, is_admin={self.is_admin})"


type UserLoader = Callable[[int], Awaitable[SiteUser | None]]


async def load_user(user_id: int) -> SiteUser | None:
    """Load a principal from the ``users`` table."""
    async with get_async_session() as db:
        user = await UserRepository(db).get_by_id(user_id)
        return SiteUser.from_model(user) if user else None


class SessionAuthBackend(AuthenticationBackend):
    """Restore the principal referenced by the session.

    Args:
        user_loader: Async callable resolving a user id to a principal.
    """

    def __init__(self, user_loader: UserLoader = load_user) -> None:
        self.user_loader = user_loader

    async def authenticate(
        self, conn: HTTPConnection
    ) -> tuple[AuthCredentials, BaseUser] | None:
        if "session" not in conn.scope:
            return None
        user_id = conn.session.get(SESSION_USER_KEY)
        if not isinstance(user_id, int):
            return None

        user = await self.user_loader(user_id)
        if user is None:
            logger.info("Session refers to a missing user", user_id=user_id)
            return None

        scopes = ["authenticated"]
        if user.is_admin:
            scopes.append("admin")
        return AuthCredentials(scopes), user


def login_user(request: Request, user: SiteUser) -> None:
    """Bind ``user`` to the session under a fresh session id."""
    request.session.regenerate()
    request.session[SESSION_USER_KEY] = user.id
    request.scope["user"] = user
    request.scope["auth"] = AuthCredentials(
        ["authenticated", "admin"] if user.is_admin else ["authenticated"]
    )
    logger.info("User logged in", user_id=user.id)


def logout_user(request: Request) -> None:
    """Drop the session of the current principal."""
    user_id = request.session.get(SESSION_USER_KEY)
    request.session.invalidate()
    logger.info("User logged out", user_id=user_id)


def require_user(request: Request) -> SiteUser:
    """Dependency returning the authenticated principal.

    Raises:
        UnauthorizedError: If the request is anonymous.
    """
    user = request.user
    if not isinstance(user, SiteUser):
        raise UnauthorizedError("Authentication required")
    return user


def require_admin(user: Annotated[SiteUser, Depends(require_user)]) -> SiteUser:
    """Dependency returning the principal if it is an administrator.

    Raises:
        UnauthorizedError: If the request is anonymous.
        ForbiddenError: If the principal is not an administrator.
    """
    if not user.is_admin:
        raise ForbiddenError(
            "Administrator access required", context={"user_id": user.id}
        )
    return user
