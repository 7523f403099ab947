"""Repository for site user accounts."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import User
from src.infrastructure.database.repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """Data access for the ``users`` table."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> User | None:
        """Look up a user by email, case-insensitively."""
        return await self.find_one_by(email=normalize_email(email))

    async def latest(self, limit: int = 10) -> list[User]:
        """Return the most recently registered users, newest first."""
        stmt = select(User).order_by(User.id.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


def normalize_email(email: str) -> str:
    """Canonical form used for storing and matching addresses."""
    return email.strip().lower()
