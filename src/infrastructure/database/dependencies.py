"""FastAPI dependency injection for database session management.

The DatabaseSession type alias injects a unit-of-work session into route
handlers: committed on success, rolled back on error, closed afterwards.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.session import get_async_session


async def get_db() -> AsyncGenerator[AsyncSession]:
    """Provide a database session for FastAPI dependency injection.

    Example:
        @router.get("/")
        async def dashboard(db: DatabaseSession):
            return await UserRepository(db).count()
    """
    async with get_async_session() as session:
        yield session


# Type alias for cleaner dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
