"""Base repository pattern implementation for database operations.

This module provides a generic repository base class that implements
common operations for SQLAlchemy models using async patterns.
"""

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.base import BaseModel


class BaseRepository[T: BaseModel]:
    """Base repository class providing common operations.

    Args:
        session: The async SQLAlchemy session to use for operations.
        model_class: The SQLAlchemy model class this repository manages.

    Example:
        class UserRepository(BaseRepository[User]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, User)
    """

    def __init__(self, session: AsyncSession, model_class: type[T]) -> None:
        self.session = session
        self.model_class = model_class

    async def get_by_id(self, entity_id: int) -> T | None:
        """Retrieve a model instance by its ID.

        Args:
            entity_id: The primary key ID of the model to retrieve.

        Returns:
            T | None: The model instance if found, None otherwise.
        """
        stmt = select(self.model_class).where(self.model_class.id == entity_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, obj: T) -> T:
        """Create a new model instance in the database.

        Args:
            obj: The model instance to create.

        Returns:
            T: The created model instance with populated ID and timestamps.
        """
        self.session.add(obj)
        await self.session.flush()

        # Refresh to get server-generated values (ID, timestamps)
        await self.session.refresh(obj)

        logger.info(
            "Created {} instance with ID: {}", self.model_class.__name__, obj.id
        )

        return obj

    async def count(self) -> int:
        """Count all instances of the model."""
        stmt = select(func.count()).select_from(self.model_class)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def find_one_by(self, **kwargs: object) -> T | None:
        """Find the first model instance matching the given conditions.

        Args:
            **kwargs: Field-value pairs to filter by.

        Returns:
            T | None: The first matching instance if found, None otherwise.
        """
        stmt = select(self.model_class)
        for field, value in kwargs.items():
            if hasattr(self.model_class, field):
                stmt = stmt.where(getattr(self.model_class, field) == value)
            else:
                logger.warning(
                    "Attempted to filter by non-existent field '{}' on {}",
                    field,
                    self.model_class.__name__,
                )

        stmt = stmt.order_by(self.model_class.id).limit(1)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
