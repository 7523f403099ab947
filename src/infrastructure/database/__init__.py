"""Database infrastructure with async SQLAlchemy and the repository pattern.

Core components:
- **base**: Declarative base and common model fields
- **models**: ``users`` and ``sessions`` tables
- **session**: Async engine and session management
- **repository** / **users**: Repository helpers
- **dependencies**: FastAPI dependency injection helpers
"""

from src.infrastructure.database.base import Base, BaseModel
from src.infrastructure.database.dependencies import DatabaseSession, get_db
from src.infrastructure.database.models import SessionRecord, User
from src.infrastructure.database.repository import BaseRepository
from src.infrastructure.database.session import (
    check_database_connection,
    close_database,
    create_database_engine,
    get_async_session,
    get_engine,
    get_session_factory,
)
from src.infrastructure.database.users import UserRepository

__all__ = [
    "Base",
    "BaseModel",
    "BaseRepository",
    "DatabaseSession",
    "SessionRecord",
    "User",
    "UserRepository",
    "check_database_connection",
    "close_database",
    "create_database_engine",
    "get_async_session",
    "get_db",
    "get_engine",
    "get_session_factory",
]
