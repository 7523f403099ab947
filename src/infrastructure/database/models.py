"""Database models for site users and server-side sessions."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, String, false
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.constants import SESSION_ID_LENGTH
from src.infrastructure.database.base import Base, BaseModel


class User(BaseModel):
    """A registered site account.

    Administrators are regular users with ``is_admin`` set; the admin route
    group checks this flag.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    is_admin: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, is_admin={self.is_admin})>"


class SessionRecord(Base):
    """Serialized session data keyed by the id carried in the session cookie."""

    __tablename__ = "sessions"
    __table_args__ = (Index("ix_sessions_expires_at", "expires_at"),)

    id: Mapped[str] = mapped_column(String(SESSION_ID_LENGTH), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    def __repr__(self) -> str:
        return f"<SessionRecord(id={self.id[:8]}..., expires_at={self.expires_at})>"
