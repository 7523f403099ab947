"""Server-side session storage.

The session cookie only carries a signed identifier; the data lives in a
store. Records expire ``ttl_seconds`` after their last write or touch and an
expired record is indistinguishable from a missing one.
"""

import copy
import time
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from loguru import logger
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import SessionRecord
from src.infrastructure.database.session import get_async_session

type SessionData = dict[str, Any]


@runtime_checkable
class SessionStore(Protocol):
    """Pluggable storage interface for session records."""

    async def get(self, session_id: str) -> SessionData | None: ...
    async def set(self, session_id: str, data: SessionData) -> None: ...
    async def touch(self, session_id: str) -> None: ...
    async def destroy(self, session_id: str) -> None: ...
    async def purge_expired(self) -> int: ...


class MemorySessionStore:
    """Process-local session store. Single-process only.

    Data is deep-copied on the way in and out so two sessions never share a
    mutable object.
    """

    def __init__(
        self, ttl_seconds: int, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._records: dict[str, tuple[SessionData, float]] = {}

    async def get(self, session_id: str) -> SessionData | None:
        record = self._records.get(session_id)
        if record is None:
            return None
        data, expires_at = record
        if expires_at <= self._clock():
            del self._records[session_id]
            return None
        return copy.deepcopy(data)

    async def set(self, session_id: str, data: SessionData) -> None:
        self._records[session_id] = (copy.deepcopy(data), self._clock() + self._ttl)

    async def touch(self, session_id: str) -> None:
        if record := self._records.get(session_id):
            self._records[session_id] = (record[0], self._clock() + self._ttl)

    async def destroy(self, session_id: str) -> None:
        self._records.pop(session_id, None)

    async def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, (_, exp) in self._records.items() if exp <= now]
        for key in expired:
            del self._records[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)


type SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class DatabaseSessionStore:
    """Session store backed by the ``sessions`` table.

    Every operation runs in its own unit of work. Expiry comparisons are done
    in SQL so that SQLite and PostgreSQL behave the same.

    Args:
        ttl_seconds: Record lifetime since the last write or touch.
        session_scope: Factory of database sessions, defaults to the
            application's unit of work.
    """

    def __init__(
        self,
        ttl_seconds: int,
        session_scope: SessionScope = get_async_session,
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._session_scope = session_scope

    def _expiry(self) -> datetime:
        return datetime.now(UTC) + self._ttl

    async def get(self, session_id: str) -> SessionData | None:
        now = datetime.now(UTC)
        async with self._session_scope() as db:
            stmt = select(SessionRecord.data).where(
                SessionRecord.id == session_id, SessionRecord.expires_at > now
            )
            data = (await db.execute(stmt)).scalar_one_or_none()
            if data is None:
                await db.execute(
                    delete(SessionRecord).where(
                        SessionRecord.id == session_id,
                        SessionRecord.expires_at <= now,
                    )
                )
                return None
            return dict(data)

    async def set(self, session_id: str, data: SessionData) -> None:
        async with self._session_scope() as db:
            await db.merge(
                SessionRecord(id=session_id, data=dict(data), expires_at=self._expiry())
            )

    async def touch(self, session_id: str) -> None:
        async with self._session_scope() as db:
            await db.execute(
                update(SessionRecord)
                .where(SessionRecord.id == session_id)
                .values(expires_at=self._expiry())
            )

    async def destroy(self, session_id: str) -> None:
        async with self._session_scope() as db:
            await db.execute(delete(SessionRecord).where(SessionRecord.id == session_id))

    async def purge_expired(self) -> int:
        async with self._session_scope() as db:
            result = await db.execute(
                delete(SessionRecord).where(SessionRecord.expires_at <= datetime.now(UTC))
            )
            purged = result.rowcount or 0
        if purged:
            logger.info("Purged {} expired sessions", purged)
        return purged
