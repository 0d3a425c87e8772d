"""SQL-backed timetable store using async SQLAlchemy.

Each timetable is one row in the ``timetables`` table: the resource key is
the primary key and the schedule array is kept as a JSON document.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy import JSON, DateTime, String, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from timetable.schedule.errors import PersistenceError
from timetable.schedule.types import Timetable
from timetable.store.base import COLLECTION_TIMETABLES, DocumentMeta

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all models."""

    type_annotation_map = {
        list[dict[str, Any]]: JSON,
    }


class TimetableDocument(Base):
    """Stored timetable document."""

    __tablename__ = COLLECTION_TIMETABLES

    key: Mapped[str] = mapped_column(String, primary_key=True)
    schedule: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "schedule": list(self.schedule or [])}


class SQLTimetableStore:
    """Timetable store backed by a SQL database."""

    def __init__(
        self, database_url: str | None = None, database_path: Path | None = None
    ):
        """Initialize the store.

        Args:
            database_url: Full database URL (takes precedence).
            database_path: Path to SQLite database file.
        """
        if database_url:
            self._url = database_url
        elif database_path:
            database_path.parent.mkdir(parents=True, exist_ok=True)
            self._url = f"sqlite+aiosqlite:///{database_path}"
        else:
            raise ValueError("Either database_url or database_path must be provided")

        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._connect()
        assert self._engine is not None
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._connect()
        assert self._session_factory is not None
        return self._session_factory

    def _connect(self) -> None:
        self._engine = create_async_engine(
            self._url,
            echo=False,
            pool_pre_ping=True,
        )
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def close(self) -> None:
        """Close the database connection."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    async def create(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise PersistenceError(f"cannot provision timetables table: {e}") from e

    async def fetch_all(self) -> list[Timetable]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(TimetableDocument))
                documents = [row.to_dict() for row in result.scalars()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"cannot read timetables: {e}") from e

        try:
            return [Timetable.from_dict(document) for document in documents]
        except ValueError as e:
            raise PersistenceError(f"malformed timetable document: {e}") from e

    async def save(self, timetable: Timetable) -> DocumentMeta:
        document = timetable.to_dict()
        try:
            async with self.session_factory() as session:
                row = await session.get(TimetableDocument, document["key"])
                if row is None:
                    session.add(
                        TimetableDocument(
                            key=document["key"], schedule=document["schedule"]
                        )
                    )
                else:
                    row.schedule = document["schedule"]
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"cannot save timetable {timetable.key}: {e}") from e
        return DocumentMeta.for_key(timetable.key)
