"""Persistence contract for timetables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from timetable.schedule.types import Timetable

COLLECTION_TIMETABLES = "timetables"


@dataclass(frozen=True)
class DocumentMeta:
    """Metadata for a stored timetable document."""

    id: str

    @classmethod
    def for_key(cls, key: str) -> DocumentMeta:
        return cls(id=f"{COLLECTION_TIMETABLES}/{key}")


@runtime_checkable
class TimetableStore(Protocol):
    """Durable storage for timetable documents, one document per key.

    Implementations raise ``PersistenceError`` for any backend failure.
    """

    async def create(self) -> None:
        """Provision storage. Succeeds if it already exists."""
        ...

    async def fetch_all(self) -> list[Timetable]:
        """Return every stored timetable."""
        ...

    async def save(self, timetable: Timetable) -> DocumentMeta:
        """Upsert the document for ``timetable.key``, replacing its schedule."""
        ...
