"""In-process timetable store for tests and ephemeral servers."""

from __future__ import annotations

import copy
from typing import Any

from timetable.schedule.errors import PersistenceError
from timetable.schedule.types import Timetable
from timetable.store.base import DocumentMeta


class MemoryTimetableStore:
    """Keeps serialized timetable documents in a dict.

    ``fail_with`` makes every subsequent ``save`` raise, which lets tests
    exercise the in-memory/durable divergence path.
    """

    def __init__(self, documents: list[dict[str, Any]] | None = None) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.save_count = 0
        self.fail_with: str | None = None
        for document in documents or []:
            self.documents[document["key"]] = copy.deepcopy(document)

    async def create(self) -> None:
        return None

    async def fetch_all(self) -> list[Timetable]:
        try:
            return [Timetable.from_dict(doc) for doc in self.documents.values()]
        except ValueError as e:
            raise PersistenceError(f"malformed timetable document: {e}") from e

    async def save(self, timetable: Timetable) -> DocumentMeta:
        if self.fail_with is not None:
            raise PersistenceError(self.fail_with)
        self.documents[timetable.key] = timetable.to_dict()
        self.save_count += 1
        return DocumentMeta.for_key(timetable.key)
