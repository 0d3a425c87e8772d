"""JSONL-file timetable store.

All timetables live in ``<dir>/timetables.jsonl``, one document per line.
Writes replace the whole file atomically (tempfile + fsync + os.replace())
from a worker thread; the document snapshot is taken on the event-loop
thread before handing off.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from timetable.schedule.errors import PersistenceError
from timetable.schedule.types import Timetable
from timetable.store.base import COLLECTION_TIMETABLES, DocumentMeta

logger = logging.getLogger(__name__)


class JSONLTimetableStore:
    """Stores timetable documents in a single JSONL file."""

    def __init__(self, store_dir: Path) -> None:
        self._dir = store_dir
        self._path = store_dir / f"{COLLECTION_TIMETABLES}.jsonl"
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def create(self) -> None:
        try:
            await asyncio.to_thread(_ensure_file, self._path)
        except OSError as e:
            raise PersistenceError(f"cannot create {self._path}: {e}") from e

    async def fetch_all(self) -> list[Timetable]:
        try:
            documents = await asyncio.to_thread(_read_documents, self._path)
        except OSError as e:
            raise PersistenceError(f"cannot read {self._path}: {e}") from e

        timetables: list[Timetable] = []
        for document in documents.values():
            try:
                timetables.append(Timetable.from_dict(document))
            except ValueError as e:
                raise PersistenceError(
                    f"malformed timetable document in {self._path}: {e}"
                ) from e
        return timetables

    async def save(self, timetable: Timetable) -> DocumentMeta:
        document = timetable.to_dict()
        async with self._lock:
            try:
                await asyncio.to_thread(_upsert_document, self._path, document)
            except OSError as e:
                raise PersistenceError(f"cannot write {self._path}: {e}") from e
        return DocumentMeta.for_key(timetable.key)


def _ensure_file(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch(exist_ok=True)


def _read_documents(path: Path) -> dict[str, dict[str, Any]]:
    """Read documents keyed by ``key``, skipping blank/corrupt lines."""
    documents: dict[str, dict[str, Any]] = {}
    if not path.exists():
        return documents
    with path.open(encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                document = json.loads(line)
            except json.JSONDecodeError:
                logger.warning(
                    "corrupt_jsonl_line",
                    extra={"file.line_no": line_no, "file.path": str(path)},
                )
                continue
            if not isinstance(document, dict) or "key" not in document:
                logger.warning(
                    "keyless_document",
                    extra={"file.line_no": line_no, "file.path": str(path)},
                )
                continue
            documents[str(document["key"])] = document
    return documents


def _upsert_document(path: Path, document: dict[str, Any]) -> None:
    documents = _read_documents(path)
    documents[document["key"]] = document
    _write_jsonl_atomic(path, list(documents.values()))


def _write_jsonl_atomic(path: Path, records: list[dict[str, Any]]) -> None:
    """Write JSONL atomically via tempfile + fsync + os.replace()."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record, separators=(",", ":")))
                f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        Path(tmp).replace(path)
    except BaseException:
        try:
            Path(tmp).unlink()
        except OSError:
            pass
        raise
