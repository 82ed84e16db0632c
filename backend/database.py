# database.py - Single-writer JSON snapshot store
import os
import json
import asyncio
import logging
from pathlib import Path
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from errors import StorageUnavailable
from models import COLLECTIONS, empty_document, backfill_document

logger = logging.getLogger("taskboard.store")

# Database configuration
DATA_FILE = Path(os.getenv("TASKBOARD_DATA_FILE", "data.json")).expanduser()


def _shape_problem(data: Dict[str, Any]) -> Optional[str]:
    """Describe the first collection with the wrong shape, or None."""
    for key in COLLECTIONS:
        records = data[key]
        if not isinstance(records, list):
            return f"'{key}' is {type(records).__name__}, expected list"
        if not all(isinstance(r, dict) for r in records):
            return f"'{key}' holds a non-object record"
    links = data["taskDocuments"]
    if not isinstance(links, dict):
        return f"'taskDocuments' is {type(links).__name__}, expected object"
    for task_id, docs in links.items():
        if not isinstance(docs, list) or not all(isinstance(d, dict) and "path" in d for d in docs):
            return f"'taskDocuments' entry for {task_id} is malformed"
    return None


class JsonStore:
    """Whole-document JSON persistence.

    Every save rewrites the full snapshot through a temp file and an atomic
    rename, so a concurrent reader sees either the old or the new document.
    Mutations go through ``transaction()``, which holds the store lock for the
    whole load-modify-save sequence.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    # -------------------- sync I/O (run in a worker thread) --------------------

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return empty_document()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read snapshot {self.path}: {e}")
            raise StorageUnavailable(f"Task storage unreadable: {e}") from e
        if not isinstance(data, dict):
            logger.error(f"Snapshot {self.path} root is {type(data).__name__}, expected object")
            raise StorageUnavailable("Task storage corrupt: root is not an object")
        data = backfill_document(data)
        problem = _shape_problem(data)
        if problem:
            logger.error(f"Snapshot {self.path} is malformed: {problem}")
            raise StorageUnavailable(f"Task storage corrupt: {problem}")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(f".{self.path.name}.tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error(f"Failed to write snapshot {self.path}: {e}")
            raise StorageUnavailable(f"Task storage not writable: {e}") from e

    # -------------------- async API --------------------

    async def load(self) -> Dict[str, Any]:
        """Return the current snapshot. Lock-free; used by read paths."""
        return await asyncio.to_thread(self._read)

    async def save(self, data: Dict[str, Any]) -> None:
        """Overwrite the snapshot with ``data``. No merge, no partial write."""
        await asyncio.to_thread(self._write, data)

    @asynccontextmanager
    async def transaction(self):
        """Serialize a load-modify-save sequence against other writers.

        The yielded document is saved when the block exits cleanly and
        discarded if it raises.
        """
        async with self._lock:
            data = await self.load()
            yield data
            await self.save(data)

    async def ensure_initialized(self) -> None:
        """Create an empty snapshot if none exists; verify an existing one reads."""
        async with self._lock:
            if self.path.exists():
                await self.load()
                return
            await self.save(empty_document())
            logger.info(f"Created empty snapshot at {self.path}")


_store = JsonStore(DATA_FILE)


def get_store() -> JsonStore:
    """Dependency for getting the snapshot store (FastAPI Depends)"""
    return _store


async def init_db():
    """Initialize the snapshot file"""
    await _store.ensure_initialized()
    logger.info(f"Snapshot store ready at {_store.path}")
