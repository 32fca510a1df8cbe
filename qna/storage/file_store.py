"""
File-based entry store.

Stores each entry as a JSON file named after its id:
{qna_dir}/{entry_id}.json

Simple and transparent - entries can be inspected, versioned and copied
between bots with plain file tools.
"""

import asyncio
import json
import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from qna.exceptions import EntryNotFoundError, StoreError
from qna.models.entry import QnaEntry, QnaEntryData
from qna.storage.base import EntryStore
from qna.utils.helpers import generate_entry_id, paginate

logger = logging.getLogger(__name__)

# Ids become file names; keep them to a safe character set
_VALID_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class FileEntryStore(EntryStore):
    """
    File-based entry persistence.

    Writes go to a temporary file first and are moved into place, so a
    crash never leaves a half-written entry behind.
    """

    def __init__(self, base_dir: str = "./data/qna"):
        """
        Args:
            base_dir: Directory holding one JSON file per entry
        """
        self.base_dir = Path(base_dir)
        self._lock = threading.Lock()
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create Q&A directory {self.base_dir}: {e}") from e
        logger.info(f"File entry store initialized at {self.base_dir}")

    def _get_entry_path(self, entry_id: str) -> Path:
        """Build path to entry file"""
        if not _VALID_ID.match(entry_id):
            raise EntryNotFoundError(entry_id)
        return self.base_dir / f"{entry_id}.json"

    def _entry_ids(self) -> List[str]:
        try:
            stems = (path.stem for path in self.base_dir.glob("*.json"))
            return sorted(stem for stem in stems if _VALID_ID.match(stem))
        except OSError as e:
            raise StoreError(f"Cannot list Q&A directory {self.base_dir}: {e}") from e

    def _read(self, entry_id: str) -> QnaEntry:
        path = self._get_entry_path(entry_id)
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw: Dict[str, Any] = json.load(f)
        except FileNotFoundError:
            raise EntryNotFoundError(entry_id)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read question {entry_id}: {e}")
            raise StoreError(f"Cannot read question '{entry_id}': {e}") from e
        if not isinstance(raw, dict):
            raise StoreError(f"Question file '{path.name}' does not hold a JSON object")
        return QnaEntry.from_stored(entry_id, raw)

    def _write(self, entry_id: str, data: QnaEntryData) -> None:
        path = self._get_entry_path(entry_id)
        fd, tmp_path = tempfile.mkstemp(dir=self.base_dir, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Failed to write question {entry_id}: {e}")
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise StoreError(f"Cannot write question '{entry_id}': {e}") from e

    # File I/O runs in a worker thread so the event loop is never blocked

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> List[QnaEntry]:
        return await asyncio.to_thread(self._list_sync, limit, offset)

    def _list_sync(self, limit: Optional[int], offset: Optional[int]) -> List[QnaEntry]:
        entries = []
        with self._lock:
            for entry_id in paginate(self._entry_ids(), limit, offset):
                try:
                    entries.append(self._read(entry_id))
                except (EntryNotFoundError, StoreError) as e:
                    logger.warning(f"Skipping unreadable question {entry_id}: {e}")
        return entries

    async def count(self) -> int:
        return await asyncio.to_thread(self._count_sync)

    def _count_sync(self) -> int:
        with self._lock:
            return len(self._entry_ids())

    async def get(self, entry_id: str) -> QnaEntry:
        return await asyncio.to_thread(self._get_sync, entry_id)

    def _get_sync(self, entry_id: str) -> QnaEntry:
        with self._lock:
            return self._read(entry_id)

    async def save(self, data: QnaEntryData, entry_id: Optional[str] = None) -> str:
        entry_id = await asyncio.to_thread(self._save_sync, data, entry_id)
        logger.debug(f"Saved question {entry_id}")
        return entry_id

    def _save_sync(self, data: QnaEntryData, entry_id: Optional[str]) -> str:
        with self._lock:
            if entry_id is None:
                entry_id = generate_entry_id(data.questions)
                while self._get_entry_path(entry_id).exists():
                    entry_id = generate_entry_id(data.questions)
            elif not self._get_entry_path(entry_id).exists():
                raise EntryNotFoundError(entry_id)
            self._write(entry_id, data)
        return entry_id

    async def delete(self, entry_id: str) -> None:
        await asyncio.to_thread(self._delete_sync, entry_id)
        logger.debug(f"Deleted question {entry_id}")

    def _delete_sync(self, entry_id: str) -> None:
        with self._lock:
            path = self._get_entry_path(entry_id)
            try:
                path.unlink()
            except FileNotFoundError:
                raise EntryNotFoundError(entry_id)
            except OSError as e:
                raise StoreError(f"Cannot delete question '{entry_id}': {e}") from e
