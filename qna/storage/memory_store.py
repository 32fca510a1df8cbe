"""
In-memory entry store.

Entries live in a process-local dict and do not persist across restarts.
Used by tests and by the ``memory`` storage backend.
"""

import copy
import threading
from typing import Any, Dict, List, Optional

from qna.exceptions import EntryNotFoundError
from qna.models.entry import QnaEntry, QnaEntryData
from qna.storage.base import EntryStore
from qna.utils.helpers import generate_entry_id, paginate


class InMemoryEntryStore(EntryStore):
    """Dict-backed EntryStore keeping the persisted (JSON) form of each entry."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, Dict[str, Any]] = {}

    def _to_entry(self, entry_id: str, raw: Dict[str, Any]) -> QnaEntry:
        return QnaEntry.from_stored(entry_id, copy.deepcopy(raw))

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> List[QnaEntry]:
        with self._lock:
            items = sorted(self._entries.items())
        return [self._to_entry(entry_id, raw) for entry_id, raw in paginate(items, limit, offset)]

    async def count(self) -> int:
        with self._lock:
            return len(self._entries)

    async def get(self, entry_id: str) -> QnaEntry:
        with self._lock:
            raw = self._entries.get(entry_id)
        if raw is None:
            raise EntryNotFoundError(entry_id)
        return self._to_entry(entry_id, raw)

    async def save(self, data: QnaEntryData, entry_id: Optional[str] = None) -> str:
        raw = data.model_dump(mode="json")
        with self._lock:
            if entry_id is None:
                entry_id = generate_entry_id(data.questions)
                while entry_id in self._entries:
                    entry_id = generate_entry_id(data.questions)
            elif entry_id not in self._entries:
                raise EntryNotFoundError(entry_id)
            self._entries[entry_id] = raw
        return entry_id

    async def delete(self, entry_id: str) -> None:
        with self._lock:
            if self._entries.pop(entry_id, None) is None:
                raise EntryNotFoundError(entry_id)
