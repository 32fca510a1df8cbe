"""
Entry store interface.

Every backend keeps entries in key (id) order and implements the same
async contract, so the import/export engine never depends on how entries
are persisted.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from qna.models.entry import QnaEntry, QnaEntryData


class EntryStore(ABC):
    """
    Abstract interface for Q&A entry persistence.

    Backends must serialise writes to the same id and give read-after-write
    consistency for a single id. No cross-entry transactions are provided.
    """

    @abstractmethod
    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> List[QnaEntry]:
        """
        List entries in key order.

        Entries that cannot be read at all are skipped with a warning;
        entries whose data no longer validates are returned best-effort.

        Args:
            limit: Maximum number of entries (None = all)
            offset: Number of entries to skip

        Returns:
            Page of entries
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        """Return the total number of stored entries."""
        pass

    @abstractmethod
    async def get(self, entry_id: str) -> QnaEntry:
        """
        Fetch one entry.

        Raises:
            EntryNotFoundError: If no entry has this id
        """
        pass

    @abstractmethod
    async def save(
        self, data: QnaEntryData, entry_id: Optional[str] = None
    ) -> str:
        """
        Create or fully replace an entry.

        Args:
            data: Validated entry data
            entry_id: None to create (a fresh id is assigned), an existing id to replace

        Returns:
            Id of the saved entry

        Raises:
            EntryNotFoundError: If entry_id is given but unknown
            StoreError: If the backend fails
        """
        pass

    @abstractmethod
    async def delete(self, entry_id: str) -> None:
        """
        Delete one entry.

        Raises:
            EntryNotFoundError: If no entry has this id
        """
        pass
