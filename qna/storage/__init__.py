"""
Entry Storage Module

Provides the EntryStore contract and its file and in-memory backends.
"""

from qna.storage.base import EntryStore
from qna.storage.file_store import FileEntryStore
from qna.storage.memory_store import InMemoryEntryStore
from qna.config import Settings, get_settings


def create_store(settings: Settings | None = None) -> EntryStore:
    """
    Build the EntryStore selected by configuration.

    Args:
        settings: Settings to use (defaults to get_settings())

    Returns:
        Configured EntryStore
    """
    settings = settings or get_settings()
    backend = settings.qna_storage_backend.lower()
    if backend == "file":
        return FileEntryStore(settings.qna_dir)
    if backend == "memory":
        return InMemoryEntryStore()
    raise ValueError(f"Unknown storage backend: {settings.qna_storage_backend}")


__all__ = [
    "EntryStore",
    "FileEntryStore",
    "InMemoryEntryStore",
    "create_store",
]
