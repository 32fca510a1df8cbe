"""
Q&A Store Exceptions

Error taxonomy shared by the storage backends, the import/export engine
and the HTTP layer.
"""

from typing import Optional


class QnaError(Exception):
    """Base class for all Q&A store errors."""

    pass


class QnaValidationError(QnaError):
    """
    Raised when a candidate entry or an import payload is malformed.
    This is a client error (400) - nothing is written when it is raised.
    """

    def __init__(self, message: str, row: Optional[int] = None):
        self.row = row
        if row is not None:
            message = f"Row {row}: {message}"
        super().__init__(message)


class UnsupportedFormatError(QnaValidationError):
    """Raised when an import or export format has no registered parser."""

    def __init__(self, format: str, supported: Optional[list] = None):
        self.format = format
        detail = f"Unsupported format '{format}'"
        if supported:
            detail += f" (expected one of: {', '.join(supported)})"
        super().__init__(detail)


class EntryNotFoundError(QnaError):
    """Raised when an operation targets an entry id the store does not know."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Question '{entry_id}' not found")


class StoreError(QnaError):
    """
    Raised when the underlying persistence backend fails.
    This is a system error (500) - not further classified.
    """

    pass
