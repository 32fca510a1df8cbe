"""
Shared Utility Functions

Common helper functions used across multiple modules.
"""

import re
import time
import secrets
import unicodedata
from typing import Any, List, Optional, Sequence, TypeVar

T = TypeVar("T")


def ensure_list(items: Any) -> List[str]:
    """
    Normalize a question field to a list of strings.

    Handles various formats:
    - Single string: "a" → ["a"]
    - Lists/tuples: ("a", "b") → ["a", "b"]
    - None/empty: None → []

    Args:
        items: A string, a sequence of strings, or None

    Returns:
        List of strings
    """
    if items is None or items == "":
        return []

    if isinstance(items, str):
        return [items]

    if isinstance(items, (list, tuple)):
        return [item if isinstance(item, str) else str(item) for item in items]

    return [str(items)]


def slugify(text: str, max_length: int = 50) -> str:
    """
    Convert text to a lowercase, dash-separated ASCII slug.

    Examples:
        "How do I reset my password?" -> "how-do-i-reset-my-password"
        "Café ouvert ?" -> "cafe-ouvert"

    Args:
        text: Text to convert
        max_length: Maximum slug length

    Returns:
        Slug (may be empty when text has no ASCII letters or digits)
    """
    normalized = unicodedata.normalize("NFKD", text)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_text).strip("-")
    return slug[:max_length].rstrip("-")


def generate_entry_id(questions: Sequence[str]) -> str:
    """
    Generate a fresh entry id.

    The prefix is time based so ids sort in creation order; the random part
    keeps ids unique within the same clock tick.

    Args:
        questions: Questions of the entry (the first one names the id)

    Returns:
        New id such as "17f3a9c2b0d4e1a8c3f1_how-do-i-reset-my-password"
    """
    prefix = f"{time.time_ns():016x}{secrets.token_hex(2)}"
    slug = slugify(questions[0]) if questions else ""
    return f"{prefix}_{slug}" if slug else prefix


def paginate(
    items: Sequence[T], limit: Optional[int] = None, offset: Optional[int] = None
) -> List[T]:
    """
    Slice a key-ordered sequence.

    Args:
        items: Ordered items
        limit: Maximum number of items (None = no limit)
        offset: Number of items to skip (None = 0)

    Returns:
        Page of items
    """
    start = offset or 0
    if start < 0:
        raise ValueError("offset must not be negative")
    if limit is None:
        return list(items[start:])
    if limit < 0:
        raise ValueError("limit must not be negative")
    return list(items[start : start + limit])
