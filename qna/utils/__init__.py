"""
Utility package exports
"""

from qna.utils.helpers import ensure_list, slugify, generate_entry_id, paginate

__all__ = ["ensure_list", "slugify", "generate_entry_id", "paginate"]
