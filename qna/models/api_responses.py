"""
API Response Models

Pydantic models for consistent API response structures and interchange records.
"""

from pydantic import BaseModel, Field
from typing import Optional, List

from qna.models.entry import QnaEntry


class ExportRecord(BaseModel):
    """
    Grouped interchange record: one record per entry.
    Redirect targets are encoded as ``flow`` or ``flow#node``.
    """

    questions: List[str] = Field(..., description="All questions of the entry")
    action: str = Field(..., description="text, redirect or text_redirect")
    answer: Optional[str] = Field(
        None, description="Answer text, or redirect target for 'redirect'"
    )
    answer2: Optional[str] = Field(
        None, description="Redirect target for 'text_redirect'"
    )


class FlatExportRecord(BaseModel):
    """Flat interchange record: one record per question string."""

    question: str = Field(..., description="A single question")
    action: str = Field(..., description="text, redirect or text_redirect")
    answer: Optional[str] = Field(None, description="Same as ExportRecord.answer")
    answer2: Optional[str] = Field(None, description="Same as ExportRecord.answer2")


class QuestionListResponse(BaseModel):
    """Paginated list of entries."""

    items: List[QnaEntry] = Field(default_factory=list, description="Page of entries")
    overall_items_count: int = Field(0, description="Total number of stored entries")


class QuestionSavedResponse(BaseModel):
    """Response for create and replace operations."""

    id: str = Field(..., description="Id of the saved entry")


class ImportResponse(BaseModel):
    """Response for bulk import endpoints."""

    status: str = Field("success", description="Status: success or error")
    ids: List[str] = Field(default_factory=list, description="Ids of created entries")
    imported_count: int = Field(0, description="Number of created entries")
    deleted_count: int = Field(
        0, description="Entries deleted beforehand (replace imports)"
    )
