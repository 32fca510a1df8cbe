# Shared data models
from qna.models.entry import QnaAction, QnaEntry, QnaEntryData
from qna.models.api_responses import (
    ExportRecord,
    FlatExportRecord,
    QuestionListResponse,
    QuestionSavedResponse,
    ImportResponse,
)

__all__ = [
    "QnaAction",
    "QnaEntry",
    "QnaEntryData",
    "ExportRecord",
    "FlatExportRecord",
    "QuestionListResponse",
    "QuestionSavedResponse",
    "ImportResponse",
]
