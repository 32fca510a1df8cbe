"""
Q&A API Routes

Endpoints:
1. GET    /api/qna            - List questions (paginated)
2. POST   /api/qna            - Create a question
3. GET    /api/qna/{id}       - Fetch a question
4. PUT    /api/qna/{id}       - Replace a question
5. DELETE /api/qna/{id}       - Delete a question
6. GET    /api/qna/export     - Export questions as JSON records
7. POST   /api/qna/import     - Import questions (json, csv or yaml body)
8. GET    /api/qna/csv        - Download all questions as CSV
9. POST   /api/qna/csv        - Upload a CSV file, optionally replacing everything
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import Response

from qna.exceptions import EntryNotFoundError, QnaValidationError
from qna.models.api_responses import (
    ImportResponse,
    QuestionListResponse,
    QuestionSavedResponse,
)
from qna.models.entry import QnaEntry
from qna.services.qna_service import QnaService

logger = logging.getLogger(__name__)
router = APIRouter()

_TRUTHY = {"1", "true", "yes", "y", "on"}


@lru_cache
def get_qna_service() -> QnaService:
    """Shared service instance (overridable in tests via dependency_overrides)."""
    return QnaService()


def _to_http_error(e: Exception, action: str) -> HTTPException:
    if isinstance(e, QnaValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, EntryNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    logger.error(f"QnA error while trying to {action}: {str(e)}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Failed to {action}: {str(e)}")


@router.get("", response_model=QuestionListResponse)
async def list_questions(
    limit: Optional[int] = Query(None, ge=1, description="Maximum questions to return"),
    offset: Optional[int] = Query(None, ge=0, description="Questions to skip"),
    service: QnaService = Depends(get_qna_service),
):
    """
    List stored questions in key order, with the overall count for paging.

    Examples:
    - GET /api/qna
    - GET /api/qna?limit=20&offset=40
    """
    try:
        items = await service.list_questions(limit=limit, offset=offset)
        overall_items_count = await service.count_questions()
        return QuestionListResponse(items=items, overall_items_count=overall_items_count)
    except Exception as e:
        raise _to_http_error(e, "list questions")


@router.post("", response_model=QuestionSavedResponse)
async def create_question(
    data: Dict[str, Any] = Body(...),
    service: QnaService = Depends(get_qna_service),
):
    """
    Create a question.

    Example request body:
    ```json
    {
        "questions": ["How do I reset my password?", "Forgot password"],
        "action": "text_redirect",
        "answer": "Let me walk you through it.",
        "redirect_flow": "password.flow.json",
        "redirect_node": "start",
        "enabled": true
    }
    ```
    """
    try:
        entry_id = await service.save_question(data)
        return QuestionSavedResponse(id=entry_id)
    except Exception as e:
        raise _to_http_error(e, "create question")


@router.get("/export")
async def export_questions(
    flat: bool = Query(False, description="One record per question instead of per entry"),
    service: QnaService = Depends(get_qna_service),
) -> List[Dict[str, Any]]:
    """Export every question (enabled or not) as interchange records."""
    try:
        records = await service.export_questions(flat=flat)
        return [record.model_dump(warnings=False) for record in records]
    except Exception as e:
        raise _to_http_error(e, "export questions")


@router.post("/import", response_model=ImportResponse)
async def import_questions(
    request: Request,
    format: str = Query("json", description="Payload format: json, csv or yaml"),
    service: QnaService = Depends(get_qna_service),
):
    """
    Import questions from the raw request body; already stored questions are skipped.

    Example request body (format=json):
    ```json
    [
        {"questions": ["Opening hours?"], "action": "text", "answer": "9 to 5"},
        {"question": "Talk to sales", "action": "redirect", "answer": "sales.flow.json#intro"}
    ]
    ```
    """
    try:
        body = await request.body()
        ids = await service.import_questions(body, format=format)
        return ImportResponse(ids=ids, imported_count=len(ids))
    except Exception as e:
        raise _to_http_error(e, "import questions")


@router.get("/csv")
async def download_csv(service: QnaService = Depends(get_qna_service)):
    """Download all questions as CSV (question,action,answer,answer2)."""
    try:
        content = await service.export_csv()
    except Exception as e:
        raise _to_http_error(e, "export questions")

    charset = service.settings.qna_export_csv_encoding
    return Response(
        content=content,
        media_type=f"text/csv; charset={charset}",
        headers={
            "Content-Disposition": f"attachment; filename={service.export_filename()}"
        },
    )


@router.post("/csv", response_model=ImportResponse)
async def upload_csv(
    csv: UploadFile = File(..., description="CSV file to import"),
    is_replace: str = Form("false", description="Delete all questions first"),
    service: QnaService = Depends(get_qna_service),
):
    """
    Import a CSV file. With is_replace, every stored question is deleted first.
    """
    replace = is_replace.strip().lower() in _TRUTHY
    try:
        content = await csv.read()
        deleted_count = await service.count_questions() if replace else 0
        ids = await service.import_csv(content, replace=replace)
        return ImportResponse(ids=ids, imported_count=len(ids), deleted_count=deleted_count)
    except Exception as e:
        raise _to_http_error(e, "import CSV")


@router.get("/{entry_id}", response_model=QnaEntry)
async def get_question(entry_id: str, service: QnaService = Depends(get_qna_service)):
    try:
        return await service.get_question(entry_id)
    except Exception as e:
        raise _to_http_error(e, "fetch question")


@router.put("/{entry_id}", response_model=QuestionSavedResponse)
async def replace_question(
    entry_id: str,
    data: Dict[str, Any] = Body(...),
    service: QnaService = Depends(get_qna_service),
):
    """Fully replace a question (no partial update)."""
    try:
        await service.save_question(data, entry_id)
        return QuestionSavedResponse(id=entry_id)
    except Exception as e:
        raise _to_http_error(e, "update question")


@router.delete("/{entry_id}")
async def delete_question(entry_id: str, service: QnaService = Depends(get_qna_service)):
    try:
        await service.delete_question(entry_id)
        return {"status": "deleted", "id": entry_id}
    except Exception as e:
        raise _to_http_error(e, "delete question")
