"""
Q&A Codec

Maps persisted entries to and from their interchange shapes:
- grouped export record: {questions, action, answer, answer2}
- flat export record:    {question, action, answer, answer2} (one per question)
- persisted entry data:  QnaEntryData

Redirect targets travel as "flow" or "flow#node". The "#" separator is not
escaped, so flow and node names containing "#" do not survive a round trip.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from qna.exceptions import QnaValidationError
from qna.models.api_responses import ExportRecord, FlatExportRecord
from qna.models.entry import QnaAction, QnaEntry, QnaEntryData

logger = logging.getLogger(__name__)

REDIRECT_SEPARATOR = "#"

# Fields that never take part in duplicate detection
FINGERPRINT_EXCLUDED_FIELDS = {"id", "enabled"}


def _action_value(action: Any) -> str:
    """Plain string form of an action (stored legacy entries may hold raw strings)."""
    return action.value if isinstance(action, QnaAction) else str(action)


def encode_redirect(flow: Optional[str], node: Optional[str] = None) -> Optional[str]:
    """
    Encode a redirect target.

    Examples:
        ("main.flow.json", "welcome") -> "main.flow.json#welcome"
        ("main.flow.json", None)      -> "main.flow.json"

    Args:
        flow: Target flow name
        node: Optional node inside the flow

    Returns:
        Encoded target, or None when there is no flow
    """
    if not flow:
        return None
    if node:
        return f"{flow}{REDIRECT_SEPARATOR}{node}"
    return flow


def decode_redirect(value: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Decode a redirect target produced by encode_redirect.

    Splits on the first "#"; an empty node decodes to None.

    Args:
        value: Encoded target

    Returns:
        (flow, node) tuple; (None, None) for an empty value
    """
    if not value or not value.strip():
        return None, None
    flow, _, node = value.strip().partition(REDIRECT_SEPARATOR)
    return flow or None, node or None


def to_export_record(entry: QnaEntry) -> ExportRecord:
    """
    Convert an entry to its grouped export record.

    - text:          answer = answer text,   answer2 = None
    - redirect:      answer = flow[#node],   answer2 = None
    - text_redirect: answer = answer text,   answer2 = flow[#node]

    Never raises on entry content: malformed stored entries are emitted
    field by field as far as they go.

    Args:
        entry: Persisted entry

    Returns:
        ExportRecord
    """
    data = entry.data
    action = _action_value(data.action)
    answer = data.answer
    answer2 = None

    if action == QnaAction.REDIRECT.value:
        answer = encode_redirect(data.redirect_flow, data.redirect_node)
    elif action == QnaAction.TEXT_REDIRECT.value:
        answer2 = encode_redirect(data.redirect_flow, data.redirect_node)

    # model_construct: stored content is emitted as-is, without re-validation
    return ExportRecord.model_construct(
        questions=list(data.questions or []),
        action=action,
        answer=answer,
        answer2=answer2,
    )


def flatten_record(record: ExportRecord) -> List[FlatExportRecord]:
    """
    Fan a grouped record out into one flat record per question.

    Args:
        record: Grouped export record

    Returns:
        List of flat records sharing action, answer and answer2
    """
    return [
        FlatExportRecord.model_construct(
            question=question,
            action=record.action,
            answer=record.answer,
            answer2=record.answer2,
        )
        for question in record.questions
    ]


def to_persisted_entry(raw: Mapping[str, Any], row: Optional[int] = None) -> QnaEntryData:
    """
    Validate a raw candidate record into entry data.

    Accepts either a singular "question" string or a "questions" sequence,
    and camelCase or snake_case redirect keys. Fields are expected in
    persisted shape already; "#"-encoded targets are not decoded here.

    Args:
        raw: Candidate record
        row: Position of the record in its payload (for error messages)

    Returns:
        Validated QnaEntryData

    Raises:
        QnaValidationError: If required fields are missing or inconsistent
    """
    if not isinstance(raw, Mapping):
        raise QnaValidationError(
            f"expected an object, got {type(raw).__name__}", row=row
        )

    data: Dict[str, Any] = dict(raw)
    data.pop("id", None)
    if "questions" not in data and "question" in data:
        data["questions"] = data.pop("question")
    else:
        data.pop("question", None)

    try:
        return QnaEntryData.model_validate(data)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'entry'}: {err['msg']}"
            for err in e.errors()
        )
        raise QnaValidationError(f"invalid question: {details}", row=row) from e


def fingerprint(data: QnaEntryData) -> str:
    """
    Canonical serialization of an entry's content for duplicate detection.

    Identity and the enabled flag are excluded, keys are sorted and the
    question list is order-independent, so two entries carrying the same
    content always share a fingerprint.

    Args:
        data: Entry data

    Returns:
        Canonical JSON string
    """
    dumped = data.model_dump(mode="json", exclude=FINGERPRINT_EXCLUDED_FIELDS, warnings=False)
    dumped["questions"] = sorted(str(question) for question in dumped.get("questions") or [])
    return json.dumps(dumped, sort_keys=True, ensure_ascii=False, default=str)
