"""
Interchange Format Parsers

Turn raw import payloads into validated entry data. Each supported format
has one parser registered in PARSERS; lookups go through get_parser so an
unknown format fails with an explicit error.

All parsers accept interchange records of the export shape:
    {questions | question, action, answer, answer2}
and decode "flow#node" redirect targets into persisted fields.
"""

import csv
import io
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import yaml

from qna.exceptions import QnaValidationError, UnsupportedFormatError
from qna.models.entry import QnaAction, QnaEntryData
from qna.services.codec import decode_redirect, to_persisted_entry

logger = logging.getLogger(__name__)

CSV_FIELDS = ["question", "action", "answer", "answer2"]
CSV_REQUIRED_FIELDS = ["question", "action", "answer"]

_ACTIONS = [action.value for action in QnaAction]


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_record(record: Mapping[str, Any], row: Optional[int] = None) -> QnaEntryData:
    """
    Convert one interchange record to entry data.

    - text:          answer is the answer text
    - redirect:      answer is the "flow#node" target
    - text_redirect: answer is the text, answer2 the "flow#node" target

    Args:
        record: Interchange record
        row: Position of the record in its payload (for error messages)

    Returns:
        Validated QnaEntryData

    Raises:
        QnaValidationError: If the record is malformed
    """
    if not isinstance(record, Mapping):
        raise QnaValidationError(
            f"expected an object, got {type(record).__name__}", row=row
        )

    action = _clean(record.get("action"))
    if action not in _ACTIONS:
        raise QnaValidationError(
            f"action should be one of {', '.join(_ACTIONS)}, got {action!r}", row=row
        )

    questions = record.get("questions", record.get("question"))
    if questions is None:
        raise QnaValidationError("missing 'question' or 'questions'", row=row)

    answer = _clean(record.get("answer"))
    text_answer = None
    redirect = None
    if action == QnaAction.TEXT.value:
        text_answer = answer
    elif action == QnaAction.REDIRECT.value:
        redirect = answer
    else:
        text_answer = answer
        redirect = _clean(record.get("answer2"))

    redirect_flow, redirect_node = decode_redirect(redirect)
    return to_persisted_entry(
        {
            "questions": questions,
            "action": action,
            "answer": text_answer,
            "redirect_flow": redirect_flow,
            "redirect_node": redirect_node,
        },
        row=row,
    )


def parse_records(records: Iterable[Mapping[str, Any]]) -> List[QnaEntryData]:
    """
    Convert interchange records to entry data, stopping at the first bad record.

    Args:
        records: Interchange records

    Returns:
        List of validated QnaEntryData, in input order
    """
    return [parse_record(record, row=index) for index, record in enumerate(records, start=1)]


def _expect_list(payload: Any, format_name: str) -> List[Any]:
    if not isinstance(payload, list):
        raise QnaValidationError(
            f"{format_name} payload must be a list of questions, got {type(payload).__name__}"
        )
    return payload


def parse_json(content: str) -> List[QnaEntryData]:
    """
    Parse a JSON array of interchange records.

    Raises:
        QnaValidationError: If the content is not valid JSON or not an array
    """
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise QnaValidationError(f"Invalid JSON: {e}") from e
    return parse_records(_expect_list(payload, "JSON"))


def parse_yaml(content: str) -> List[QnaEntryData]:
    """
    Parse a YAML sequence of interchange records.

    Raises:
        QnaValidationError: If the content is not valid YAML or not a sequence
    """
    try:
        payload = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise QnaValidationError(f"Invalid YAML: {e}") from e
    if payload is None:
        return []
    return parse_records(_expect_list(payload, "YAML"))


def merge_csv_rows(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Group consecutive CSV rows sharing action, answer and answer2.

    A flat export writes one row per question; reading it back merges the
    rows of each entry into a single record with several questions.

    Args:
        rows: Flat CSV rows (question, action, answer, answer2)

    Returns:
        Grouped records (questions, action, answer, answer2)
    """
    merged: List[Dict[str, Any]] = []
    for row in rows:
        key = (_clean(row.get("action")), _clean(row.get("answer")), _clean(row.get("answer2")))
        question = row.get("question")
        previous = merged[-1] if merged else None
        if previous is not None and previous["_key"] == key:
            previous["questions"].append(question)
            continue
        merged.append(
            {
                "_key": key,
                "_row": row.get("_row"),
                "questions": [question],
                "action": row.get("action"),
                "answer": row.get("answer"),
                "answer2": row.get("answer2"),
            }
        )
    return merged


def parse_csv(content: str) -> List[QnaEntryData]:
    """
    Parse CSV with header "question,action,answer,answer2".

    Raises:
        QnaValidationError: If the header is missing columns or a row is invalid
    """
    # utf-8-sig exports start with a BOM
    content = content.lstrip("\ufeff")
    reader = csv.DictReader(io.StringIO(content))
    try:
        header = [field.strip() for field in (reader.fieldnames or [])]
        missing = [field for field in CSV_REQUIRED_FIELDS if field not in header]
        if missing:
            raise QnaValidationError(f"CSV header is missing column(s): {', '.join(missing)}")
        reader.fieldnames = header

        rows = []
        # Row 1 is the header
        for line_number, row in enumerate(reader, start=2):
            if None in row:
                raise QnaValidationError("too many values", row=line_number)
            if all(not _clean(value) for value in row.values()):
                continue
            row["_row"] = line_number
            rows.append(row)
    except csv.Error as e:
        raise QnaValidationError(f"Invalid CSV: {e}") from e

    return [
        parse_record(record, row=record["_row"])
        for record in merge_csv_rows(rows)
    ]


Parser = Callable[[str], List[QnaEntryData]]

PARSERS: Dict[str, Parser] = {
    "json": parse_json,
    "csv": parse_csv,
    "yaml": parse_yaml,
}


def get_parser(format: str) -> Parser:
    """
    Look up the parser for a format name (case-insensitive).

    Raises:
        UnsupportedFormatError: If no parser is registered for the format
    """
    parser = PARSERS.get((format or "").lower())
    if parser is None:
        raise UnsupportedFormatError(format, supported=sorted(PARSERS))
    return parser


def parse(format: str, content: str) -> List[QnaEntryData]:
    """
    Parse raw content in the given format.

    Args:
        format: Format name ("json", "csv" or "yaml")
        content: Raw text

    Returns:
        List of validated QnaEntryData
    """
    parser = get_parser(format)
    candidates = parser(content)
    logger.debug(f"Parsed {len(candidates)} question(s) from {format} payload")
    return candidates
