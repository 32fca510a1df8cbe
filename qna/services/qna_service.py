"""
Q&A Service

Entry lifecycle and bulk interchange for the Q&A store:
1. Import questions (structured records or JSON/CSV/YAML text) with dedup
2. Export questions, grouped or flat, as records or CSV
3. Single-entry CRUD with pagination
4. Registration of the interception predicate
"""

import csv
import io
import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence, Union

from qna.config import Settings, get_settings
from qna.exceptions import QnaValidationError
from qna.models.api_responses import ExportRecord, FlatExportRecord
from qna.models.entry import QnaEntry, QnaEntryData
from qna.services import parsers
from qna.services.codec import (
    fingerprint,
    flatten_record,
    to_export_record,
    to_persisted_entry,
)
from qna.services.interception import (
    InterceptionGate,
    ShouldProcess,
    get_interception_gate,
)
from qna.storage import EntryStore, create_store

logger = logging.getLogger(__name__)

ImportPayload = Union[str, bytes, Sequence[Mapping[str, Any]]]


class QnaService:
    """
    Import/export engine and entry API on top of an EntryStore.

    Imports are not transactional: candidates are written one at a time and
    a failing write stops the batch, leaving earlier writes in place. Two
    concurrent imports of the same payload can both pass the duplicate check
    and both write.
    """

    def __init__(
        self,
        store: Optional[EntryStore] = None,
        settings: Optional[Settings] = None,
        gate: Optional[InterceptionGate] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or create_store(self.settings)
        self.gate = gate or get_interception_gate()

    # Import

    def parse_candidates(
        self, questions: ImportPayload, format: str = "json"
    ) -> List[QnaEntryData]:
        """
        Turn an import payload into validated candidates without writing anything.

        Args:
            questions: Raw text/bytes in `format`, or already structured records
            format: Format name used for raw text ("json", "csv" or "yaml")

        Returns:
            List of candidate entry data, in input order

        Raises:
            QnaValidationError: If the payload or any record is malformed
        """
        if isinstance(questions, bytes):
            try:
                questions = questions.decode(self.settings.qna_import_encoding)
            except UnicodeDecodeError as e:
                raise QnaValidationError(
                    f"Payload is not valid {self.settings.qna_import_encoding}: {e}"
                ) from e

        if isinstance(questions, str):
            return parsers.parse(format, questions)

        if not isinstance(questions, Sequence):
            raise QnaValidationError(
                f"Expected text or a list of questions, got {type(questions).__name__}"
            )

        return [
            item.model_copy() if isinstance(item, QnaEntryData) else to_persisted_entry(item, row=index)
            for index, item in enumerate(questions, start=1)
        ]

    async def import_questions(
        self, questions: ImportPayload, format: str = "json"
    ) -> List[str]:
        """
        Parse and import questions, skipping those already stored.

        Duplicates are detected on content (see codec.fingerprint): enabled
        state and ids never matter, so importing the same payload twice
        creates nothing the second time.

        Args:
            questions: Raw text/bytes in `format`, or already structured records
            format: Format name used for raw text ("json", "csv" or "yaml")

        Returns:
            Ids of the created entries, in input order

        Raises:
            QnaValidationError: If parsing fails (nothing is written)
            StoreError: If a write fails (remaining candidates are not written)
        """
        candidates = self.parse_candidates(questions, format=format)

        existing = await self.store.list()
        seen = {fingerprint(entry.data) for entry in existing}

        to_save: List[QnaEntryData] = []
        for candidate in candidates:
            key = fingerprint(candidate)
            if key in seen:
                continue
            seen.add(key)
            to_save.append(candidate)

        logger.info(
            f"Importing {len(to_save)} of {len(candidates)} question(s) "
            f"({len(candidates) - len(to_save)} duplicate(s) skipped)"
        )

        ids: List[str] = []
        for candidate in to_save:
            candidate.enabled = True
            ids.append(await self.store.save(candidate))
        return ids

    # Export

    async def export_questions(
        self, flat: bool = False
    ) -> List[Union[ExportRecord, FlatExportRecord]]:
        """
        Export every stored entry, enabled or not.

        Args:
            flat: One record per question instead of one per entry

        Returns:
            Export records in store order
        """
        entries = await self.store.list()
        records = [to_export_record(entry) for entry in entries]
        if not flat:
            return records
        return [flat_record for record in records for flat_record in flatten_record(record)]

    async def export_csv(self) -> bytes:
        """
        Export all questions as CSV, one row per question.

        Returns:
            CSV encoded with the configured export charset
        """
        records = await self.export_questions(flat=True)
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=parsers.CSV_FIELDS, lineterminator="\n")
        writer.writeheader()
        for record in records:
            writer.writerow(
                {
                    name: "" if value is None else value
                    for name, value in record.model_dump(warnings=False).items()
                }
            )
        return buffer.getvalue().encode(self.settings.qna_export_csv_encoding, errors="replace")

    @staticmethod
    def export_filename(now: Optional[datetime] = None) -> str:
        """Attachment name for CSV exports, e.g. qna_19-10-2026.csv"""
        return f"qna_{(now or datetime.now()).strftime('%d-%m-%Y')}.csv"

    async def import_csv(self, content: Union[str, bytes], replace: bool = False) -> List[str]:
        """
        Import a CSV export, optionally replacing every stored question.

        With replace, deletion runs first and one entry at a time; a failure
        part-way leaves the remaining entries in place and nothing imported.
        The CSV is parsed before anything is deleted.

        Args:
            content: CSV text or bytes
            replace: Delete all stored questions before importing

        Returns:
            Ids of the created entries
        """
        candidates = self.parse_candidates(content, format="csv")
        if replace:
            await self.delete_all_questions()
        return await self.import_questions(candidates)

    # Entries

    async def get_question(self, entry_id: str) -> QnaEntry:
        return await self.store.get(entry_id)

    async def list_questions(
        self, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> List[QnaEntry]:
        return await self.store.list(limit=limit, offset=offset)

    async def count_questions(self) -> int:
        return await self.store.count()

    async def save_question(
        self,
        data: Union[QnaEntryData, Mapping[str, Any]],
        entry_id: Optional[str] = None,
    ) -> str:
        """
        Create an entry, or fully replace the entry with the given id.

        Raises:
            QnaValidationError: If the data is malformed
            EntryNotFoundError: If entry_id is given but unknown
        """
        if not isinstance(data, QnaEntryData):
            data = to_persisted_entry(data)
        saved_id = await self.store.save(data, entry_id)
        logger.info(f"Question {'updated' if entry_id else 'created'}: {saved_id}")
        return saved_id

    async def delete_question(self, entry_id: str) -> None:
        await self.store.delete(entry_id)
        logger.info(f"Question deleted: {entry_id}")

    async def delete_all_questions(self) -> int:
        """
        Delete every stored question, one at a time.

        Returns:
            Number of deleted questions
        """
        entries = await self.store.list()
        for entry in entries:
            await self.store.delete(entry.id)
        logger.info(f"Deleted {len(entries)} question(s)")
        return len(entries)

    # Interception

    def should_process_message(self, predicate: Optional[ShouldProcess]) -> None:
        """
        Register the predicate deciding whether Q&A intercepts an event.
        Passing None clears it.
        """
        if predicate is None:
            self.gate.clear()
        else:
            self.gate.register(predicate)
