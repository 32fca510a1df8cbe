"""
Tests for QnaService: dedup import, export, CSV interchange and CRUD.
"""

import asyncio
import json
from datetime import datetime

import pytest

from qna.config import Settings
from qna.exceptions import (
    EntryNotFoundError,
    QnaValidationError,
    StoreError,
    UnsupportedFormatError,
)
from qna.models.entry import QnaEntryData
from qna.services.interception import InterceptionGate
from qna.services.qna_service import QnaService
from qna.storage.file_store import FileEntryStore
from qna.storage.memory_store import InMemoryEntryStore


RECORDS = [
    {"questions": ["Opening hours?", "When are you open?"], "action": "text", "answer": "9 to 5"},
    {"question": "Talk to sales", "action": "redirect", "redirect_flow": "sales.flow.json", "redirect_node": "intro"},
    {
        "questions": ["Pricing?"],
        "action": "text_redirect",
        "answer": "See our plans",
        "redirect_flow": "pricing.flow.json",
    },
]


class FailingStore(InMemoryEntryStore):
    """Store whose n-th save fails."""

    def __init__(self, fail_on: int):
        super().__init__()
        self.fail_on = fail_on
        self.saves = 0

    async def save(self, data, entry_id=None):
        self.saves += 1
        if self.saves == self.fail_on:
            raise StoreError("disk full")
        return await super().save(data, entry_id)


def make_service(store=None, **settings):
    return QnaService(
        store=store or InMemoryEntryStore(),
        settings=Settings(**settings),
        gate=InterceptionGate(),
    )


@pytest.fixture
def service():
    return make_service()


class TestImport:
    """Content-addressed dedup on import."""

    def test_import_creates_entries(self, service):
        ids = asyncio.run(service.import_questions(RECORDS))

        assert len(ids) == 3
        assert asyncio.run(service.count_questions()) == 3
        entry = asyncio.run(service.get_question(ids[1]))
        assert entry.data.questions == ["Talk to sales"]
        assert entry.data.redirect_node == "intro"

    def test_import_is_idempotent(self, service):
        first = asyncio.run(service.import_questions(RECORDS))
        second = asyncio.run(service.import_questions(RECORDS))

        assert len(first) == 3
        assert second == []
        assert asyncio.run(service.count_questions()) == 3

    def test_disabled_entry_counts_as_duplicate(self, service):
        asyncio.run(
            service.save_question(
                {"questions": ["Opening hours?"], "action": "text", "answer": "9 to 5", "enabled": False}
            )
        )

        ids = asyncio.run(
            service.import_questions(
                [{"questions": ["Opening hours?"], "action": "text", "answer": "9 to 5"}]
            )
        )

        assert ids == []

    def test_question_order_does_not_matter(self, service):
        asyncio.run(service.import_questions([RECORDS[0]]))

        reordered = dict(RECORDS[0], questions=list(reversed(RECORDS[0]["questions"])))
        assert asyncio.run(service.import_questions([reordered])) == []

    def test_imported_entries_are_enabled(self, service):
        ids = asyncio.run(
            service.import_questions(
                [{"question": "Q", "action": "text", "answer": "A", "enabled": False}]
            )
        )

        entry = asyncio.run(service.get_question(ids[0]))
        assert entry.data.enabled is True

    def test_duplicates_within_payload_are_imported_once(self, service):
        ids = asyncio.run(service.import_questions([RECORDS[0], RECORDS[0]]))
        assert len(ids) == 1

    def test_ids_follow_input_order(self, service):
        ids = asyncio.run(service.import_questions(RECORDS))

        entries = [asyncio.run(service.get_question(entry_id)) for entry_id in ids]
        assert [entry.data.action.value for entry in entries] == [
            "text",
            "redirect",
            "text_redirect",
        ]

    def test_import_text_payload(self, service):
        content = json.dumps(
            [{"questions": ["Talk to sales"], "action": "redirect", "answer": "sales.flow.json#intro"}]
        )

        ids = asyncio.run(service.import_questions(content, format="json"))

        entry = asyncio.run(service.get_question(ids[0]))
        assert entry.data.redirect_flow == "sales.flow.json"
        assert entry.data.redirect_node == "intro"

    def test_import_bytes_payload(self, service):
        content = "question,action,answer\nCafé?,text,Oui\n".encode("utf-8")

        ids = asyncio.run(service.import_questions(content, format="csv"))

        assert asyncio.run(service.get_question(ids[0])).data.questions == ["Café?"]

    def test_parse_failure_writes_nothing(self, service):
        payload = [RECORDS[0], {"question": "Broken", "action": "text"}]

        with pytest.raises(QnaValidationError):
            asyncio.run(service.import_questions(payload))

        assert asyncio.run(service.count_questions()) == 0

    def test_unsupported_format(self, service):
        with pytest.raises(UnsupportedFormatError):
            asyncio.run(service.import_questions("<questions/>", format="xml"))

    def test_store_failure_halts_batch(self):
        store = FailingStore(fail_on=2)
        service = make_service(store=store)

        with pytest.raises(StoreError):
            asyncio.run(service.import_questions(RECORDS))

        assert asyncio.run(service.count_questions()) == 1
        assert store.saves == 2

    def test_caller_entry_data_is_not_mutated(self, service):
        data = QnaEntryData(questions=["Q"], action="text", answer="A", enabled=False)

        asyncio.run(service.import_questions([data]))

        assert data.enabled is False


class TestExport:
    """Grouped and flat export."""

    def test_export_grouped(self, service):
        asyncio.run(service.import_questions(RECORDS))

        records = asyncio.run(service.export_questions())

        by_action = {record.action: record for record in records}
        assert by_action["text"].questions == ["Opening hours?", "When are you open?"]
        assert by_action["redirect"].answer == "sales.flow.json#intro"
        assert by_action["redirect"].answer2 is None
        assert by_action["text_redirect"].answer == "See our plans"
        assert by_action["text_redirect"].answer2 == "pricing.flow.json"

    def test_export_flat(self, service):
        asyncio.run(
            service.import_questions(
                [{"questions": ["Q1", "Q2", "Q3"], "action": "text", "answer": "A"}]
            )
        )

        records = asyncio.run(service.export_questions(flat=True))

        assert [record.question for record in records] == ["Q1", "Q2", "Q3"]
        assert {(record.action, record.answer, record.answer2) for record in records} == {
            ("text", "A", None)
        }

    def test_export_includes_disabled_entries(self, service):
        asyncio.run(
            service.save_question(
                {"questions": ["Q"], "action": "text", "answer": "A", "enabled": False}
            )
        )
        assert len(asyncio.run(service.export_questions())) == 1

    def test_export_is_read_only(self, service):
        asyncio.run(service.import_questions(RECORDS))
        asyncio.run(service.export_questions(flat=True))
        assert asyncio.run(service.count_questions()) == 3

    def test_round_trip_creates_nothing(self, service):
        asyncio.run(service.import_questions(RECORDS))

        records = asyncio.run(service.export_questions(flat=False))
        content = json.dumps([record.model_dump() for record in records])

        assert asyncio.run(service.import_questions(content, format="json")) == []

    @pytest.mark.parametrize(
        "data",
        [
            {"questions": ["Q"], "action": "text", "answer": "A", "redirect_flow": "F"},
            {"questions": ["Q"], "action": "redirect", "answer": "A", "redirect_flow": "F"},
            {"questions": ["Q"], "action": "text", "answer": "A "},
            {"questions": ["Q"], "action": "text_redirect", "answer": " A", "redirect_flow": "F "},
        ],
    )
    def test_round_trip_of_saved_entry_creates_nothing(self, service, data):
        asyncio.run(service.save_question(data))

        records = asyncio.run(service.export_questions(flat=False))
        content = json.dumps([record.model_dump() for record in records])

        assert asyncio.run(service.import_questions(content, format="json")) == []

    def test_export_survives_malformed_stored_entry(self):
        store = InMemoryEntryStore()
        store._entries["legacy"] = {"questions": ["Q"], "action": "text"}
        service = make_service(store=store)

        records = asyncio.run(service.export_questions())

        assert [(record.questions, record.action, record.answer) for record in records] == [
            (["Q"], "text", None)
        ]
        assert asyncio.run(service.export_csv()).decode("utf-8").splitlines()[1] == "Q,text,,"
        ids = asyncio.run(
            service.import_questions([{"question": "Q", "action": "text", "answer": "A"}])
        )
        assert len(ids) == 1

    def test_export_skips_unreadable_file(self, tmp_path):
        (tmp_path / "zzz.json").write_text("{not json", encoding="utf-8")
        service = make_service(store=FileEntryStore(str(tmp_path)))
        asyncio.run(service.import_questions([RECORDS[0]]))

        records = asyncio.run(service.export_questions())

        assert [record.answer for record in records] == ["9 to 5"]

    def test_export_filename(self):
        assert QnaService.export_filename(datetime(2026, 10, 19)) == "qna_19-10-2026.csv"


class TestCsv:
    """CSV interchange."""

    def test_export_csv(self, service):
        asyncio.run(
            service.import_questions(
                [{"questions": ["Hi", "Hello"], "action": "text", "answer": "Hey there"}]
            )
        )

        lines = asyncio.run(service.export_csv()).decode("utf-8").splitlines()

        assert lines == [
            "question,action,answer,answer2",
            "Hi,text,Hey there,",
            "Hello,text,Hey there,",
        ]

    def test_export_csv_uses_configured_encoding(self):
        service = make_service(qna_export_csv_encoding="latin-1")
        asyncio.run(service.import_questions([{"question": "Q", "action": "text", "answer": "Café"}]))

        content = asyncio.run(service.export_csv())

        assert "Café".encode("latin-1") in content

    def test_csv_round_trip_creates_nothing(self, service):
        asyncio.run(service.import_questions(RECORDS))

        content = asyncio.run(service.export_csv())

        assert asyncio.run(service.import_csv(content)) == []

    def test_import_csv_replace(self, service):
        asyncio.run(service.import_questions([RECORDS[0]]))

        ids = asyncio.run(
            service.import_csv("question,action,answer\nBye,text,Goodbye\n", replace=True)
        )

        entries = asyncio.run(service.list_questions())
        assert [entry.id for entry in entries] == ids
        assert entries[0].data.questions == ["Bye"]

    def test_import_csv_replace_with_bad_content_deletes_nothing(self, service):
        asyncio.run(service.import_questions([RECORDS[0]]))

        with pytest.raises(QnaValidationError):
            asyncio.run(service.import_csv("question,answer\nBye,Goodbye\n", replace=True))

        assert asyncio.run(service.count_questions()) == 1


class TestEntries:
    """Single-entry CRUD."""

    def test_save_and_replace(self, service):
        entry_id = asyncio.run(service.save_question({"question": "Q", "action": "text", "answer": "A"}))

        asyncio.run(
            service.save_question(
                {"questions": ["Q"], "action": "redirect", "redirectFlow": "F"}, entry_id
            )
        )

        entry = asyncio.run(service.get_question(entry_id))
        assert entry.data.action.value == "redirect"
        assert entry.data.answer is None
        assert entry.data.redirect_flow == "F"

    def test_save_invalid(self, service):
        with pytest.raises(QnaValidationError):
            asyncio.run(service.save_question({"questions": [], "action": "text", "answer": "A"}))

    def test_replace_unknown_id(self, service):
        with pytest.raises(EntryNotFoundError):
            asyncio.run(
                service.save_question({"question": "Q", "action": "text", "answer": "A"}, "missing")
            )

    def test_delete(self, service):
        entry_id = asyncio.run(service.save_question({"question": "Q", "action": "text", "answer": "A"}))

        asyncio.run(service.delete_question(entry_id))

        with pytest.raises(EntryNotFoundError):
            asyncio.run(service.get_question(entry_id))

    def test_list_pagination(self, service):
        asyncio.run(service.import_questions(RECORDS))

        page = asyncio.run(service.list_questions(limit=2, offset=1))
        everything = asyncio.run(service.list_questions())

        assert [entry.id for entry in page] == [entry.id for entry in everything[1:3]]

    def test_delete_all(self, service):
        asyncio.run(service.import_questions(RECORDS))

        assert asyncio.run(service.delete_all_questions()) == 3
        assert asyncio.run(service.count_questions()) == 0


class TestShouldProcessMessage:
    def test_registers_and_clears_predicate(self, service):
        service.should_process_message(lambda event, state: False)
        assert service.gate.is_registered

        service.should_process_message(None)
        assert not service.gate.is_registered
