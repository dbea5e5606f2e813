"""Tests for the persistence adapters."""

import json
from datetime import datetime, timezone

import pytest

from seatplan.assignment.manager import AssignmentAction, AuditEntry
from seatplan.errors import ConflictError, IntegrityError, LayoutFormatError, NotFound
from seatplan.layout.document import LayoutDocument
from seatplan.layout.model import Seat, SeatStatus
from seatplan.persistence.json_store import JsonFileAdapter
from seatplan.persistence.memory import InMemoryAdapter

NOW = datetime(2024, 2, 2, 12, 0, tzinfo=timezone.utc)


def _doc() -> LayoutDocument:
    doc = LayoutDocument(name="Branch")
    doc.add_category("Standard", category_id="std")
    doc.add_section("Ground", section_id="A")
    doc.upsert_seat(Seat("s1", section_id="A", category_id="std"))
    doc.upsert_seat(Seat("s2", section_id="A", category_id="std",
                         status=SeatStatus.OCCUPIED, assigned_person_id="p1"))
    return doc


@pytest.fixture(params=["memory", "json"])
def adapter(request, tmp_path):
    if request.param == "memory":
        return InMemoryAdapter()
    return JsonFileAdapter(tmp_path / "data")


class TestAdapters:
    def test_missing_layout(self, adapter):
        assert adapter.revision("lib") == 0
        with pytest.raises(NotFound):
            adapter.load_layout("lib")
        with pytest.raises(NotFound):
            adapter.load_published("lib")
        assert adapter.audit_log("lib") == []

    def test_save_and_load(self, adapter):
        assert adapter.save_layout("lib", _doc()) == 1
        assert adapter.save_layout("lib", _doc(), expected_revision=1) == 2
        loaded = adapter.load_layout("lib")
        assert loaded == _doc()
        loaded.add_section("Mezzanine")
        assert len(adapter.load_layout("lib").sections) == 1

    def test_stale_revision(self, adapter):
        adapter.save_layout("lib", _doc())
        with pytest.raises(ConflictError):
            adapter.save_layout("lib", _doc(), expected_revision=0)
        assert adapter.revision("lib") == 1

    def test_invalid_layout_not_stored(self, adapter):
        doc = _doc()
        doc.seats.append(Seat("x", section_id="gone", category_id="std"))
        with pytest.raises(IntegrityError):
            adapter.save_layout("lib", doc)
        assert adapter.revision("lib") == 0

    def test_published_snapshot_is_read_only(self, adapter):
        adapter.publish_snapshot("lib", _doc().snapshot())
        snap = adapter.load_published("lib")
        assert snap.read_only
        assert snap.get_seat("s2").assigned_person_id == "p1"

    def test_audit_log(self, adapter):
        sink = adapter.audit_sink("lib")
        sink(AuditEntry("s2", "p1", AssignmentAction.ASSIGN, NOW))
        sink(AuditEntry("s2", "p1", AssignmentAction.UNASSIGN, NOW, reason="maintenance"))
        log = adapter.audit_log("lib")
        assert [e.action for e in log] == [AssignmentAction.ASSIGN, AssignmentAction.UNASSIGN]
        assert log[1].reason == "maintenance"
        assert adapter.audit_log("other") == []

    def test_occupancy_stats(self, adapter):
        adapter.save_layout("lib", _doc())
        stats = adapter.get_occupancy_stats("lib")
        assert (stats.total, stats.occupied, stats.available, stats.fixed) == (2, 1, 1, 1)


class TestJsonFileAdapter:
    def test_file_layout(self, tmp_path):
        adapter = JsonFileAdapter(tmp_path)
        adapter.save_layout("main", _doc())
        adapter.append_audit("main", AuditEntry("s2", "p1", AssignmentAction.ASSIGN, NOW))
        assert json.loads((tmp_path / "main.meta.json").read_text()) == {"revision": 1}
        draft = json.loads((tmp_path / "main.draft.json").read_text())
        assert draft["seats"][1]["assignedPersonId"] == "p1"
        lines = (tmp_path / "main.audit.jsonl").read_text().splitlines()
        assert json.loads(lines[0])["seatId"] == "s2"
        assert not list(tmp_path.glob("*.tmp"))

    @pytest.mark.parametrize("library_id", ["../etc", "", "a/b", ".hidden"])
    def test_rejects_unsafe_library_ids(self, tmp_path, library_id):
        with pytest.raises(ValueError):
            JsonFileAdapter(tmp_path).load_layout(library_id)

    def test_corrupt_metadata(self, tmp_path):
        (tmp_path / "main.meta.json").write_text('{"rev": 3}')
        with pytest.raises(LayoutFormatError):
            JsonFileAdapter(tmp_path).revision("main")
