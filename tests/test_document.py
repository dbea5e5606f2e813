"""Tests for the LayoutDocument aggregate."""

import pytest

from seatplan.errors import (
    DependencyError,
    IntegrityError,
    LayoutReferenceError,
    NotFound,
    ReadOnlyDocumentError,
)
from seatplan.geometry.primitives import Point, Polyline, Shape, TextLabel
from seatplan.layout.document import LayoutDocument
from seatplan.layout.model import LayoutVersion, Seat, SeatStatus


def _doc() -> LayoutDocument:
    doc = LayoutDocument(name="Reading Room")
    doc.add_category("Standard", category_id="std")
    doc.add_category("VIP", category_id="vip", color="#FFD700", text_color="#000000")
    doc.add_section("Ground", section_id="A")
    doc.add_section("Lounge", section_id="L", free_seating=True)
    return doc


class TestCreate:
    def test_defaults(self):
        doc = LayoutDocument.create()
        assert [c.name for c in doc.categories] == ["Standard"]
        assert [s.name for s in doc.sections] == ["Section 1"]
        assert doc.seats == []
        assert doc.version == LayoutVersion.DRAFT
        doc.validate()

    def test_generated_ids_are_unique(self):
        doc = LayoutDocument()
        ids = {doc.add_section("Same name").id for _ in range(20)}
        assert len(ids) == 20
        assert all(i.startswith("sec-") for i in ids)

    def test_explicit_duplicate_id_rejected(self):
        doc = _doc()
        with pytest.raises(LayoutReferenceError):
            doc.add_section("Again", section_id="A")


class TestUpsertSeat:
    def test_insert_then_replace(self):
        doc = _doc()
        doc.upsert_seat(Seat("s1", section_id="A", category_id="std", label="1"))
        doc.upsert_seat(Seat("s1", section_id="A", category_id="vip", label="1"))
        assert len(doc.seats) == 1
        assert doc.get_seat("s1").category_id == "vip"

    def test_unknown_section(self):
        doc = _doc()
        with pytest.raises(LayoutReferenceError):
            doc.upsert_seat(Seat("s1", section_id="nope", category_id="std"))
        assert doc.seats == []

    def test_unknown_category(self):
        doc = _doc()
        with pytest.raises(LayoutReferenceError):
            doc.upsert_seat(Seat("s1", section_id="A", category_id="nope"))

    def test_cannot_overwrite_fixed_seat_binding(self):
        doc = _doc()
        doc.upsert_seat(
            Seat("s1", section_id="A", category_id="std",
                 status=SeatStatus.OCCUPIED, assigned_person_id="p1")
        )
        with pytest.raises(DependencyError):
            doc.upsert_seat(Seat("s1", section_id="A", category_id="std"))

    def test_assignment_requires_occupied(self):
        doc = _doc()
        with pytest.raises(IntegrityError):
            doc.upsert_seat(Seat("s1", section_id="A", category_id="std", assigned_person_id="p1"))

    def test_no_fixed_seat_in_free_seating_section(self):
        doc = _doc()
        with pytest.raises(IntegrityError):
            doc.upsert_seat(
                Seat("f1", section_id="L", category_id="std",
                     status=SeatStatus.OCCUPIED, assigned_person_id="p1")
            )
        assert doc.seats == []
        doc.upsert_seat(Seat("f1", section_id="L", category_id="std", status=SeatStatus.OCCUPIED))
        assert doc.get_seat("f1").status == SeatStatus.OCCUPIED

    def test_validate_never_fails_after_valid_edits(self):
        doc = LayoutDocument()
        for i in range(5):
            cat = doc.add_category(f"C{i}")
            sec = doc.add_section(f"S{i}", free_seating=i % 2 == 0)
            for j in range(3):
                doc.upsert_seat(Seat(f"{i}-{j}", section_id=sec.id, category_id=cat.id,
                                     position=Point(i * 50, j * 50)))
        doc.validate()
        assert doc.problems() == []


class TestRemove:
    def test_remove_section_in_use(self):
        doc = _doc()
        doc.upsert_seat(Seat("s1", section_id="A", category_id="std"))
        with pytest.raises(DependencyError) as exc:
            doc.remove_section("A")
        assert "s1" in str(exc.value)
        assert doc.get_section("A")

    def test_remove_section_after_seats_gone(self):
        doc = _doc()
        doc.upsert_seat(Seat("s1", section_id="A", category_id="std"))
        doc.remove_seat("s1")
        doc.remove_section("A")
        with pytest.raises(NotFound):
            doc.get_section("A")

    def test_remove_unknown_section(self):
        with pytest.raises(NotFound):
            _doc().remove_section("zzz")

    def test_remove_category_in_use(self):
        doc = _doc()
        doc.upsert_seat(Seat("s1", section_id="A", category_id="vip"))
        with pytest.raises(DependencyError):
            doc.remove_category("vip")
        doc.remove_category("std")
        assert [c.id for c in doc.categories] == ["vip"]

    def test_remove_fixed_seat_refused(self):
        doc = _doc()
        doc.upsert_seat(
            Seat("s1", section_id="A", category_id="std",
                 status=SeatStatus.OCCUPIED, assigned_person_id="p1")
        )
        with pytest.raises(DependencyError):
            doc.remove_seat("s1")


class TestValidate:
    def test_dangling_section(self):
        doc = _doc()
        doc.seats.append(Seat("s1", section_id="gone", category_id="std"))
        with pytest.raises(IntegrityError) as exc:
            doc.validate()
        assert any("gone" in p for p in exc.value.problems)

    def test_duplicate_seat_ids(self):
        doc = _doc()
        doc.seats.append(Seat("s1", section_id="A", category_id="std"))
        doc.seats.append(Seat("s1", section_id="A", category_id="std"))
        problems = doc.problems()
        assert any("Duplicate seat id 's1'" in p for p in problems)

    def test_person_on_two_seats(self):
        doc = _doc()
        for sid in ("s1", "s2"):
            doc.seats.append(Seat(sid, section_id="A", category_id="std",
                                  status=SeatStatus.OCCUPIED, assigned_person_id="p1"))
        assert any("several fixed seats" in p for p in doc.problems())

    def test_fixed_seat_in_free_seating_section(self):
        doc = _doc()
        doc.seats.append(Seat("f1", section_id="L", category_id="std",
                              status=SeatStatus.OCCUPIED, assigned_person_id="p1"))
        problems = doc.problems()
        assert any("free-seating section 'L'" in p for p in problems)
        with pytest.raises(IntegrityError):
            doc.validate()

    def test_bad_primitive_colour(self):
        doc = _doc()
        doc.shapes.append(Shape("wall", x=0, y=0, width=10, height=10, color="red"))
        assert any("invalid color" in p for p in doc.problems())


class TestUpdateSection:
    def test_cannot_make_free_seating_with_fixed_seats(self):
        doc = _doc()
        doc.upsert_seat(
            Seat("s1", section_id="A", category_id="std",
                 status=SeatStatus.OCCUPIED, assigned_person_id="p1")
        )
        with pytest.raises(DependencyError):
            doc.update_section("A", free_seating=True)
        assert doc.get_section("A").free_seating is False

    def test_rename(self):
        doc = _doc()
        doc.update_section("A", name="Ground floor")
        assert doc.find_section_by_name("Ground floor").id == "A"

    def test_unknown_field(self):
        with pytest.raises(TypeError):
            _doc().update_section("A", capacity=3)


class TestBatch:
    def test_rollback_on_failure(self):
        doc = _doc()
        doc.upsert_seat(Seat("s1", section_id="A", category_id="std"))
        with pytest.raises(LayoutReferenceError):
            with doc.batch():
                doc.upsert_seat(Seat("s2", section_id="A", category_id="std"))
                doc.upsert_seat(Seat("s3", section_id="missing", category_id="std"))
        assert [s.id for s in doc.seats] == ["s1"]

    def test_commit_on_success(self):
        doc = _doc()
        with doc.batch():
            doc.upsert_seat(Seat("s1", section_id="A", category_id="std"))
            doc.upsert_seat(Seat("s2", section_id="A", category_id="std"))
        assert [s.id for s in doc.seats] == ["s1", "s2"]


class TestSnapshot:
    def test_snapshot_is_read_only(self):
        snap = _doc().snapshot()
        with pytest.raises(ReadOnlyDocumentError):
            snap.add_section("x")
        with pytest.raises(ReadOnlyDocumentError):
            snap.upsert_seat(Seat("s1", section_id="A", category_id="std"))

    def test_snapshot_is_independent(self):
        doc = _doc()
        snap = doc.snapshot()
        doc.upsert_seat(Seat("s1", section_id="A", category_id="std"))
        assert snap.seats == []
        assert len(doc.seats) == 1
        assert doc.snapshot() == doc

    def test_copy_is_writable(self):
        copy = _doc().snapshot().copy()
        copy.add_section("More")
        assert len(copy.sections) == 3


class TestVersioning:
    def test_structural_edit_returns_to_draft(self):
        doc = _doc()
        doc.version = LayoutVersion.PUBLISHED
        doc.add_category("Premium")
        assert doc.version == LayoutVersion.DRAFT

    def test_status_change_keeps_published(self):
        doc = _doc()
        doc.upsert_seat(Seat("s1", section_id="A", category_id="std"))
        doc.version = LayoutVersion.PUBLISHED
        doc.update_seat_state("s1", SeatStatus.RESERVED)
        assert doc.version == LayoutVersion.PUBLISHED


class TestPrimitivesAndBounds:
    def test_add_and_remove_primitive(self):
        doc = _doc()
        doc.add_primitive(Polyline("wall", points=[Point(0, 0), Point(100, 0)]))
        doc.add_primitive(TextLabel("t", x=5, y=5, label="Entrance"))
        assert len(doc.polylines) == 1 and len(doc.text_labels) == 1
        doc.remove_primitive("wall")
        assert doc.polylines == []
        with pytest.raises(NotFound):
            doc.remove_primitive("wall")

    def test_invalid_primitive_rejected(self):
        with pytest.raises(IntegrityError):
            _doc().add_primitive(Polyline("p", points=[Point(0, 0)]))

    def test_bounds(self):
        doc = _doc()
        assert doc.bounds() is None
        doc.upsert_seat(Seat("s1", section_id="A", category_id="std", position=Point(10, 20)))
        doc.add_primitive(Shape("desk", x=-5, y=0, width=50, height=100))
        assert doc.bounds() == (-5.0, 0.0, 45.0, 100.0)


def test_seat_for_person_and_section_lookup():
    doc = _doc()
    doc.upsert_seat(Seat("s1", section_id="A", category_id="std",
                         status=SeatStatus.OCCUPIED, assigned_person_id="p1"))
    doc.upsert_seat(Seat("s2", section_id="L", category_id="std"))
    assert doc.seat_for_person("p1").id == "s1"
    assert doc.seat_for_person("p2") is None
    assert [s.id for s in doc.seats_in_section("L")] == ["s2"]
    assert doc.status_counts()[SeatStatus.OCCUPIED] == 1
