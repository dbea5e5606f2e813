"""Tests for the layout JSON codec."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from seatplan.errors import LayoutFormatError
from seatplan.geometry.primitives import Point, Polyline, Shape, TextLabel
from seatplan.layout.codec import (
    dumps,
    layout_from_dict,
    layout_to_dict,
    load_layout_json,
    loads,
    save_layout_json,
)
from seatplan.layout.document import LayoutDocument
from seatplan.layout.model import LayoutVersion, Seat, SeatStatus

FIXTURES = Path(__file__).parent / "fixtures"


def _doc() -> LayoutDocument:
    doc = LayoutDocument(name="Reading Room")
    doc.add_category("Standard", category_id="std")
    doc.add_section("Ground", section_id="A")
    doc.upsert_seat(Seat("s1", section_id="A", category_id="std", position=Point(10, 20), label="1"))
    doc.upsert_seat(Seat("s2", section_id="A", category_id="std", position=Point(70, 20),
                         status=SeatStatus.OCCUPIED, assigned_person_id="p1", square=True, rotation=45))
    doc.add_primitive(Shape("desk", x=0, y=0, width=100, height=40, color="#795548"))
    doc.add_primitive(Polyline("wall", points=[Point(0, 0), Point(200, 0)], stroke="#000"))
    doc.add_primitive(TextLabel("t", x=5, y=5, label="Quiet zone"))
    return doc


class TestLegacyInput:
    def test_fixture_loads(self):
        doc = load_layout_json(FIXTURES / "legacy_layout.json")
        assert doc.name == "Old Branch"
        assert [s.status for s in doc.seats] == [
            SeatStatus.AVAILABLE, SeatStatus.OCCUPIED, SeatStatus.MAINTENANCE,
        ]
        assert doc.seats[0].section_id == "main"
        assert doc.seats[0].category_id == "std"
        assert doc.seats[1].position == Point(160.0, 100.0)
        assert doc.text_labels[0].label == "Entrance"
        assert doc.workspace.initial_view_scale == 1.5
        doc.validate()

    def test_legacy_keys_normalised_on_save(self):
        out = layout_to_dict(load_layout_json(FIXTURES / "legacy_layout.json"))
        seat = out["seats"][0]
        assert seat["sectionId"] == "main" and seat["categoryId"] == "std"
        assert seat["position"] == {"x": 100.0, "y": 100.0}
        assert seat["status"] == "available"
        assert "section" not in seat and "x" not in seat
        assert "text" not in out and out["textLabels"][0]["id"] == "t1"
        assert out["workspace"]["initialViewScale"] == 1.5

    def test_unknown_keys_survive(self):
        out = layout_to_dict(load_layout_json(FIXTURES / "legacy_layout.json"))
        assert out["ownerNote"] == "imported from the 2019 app"
        assert out["categories"][0]["icon"] == "chair"
        assert out["workspace"]["theme"] == "dark"


class TestCanonicalForm:
    def test_round_trip(self):
        doc = _doc()
        again = loads(dumps(doc))
        assert again == doc
        assert layout_to_dict(again) == layout_to_dict(doc)

    def test_assigned_person_always_present(self):
        seats = layout_to_dict(_doc())["seats"]
        assert seats[0]["assignedPersonId"] is None
        assert seats[1]["assignedPersonId"] == "p1"

    def test_published_at_accepts_z_suffix(self):
        data = layout_to_dict(_doc())
        data["version"] = "published"
        data["publishedAt"] = "2024-03-01T09:30:00Z"
        doc = layout_from_dict(data)
        assert doc.version == LayoutVersion.PUBLISHED
        assert doc.published_at == datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)

    def test_file_helpers(self, tmp_path):
        path = tmp_path / "layout.json"
        save_layout_json(_doc(), path)
        assert json.loads(path.read_text(encoding="utf-8"))["name"] == "Reading Room"
        assert load_layout_json(path) == _doc()


class TestMalformed:
    def test_not_json(self):
        with pytest.raises(LayoutFormatError):
            loads("{not json")

    def test_not_an_object(self):
        with pytest.raises(LayoutFormatError):
            layout_from_dict([1, 2, 3])

    def test_seat_without_id(self):
        with pytest.raises(LayoutFormatError):
            layout_from_dict({"seats": [{"sectionId": "A"}]})

    def test_bad_status(self):
        with pytest.raises(LayoutFormatError, match="status"):
            layout_from_dict({"seats": [{"id": "s1", "status": "broken"}]})

    def test_non_numeric_coordinate(self):
        with pytest.raises(LayoutFormatError):
            layout_from_dict({"seats": [{"id": "s1", "position": {"x": "left", "y": 0}}]})

    def test_unknown_version(self):
        with pytest.raises(LayoutFormatError):
            layout_from_dict({"version": "archived"})

    def test_dangling_reference_is_not_a_format_error(self):
        doc = layout_from_dict({"seats": [{"id": "s1", "sectionId": "gone", "categoryId": "gone"}]})
        assert len(doc.problems()) == 2


class TestShadowedAliases:
    def test_legacy_keys_next_to_canonical_ones_survive(self):
        data = {
            "name": "Mixed",
            "sections": [{"id": "A", "name": "Ground"}],
            "categories": [{"id": "std", "name": "Standard"}],
            "seats": [{
                "id": "s1", "sectionId": "A", "section": "legacy-A",
                "categoryId": "std", "category": "legacy-std",
                "position": {"x": 1, "y": 2}, "x": 9, "y": 8,
                "square": False, "rotation": 0,
            }],
            "textLabels": [{"id": "t1", "x": 0, "y": 0, "label": "New"}],
            "text": [{"id": "t0", "x": 0, "y": 0, "label": "Old"}],
            "workspace": {"initialViewScale": 2, "initialViewBoxScale": 1.5},
        }
        doc = layout_from_dict(data)
        seat = doc.get_seat("s1")
        assert (seat.section_id, seat.category_id) == ("A", "std")
        assert seat.position == Point(1.0, 2.0)
        assert [t.label for t in doc.text_labels] == ["New"]
        assert doc.workspace.initial_view_scale == 2.0

        out = layout_to_dict(doc)
        seat_out = out["seats"][0]
        assert seat_out["section"] == "legacy-A"
        assert seat_out["category"] == "legacy-std"
        assert (seat_out["x"], seat_out["y"]) == (9, 8)
        assert seat_out["square"] is False
        assert seat_out["rotation"] == 0
        assert out["text"] == data["text"]
        assert out["workspace"]["initialViewBoxScale"] == 1.5
        assert layout_to_dict(layout_from_dict(out)) == out


class TestLegacyAssignment:
    def _data(self, status, assignment):
        return {
            "sections": [{"id": "A", "name": "Ground"}],
            "categories": [{"id": "std", "name": "Standard"}],
            "seats": [{"id": "1", "section": "A", "category": "std", "status": status,
                       "currentAssignment": assignment}],
        }

    def test_fixed_assignment_binds_student(self):
        doc = layout_from_dict(self._data("FIXED", {"studentId": "stu-7", "assignmentType": "FIXED"}))
        seat = doc.get_seat("1")
        assert seat.status == SeatStatus.OCCUPIED
        assert seat.assigned_person_id == "stu-7"
        assert doc.seat_for_person("stu-7") is seat
        doc.validate()

    def test_temporary_assignment_is_walk_in(self):
        doc = layout_from_dict(self._data("FILLED", {"studentId": "stu-7", "assignmentType": "TEMPORARY"}))
        assert doc.get_seat("1").assigned_person_id is None

    def test_fixed_assignment_on_free_seat_ignored(self):
        doc = layout_from_dict(self._data("VACANT", {"studentId": "stu-7", "assignmentType": "FIXED"}))
        assert doc.get_seat("1").assigned_person_id is None
        doc.validate()

    def test_canonical_assignee_wins(self):
        data = self._data("FIXED", {"studentId": "stu-7", "assignmentType": "FIXED"})
        data["seats"][0]["assignedPersonId"] = None
        data["seats"][0]["status"] = "available"
        assert layout_from_dict(data).get_seat("1").assigned_person_id is None
