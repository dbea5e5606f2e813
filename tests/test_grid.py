"""Tests for the seat-grid generator."""

import numpy as np
import pytest

from seatplan.errors import DependencyError
from seatplan.layout.document import LayoutDocument
from seatplan.layout.grid import generate_grid, grid_positions, row_label
from seatplan.layout.model import Seat, SeatStatus


@pytest.mark.parametrize("index, label", [(0, "A"), (25, "Z"), (26, "AA"), (27, "AB"), (701, "ZZ"), (702, "AAA")])
def test_row_label(index, label):
    assert row_label(index) == label


def test_row_label_negative():
    with pytest.raises(ValueError):
        row_label(-1)


def test_grid_positions():
    pos = grid_positions(2, 3, spacing=50, origin=(10, 20))
    assert pos.shape == (2, 3, 2)
    np.testing.assert_allclose(pos[0, 0], [10, 20])
    np.testing.assert_allclose(pos[1, 2], [110, 70])


def test_generate_grid_defaults_to_first_section_and_category():
    doc = LayoutDocument.create()
    seats = generate_grid(doc, 2, 3)
    assert [s.id for s in seats] == ["A-1", "A-2", "A-3", "B-1", "B-2", "B-3"]
    assert {s.section_id for s in seats} == {doc.sections[0].id}
    assert {s.category_id for s in seats} == {doc.categories[0].id}
    assert doc.get_seat("B-3").position.x == 120.0
    doc.validate()


def test_generate_grid_rejects_empty():
    with pytest.raises(ValueError):
        generate_grid(LayoutDocument.create(), 0, 4)


def test_generate_grid_rolls_back_over_fixed_seat():
    doc = LayoutDocument.create()
    sec, cat = doc.sections[0].id, doc.categories[0].id
    doc.upsert_seat(Seat("A-2", section_id=sec, category_id=cat,
                         status=SeatStatus.OCCUPIED, assigned_person_id="p1"))
    with pytest.raises(DependencyError):
        generate_grid(doc, 1, 3)
    assert [s.id for s in doc.seats] == ["A-2"]
