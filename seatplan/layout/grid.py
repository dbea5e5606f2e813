"""Rectangular seat-grid generator.

Builds ``rows × columns`` seats labelled ``A-1``, ``A-2`` … ``B-1`` …, the
quick-start layout the mobile editor offers before any freeform drawing.
"""

from __future__ import annotations

import logging
import string
from typing import Optional

import numpy as np

from seatplan.geometry.primitives import Point
from seatplan.layout.document import LayoutDocument
from seatplan.layout.model import Seat

logger = logging.getLogger(__name__)


def row_label(index: int) -> str:
    """0 → A, 25 → Z, 26 → AA, 27 → AB …"""
    if index < 0:
        raise ValueError("Row index must be non-negative")
    letters = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        letters = string.ascii_uppercase[rem] + letters
    return letters


def grid_positions(
    rows: int,
    columns: int,
    spacing: float = 60.0,
    origin: tuple[float, float] = (0.0, 0.0),
) -> np.ndarray:
    """Return an array of shape ``(rows, columns, 2)`` of seat centres."""
    xs = origin[0] + np.arange(columns) * spacing
    ys = origin[1] + np.arange(rows) * spacing
    gx, gy = np.meshgrid(xs, ys)
    return np.stack([gx, gy], axis=-1)


def generate_grid(
    doc: LayoutDocument,
    rows: int,
    columns: int,
    section_id: Optional[str] = None,
    category_id: Optional[str] = None,
    spacing: float = 60.0,
    origin: tuple[float, float] = (0.0, 0.0),
) -> list[Seat]:
    """Add a grid of seats to ``doc`` in one atomic edit.

    Seat ids equal their labels (``"C-4"``).  Section and category default
    to the first ones in the document.  If any id collides with a seat that
    carries a fixed assignment the whole grid is rolled back.
    """
    if rows <= 0 or columns <= 0:
        raise ValueError(f"Grid needs positive rows and columns, got {rows}x{columns}")
    section_id = section_id or (doc.sections[0].id if doc.sections else "")
    category_id = category_id or (doc.categories[0].id if doc.categories else "")

    centres = grid_positions(rows, columns, spacing, origin)
    seats: list[Seat] = []
    with doc.batch():
        for r in range(rows):
            for c in range(columns):
                label = f"{row_label(r)}-{c + 1}"
                x, y = centres[r, c]
                seat = Seat(
                    id=label,
                    label=label,
                    section_id=section_id,
                    category_id=category_id,
                    position=Point(float(x), float(y)),
                )
                seats.append(doc.upsert_seat(seat))
    logger.info("Generated %dx%d seat grid in section %s", rows, columns, section_id)
    return seats
