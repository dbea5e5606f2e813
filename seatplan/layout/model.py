"""Seat layout data model.

Category  – seat-type tag (e.g. "Standard", "Premium")
Section   – area of the floor; ``free_seating`` sections are walk-in only
Seat      – a single seat with its live status and optional fixed assignment
Workspace – rendering defaults handed to the viewer
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from seatplan.geometry.primitives import Point, is_valid_color


# --------------------------------------------------------------------------- #
# Enumerations
# --------------------------------------------------------------------------- #


class SeatStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"

    @classmethod
    def from_str(cls, value: str) -> "SeatStatus":
        """Parse a status, accepting the older API spellings.

        Raises ``ValueError`` for anything unrecognised.
        """
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        if normalized in _LEGACY_STATUS:
            return _LEGACY_STATUS[normalized]
        raise ValueError(f"Unknown seat status: {value!r}")


_LEGACY_STATUS = {
    "vacant": SeatStatus.AVAILABLE,
    "blank": SeatStatus.AVAILABLE,
    "filled": SeatStatus.OCCUPIED,
    "fixed": SeatStatus.OCCUPIED,
    "blocked": SeatStatus.MAINTENANCE,
}


class LayoutVersion(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


# --------------------------------------------------------------------------- #
# Category / Section
# --------------------------------------------------------------------------- #


@dataclass
class Category:
    id: str
    name: str
    color: str = "#4CAF50"
    text_color: str = "#FFFFFF"
    extras: dict = field(default_factory=dict)

    def validate(self) -> list[str]:
        errors = []
        for attr in ("color", "text_color"):
            if not is_valid_color(getattr(self, attr)):
                errors.append(f"Category '{self.id}': invalid {attr} '{getattr(self, attr)}'.")
        return errors


@dataclass
class Section:
    id: str
    name: str
    color: str = "#E3F2FD"
    stroke: str = "#1976D2"
    free_seating: bool = False
    extras: dict = field(default_factory=dict)

    def validate(self) -> list[str]:
        errors = []
        for attr in ("color", "stroke"):
            if not is_valid_color(getattr(self, attr)):
                errors.append(f"Section '{self.id}': invalid {attr} '{getattr(self, attr)}'.")
        return errors


# --------------------------------------------------------------------------- #
# Seat
# --------------------------------------------------------------------------- #


@dataclass
class Seat:
    """A seat on the floor plan.

    ``assigned_person_id`` is only ever set while the seat is occupied
    through a fixed assignment.
    """

    id: str
    section_id: str
    category_id: str
    position: Point = field(default_factory=lambda: Point(0.0, 0.0))
    label: str = ""
    status: SeatStatus = SeatStatus.AVAILABLE
    assigned_person_id: Optional[str] = None
    square: bool = False
    rotation: float = 0.0
    extras: dict = field(default_factory=dict)

    @property
    def x(self) -> float:
        return self.position.x

    @property
    def y(self) -> float:
        return self.position.y

    @property
    def display_label(self) -> str:
        return self.label or self.id

    @property
    def is_fixed(self) -> bool:
        return self.assigned_person_id is not None


# --------------------------------------------------------------------------- #
# Workspace
# --------------------------------------------------------------------------- #


@dataclass
class Workspace:
    """Viewer hints; not a domain invariant."""

    initial_view_scale: Optional[float] = None
    initial_view_scale_for_width: Optional[float] = None
    visibility_offset: float = 0.0
    airplane_mode: bool = False
    extras: dict = field(default_factory=dict)
