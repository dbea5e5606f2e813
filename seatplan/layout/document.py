"""LayoutDocument – the aggregate owning categories, sections, seats and
drawing primitives of one library's floor plan.

The document owns referential integrity between seats, sections and
categories.  It is an explicitly owned, in-memory object scoped to one edit
session; snapshots handed to viewers are read-only deep copies.
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Iterator, Optional, Union

from shapely.geometry import MultiPoint
from shapely.ops import unary_union

from seatplan.config import LayoutDefaults
from seatplan.errors import (
    DependencyError,
    IntegrityError,
    LayoutReferenceError,
    NotFound,
    ReadOnlyDocumentError,
)
from seatplan.geometry.primitives import ImageAnchor, Polyline, Shape, TextLabel
from seatplan.layout.graph import CATEGORY, SECTION, ReferenceGraph
from seatplan.layout.model import (
    Category,
    LayoutVersion,
    Seat,
    SeatStatus,
    Section,
    Workspace,
)

logger = logging.getLogger(__name__)

Primitive = Union[Shape, Polyline, TextLabel, ImageAnchor]

_KEEP = object()


@dataclass
class LayoutDocument:
    name: str = "Library Layout"
    categories: list[Category] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)
    seats: list[Seat] = field(default_factory=list)
    shapes: list[Shape] = field(default_factory=list)
    polylines: list[Polyline] = field(default_factory=list)
    text_labels: list[TextLabel] = field(default_factory=list)
    images: list[ImageAnchor] = field(default_factory=list)
    workspace: Workspace = field(default_factory=Workspace)
    version: LayoutVersion = LayoutVersion.DRAFT
    published_at: Optional[datetime] = None
    extras: dict = field(default_factory=dict)
    read_only: bool = field(default=False, repr=False, compare=False)

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    @classmethod
    def create(
        cls,
        name: Optional[str] = None,
        defaults: Optional[LayoutDefaults] = None,
    ) -> "LayoutDocument":
        """Return a new draft holding one default category and one section."""
        d = defaults or LayoutDefaults()
        doc = cls(name=name or d.layout_name)
        doc.add_category(
            d.category_name,
            color=d.category_color,
            text_color=d.category_text_color,
            id_prefix=d.category_id_prefix,
        )
        doc.add_section(
            d.section_name,
            color=d.section_color,
            stroke=d.section_stroke,
            id_prefix=d.section_id_prefix,
        )
        return doc

    def snapshot(self) -> "LayoutDocument":
        """Immutable deep copy; every mutator raises on it."""
        snap = copy.deepcopy(self)
        snap.read_only = True
        return snap

    def copy(self) -> "LayoutDocument":
        """Writable deep copy (e.g. to start editing from a snapshot)."""
        dup = copy.deepcopy(self)
        dup.read_only = False
        return dup

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def get_seat(self, seat_id: str) -> Seat:
        for seat in self.seats:
            if seat.id == seat_id:
                return seat
        raise NotFound(f"Seat '{seat_id}' not found.")

    def get_section(self, section_id: str) -> Section:
        for sec in self.sections:
            if sec.id == section_id:
                return sec
        raise NotFound(f"Section '{section_id}' not found.")

    def get_category(self, category_id: str) -> Category:
        for cat in self.categories:
            if cat.id == category_id:
                return cat
        raise NotFound(f"Category '{category_id}' not found.")

    def has_seat(self, seat_id: str) -> bool:
        return any(s.id == seat_id for s in self.seats)

    def find_section_by_name(self, name: str) -> Optional[Section]:
        return next((s for s in self.sections if s.name == name), None)

    def find_category_by_name(self, name: str) -> Optional[Category]:
        return next((c for c in self.categories if c.name == name), None)

    def seats_in_section(self, section_id: str) -> list[Seat]:
        return [s for s in self.seats if s.section_id == section_id]

    def seat_for_person(self, person_id: str) -> Optional[Seat]:
        """The seat fixed to ``person_id``, if any."""
        return next((s for s in self.seats if s.assigned_person_id == person_id), None)

    def status_counts(self) -> dict[SeatStatus, int]:
        counts = Counter(s.status for s in self.seats)
        return {status: counts.get(status, 0) for status in SeatStatus}

    def primitives(self) -> Iterator[Primitive]:
        yield from self.shapes
        yield from self.polylines
        yield from self.images
        yield from self.text_labels

    def bounds(self) -> Optional[tuple[float, float, float, float]]:
        """``(min_x, min_y, max_x, max_y)`` of seats and primitives."""
        geoms = [p.geometry() for p in self.primitives()]
        if self.seats:
            geoms.append(MultiPoint([(s.x, s.y) for s in self.seats]))
        if not geoms:
            return None
        return tuple(unary_union(geoms).bounds)

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def problems(self) -> list[str]:
        """Return a list of integrity problems (empty = OK)."""
        errors: list[str] = []

        for kind, items in (("category", self.categories), ("section", self.sections), ("seat", self.seats)):
            for item_id, n in Counter(i.id for i in items).items():
                if n > 1:
                    errors.append(f"Duplicate {kind} id '{item_id}' ({n} times).")

        for seat_id, kind, missing in ReferenceGraph.from_document(self).dangling():
            errors.append(f"Seat '{seat_id}' references unknown {kind} '{missing}'.")

        free_sections = {s.id for s in self.sections if s.free_seating}
        holders: dict[str, list[str]] = {}
        for seat in self.seats:
            if seat.assigned_person_id is None:
                continue
            holders.setdefault(seat.assigned_person_id, []).append(seat.id)
            if seat.section_id in free_sections:
                errors.append(
                    f"Seat '{seat.id}' is fixed to '{seat.assigned_person_id}' "
                    f"in free-seating section '{seat.section_id}'."
                )
            if seat.status != SeatStatus.OCCUPIED:
                errors.append(
                    f"Seat '{seat.id}' is assigned to '{seat.assigned_person_id}' "
                    f"but its status is '{seat.status.value}'."
                )
        for person_id, seat_ids in holders.items():
            if len(seat_ids) > 1:
                errors.append(f"Person '{person_id}' holds several fixed seats: {', '.join(seat_ids)}.")

        for entity in (*self.categories, *self.sections):
            errors.extend(entity.validate())
        for prim in self.primitives():
            errors.extend(prim.validate())
        return errors

    def validate(self) -> None:
        """Raise :class:`IntegrityError` unless the document is consistent."""
        errors = self.problems()
        if errors:
            raise IntegrityError(errors)

    # ------------------------------------------------------------------ #
    # Categories / sections
    # ------------------------------------------------------------------ #

    def add_category(
        self,
        name: str,
        color: str = "#4CAF50",
        text_color: str = "#FFFFFF",
        category_id: Optional[str] = None,
        id_prefix: str = "cat",
    ) -> Category:
        self._touch()
        cid = self._claim_id(category_id, {c.id for c in self.categories}, id_prefix, "Category")
        cat = Category(id=cid, name=name, color=color, text_color=text_color)
        self.categories.append(cat)
        logger.debug("Added category %s (%s)", cid, name)
        return cat

    def add_section(
        self,
        name: str,
        free_seating: bool = False,
        color: str = "#E3F2FD",
        stroke: str = "#1976D2",
        section_id: Optional[str] = None,
        id_prefix: str = "sec",
    ) -> Section:
        self._touch()
        sid = self._claim_id(section_id, {s.id for s in self.sections}, id_prefix, "Section")
        sec = Section(id=sid, name=name, color=color, stroke=stroke, free_seating=free_seating)
        self.sections.append(sec)
        logger.debug("Added section %s (%s, free_seating=%s)", sid, name, free_seating)
        return sec

    def update_section(self, section_id: str, **changes) -> Section:
        """Change name/colours/free_seating of a section.

        Turning a section into free seating is refused while any of its
        seats carries a fixed assignment.
        """
        sec = self.get_section(section_id)
        unknown = set(changes) - {"name", "color", "stroke", "free_seating"}
        if unknown:
            raise TypeError(f"Unknown section fields: {', '.join(sorted(unknown))}")
        if changes.get("free_seating") and not sec.free_seating:
            fixed = [s.id for s in self.seats_in_section(section_id) if s.is_fixed]
            if fixed:
                raise DependencyError(
                    f"Section '{section_id}' has fixed seats ({', '.join(fixed)}); unassign them first."
                )
        self._touch()
        for key, value in changes.items():
            setattr(sec, key, value)
        return sec

    def update_category(self, category_id: str, **changes) -> Category:
        cat = self.get_category(category_id)
        unknown = set(changes) - {"name", "color", "text_color"}
        if unknown:
            raise TypeError(f"Unknown category fields: {', '.join(sorted(unknown))}")
        self._touch()
        for key, value in changes.items():
            setattr(cat, key, value)
        return cat

    def remove_section(self, section_id: str) -> None:
        self.get_section(section_id)
        users = ReferenceGraph.from_document(self).dependents(SECTION, section_id)
        if users:
            raise DependencyError(
                f"Section '{section_id}' is still used by seats: {', '.join(users)}."
            )
        self._touch()
        self.sections = [s for s in self.sections if s.id != section_id]
        logger.debug("Removed section %s", section_id)

    def remove_category(self, category_id: str) -> None:
        self.get_category(category_id)
        users = ReferenceGraph.from_document(self).dependents(CATEGORY, category_id)
        if users:
            raise DependencyError(
                f"Category '{category_id}' is still used by seats: {', '.join(users)}."
            )
        self._touch()
        self.categories = [c for c in self.categories if c.id != category_id]
        logger.debug("Removed category %s", category_id)

    # ------------------------------------------------------------------ #
    # Seats
    # ------------------------------------------------------------------ #

    def upsert_seat(self, seat: Seat) -> Seat:
        """Insert ``seat`` or replace the stored seat with the same id."""
        self._ensure_writable()
        section_ids = {s.id for s in self.sections}
        category_ids = {c.id for c in self.categories}
        if seat.section_id not in section_ids:
            raise LayoutReferenceError(f"Seat '{seat.id}': unknown section '{seat.section_id}'.")
        if seat.category_id not in category_ids:
            raise LayoutReferenceError(f"Seat '{seat.id}': unknown category '{seat.category_id}'.")
        if seat.assigned_person_id is not None and seat.status != SeatStatus.OCCUPIED:
            raise IntegrityError(
                [f"Seat '{seat.id}' carries an assignment but is '{seat.status.value}'."]
            )
        if seat.assigned_person_id is not None and self.get_section(seat.section_id).free_seating:
            raise IntegrityError(
                [f"Seat '{seat.id}' is in free-seating section '{seat.section_id}' and cannot be fixed."]
            )

        index = next((i for i, s in enumerate(self.seats) if s.id == seat.id), None)
        existing = self.seats[index] if index is not None else None
        if existing is not None and existing.is_fixed and existing.assigned_person_id != seat.assigned_person_id:
            raise DependencyError(
                f"Seat '{seat.id}' is fixed to '{existing.assigned_person_id}'; unassign it first."
            )
        if seat.assigned_person_id is not None:
            holder = self.seat_for_person(seat.assigned_person_id)
            if holder is not None and holder.id != seat.id:
                raise IntegrityError(
                    [f"Person '{seat.assigned_person_id}' already holds seat '{holder.id}'."]
                )

        self._touch()
        if index is None:
            self.seats.append(seat)
            logger.debug("Inserted seat %s", seat.id)
        else:
            self.seats[index] = seat
            logger.debug("Replaced seat %s", seat.id)
        return seat

    def remove_seat(self, seat_id: str) -> None:
        seat = self.get_seat(seat_id)
        if seat.is_fixed:
            raise DependencyError(
                f"Seat '{seat_id}' is fixed to '{seat.assigned_person_id}'; unassign it first."
            )
        self._touch()
        self.seats = [s for s in self.seats if s.id != seat_id]
        logger.debug("Removed seat %s", seat_id)

    def update_seat_state(
        self,
        seat_id: str,
        status: SeatStatus,
        assigned_person_id=_KEEP,
    ) -> Seat:
        """Set live status (and optionally the assignment) of one seat.

        Operational state: unlike structural edits this never turns a
        published document back into a draft.
        """
        self._ensure_writable()
        seat = self.get_seat(seat_id)
        seat.status = status
        if assigned_person_id is not _KEEP:
            seat.assigned_person_id = assigned_person_id
        return seat

    def mark_published(self, when: datetime) -> None:
        self._ensure_writable()
        self.version = LayoutVersion.PUBLISHED
        self.published_at = when

    def mark_draft(self) -> None:
        self._ensure_writable()
        self.version = LayoutVersion.DRAFT

    # ------------------------------------------------------------------ #
    # Drawing primitives
    # ------------------------------------------------------------------ #

    def add_primitive(self, prim: Primitive) -> Primitive:
        errors = prim.validate()
        if errors:
            raise IntegrityError(errors)
        taken = {p.id for p in self.primitives()}
        if prim.id in taken:
            raise LayoutReferenceError(f"Drawing primitive id '{prim.id}' already exists.")
        self._touch()
        self._primitive_list(prim).append(prim)
        return prim

    def remove_primitive(self, prim_id: str) -> None:
        for attr in ("shapes", "polylines", "text_labels", "images"):
            items = getattr(self, attr)
            if any(p.id == prim_id for p in items):
                self._touch()
                setattr(self, attr, [p for p in items if p.id != prim_id])
                return
        raise NotFound(f"Drawing primitive '{prim_id}' not found.")

    def _primitive_list(self, prim: Primitive) -> list:
        if isinstance(prim, Shape):
            return self.shapes
        if isinstance(prim, Polyline):
            return self.polylines
        if isinstance(prim, TextLabel):
            return self.text_labels
        if isinstance(prim, ImageAnchor):
            return self.images
        raise TypeError(f"Not a drawing primitive: {type(prim).__name__}")

    # ------------------------------------------------------------------ #
    # Atomic edits
    # ------------------------------------------------------------------ #

    @contextmanager
    def batch(self) -> Iterator["LayoutDocument"]:
        """Apply several edits as one: on any exception, restore and re-raise."""
        self._ensure_writable()
        saved = {f.name: copy.deepcopy(getattr(self, f.name)) for f in fields(self)}
        try:
            yield self
        except BaseException:
            for name, value in saved.items():
                setattr(self, name, value)
            logger.debug("Rolled back batch edit on layout '%s'", self.name)
            raise

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _ensure_writable(self) -> None:
        if self.read_only:
            raise ReadOnlyDocumentError(f"Layout '{self.name}' is a read-only snapshot.")

    def _touch(self) -> None:
        """Mark a structural edit; a published layout becomes a new draft."""
        self._ensure_writable()
        if self.version == LayoutVersion.PUBLISHED:
            self.version = LayoutVersion.DRAFT
            logger.debug("Layout '%s' edited after publish; now a draft", self.name)

    @staticmethod
    def _claim_id(requested: Optional[str], taken: set[str], prefix: str, kind: str) -> str:
        if requested is not None:
            if requested in taken:
                raise LayoutReferenceError(f"{kind} id '{requested}' already exists.")
            return requested
        while True:
            candidate = f"{prefix}-{uuid.uuid4().hex[:8]}"
            if candidate not in taken:
                return candidate
