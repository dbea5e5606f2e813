"""Occupancy statistics and integrity reporting."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from seatplan.layout.document import LayoutDocument
from seatplan.layout.graph import CATEGORY, SECTION, ReferenceGraph
from seatplan.layout.model import SeatStatus


@dataclass(frozen=True)
class OccupancyStats:
    total: int = 0
    occupied: int = 0
    available: int = 0
    reserved: int = 0
    maintenance: int = 0
    fixed: int = 0

    @property
    def occupancy_rate(self) -> float:
        """Share of seats in use, ignoring seats under maintenance."""
        usable = self.total - self.maintenance
        return round(self.occupied / usable, 4) if usable else 0.0

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["occupancyRate"] = self.occupancy_rate
        return out


def occupancy_stats(doc: LayoutDocument) -> OccupancyStats:
    counts = doc.status_counts()
    return OccupancyStats(
        total=len(doc.seats),
        occupied=counts[SeatStatus.OCCUPIED],
        available=counts[SeatStatus.AVAILABLE],
        reserved=counts[SeatStatus.RESERVED],
        maintenance=counts[SeatStatus.MAINTENANCE],
        fixed=sum(1 for s in doc.seats if s.is_fixed),
    )


def section_occupancy(doc: LayoutDocument) -> dict[str, OccupancyStats]:
    """Per-section stats, keyed by section id."""
    out: dict[str, OccupancyStats] = {}
    for sec in doc.sections:
        seats = doc.seats_in_section(sec.id)
        by_status = {st: sum(1 for s in seats if s.status == st) for st in SeatStatus}
        out[sec.id] = OccupancyStats(
            total=len(seats),
            occupied=by_status[SeatStatus.OCCUPIED],
            available=by_status[SeatStatus.AVAILABLE],
            reserved=by_status[SeatStatus.RESERVED],
            maintenance=by_status[SeatStatus.MAINTENANCE],
            fixed=sum(1 for s in seats if s.is_fixed),
        )
    return out


def build_layout_report(doc: LayoutDocument) -> dict[str, Any]:
    """Build a serialisable report dict."""
    problems = doc.problems()
    graph = ReferenceGraph.from_document(doc)
    return {
        "name": doc.name,
        "version": doc.version.value,
        "problems": problems,
        "unused_sections": graph.orphans(SECTION),
        "unused_categories": graph.orphans(CATEGORY),
        "occupancy": occupancy_stats(doc).to_dict(),
        "sections": {sid: st.to_dict() for sid, st in section_occupancy(doc).items()},
        "ok": len(problems) == 0,
    }


def save_layout_report(report: dict[str, Any], path: Path) -> None:
    path.write_text(json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8")
