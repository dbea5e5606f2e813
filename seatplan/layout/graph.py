"""ReferenceGraph – NetworkX-backed view of what refers to what in a layout."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import networkx as nx

if TYPE_CHECKING:
    from seatplan.layout.document import LayoutDocument

logger = logging.getLogger(__name__)

SEAT = "seat"
SECTION = "section"
CATEGORY = "category"


class ReferenceGraph:
    """Directed graph whose nodes are ``(kind, id)`` tuples.

    Edges run from a seat to the section and category it references.  Edges
    to nodes that were never declared mark dangling references, which is
    what :meth:`dangling` reports.
    """

    def __init__(self) -> None:
        self._g: nx.DiGraph = nx.DiGraph()

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    def add_entity(self, kind: str, entity_id: str) -> None:
        self._g.add_node((kind, entity_id), declared=True)

    def add_reference(self, seat_id: str, kind: str, target_id: str) -> None:
        target = (kind, target_id)
        if target not in self._g:
            self._g.add_node(target, declared=False)
        self._g.add_edge((SEAT, seat_id), target)

    @classmethod
    def from_document(cls, doc: "LayoutDocument") -> "ReferenceGraph":
        g = cls()
        for cat in doc.categories:
            g.add_entity(CATEGORY, cat.id)
        for sec in doc.sections:
            g.add_entity(SECTION, sec.id)
        for seat in doc.seats:
            g.add_entity(SEAT, seat.id)
            g.add_reference(seat.id, SECTION, seat.section_id)
            g.add_reference(seat.id, CATEGORY, seat.category_id)
        return g

    # ------------------------------------------------------------------ #
    # Query helpers
    # ------------------------------------------------------------------ #

    def dependents(self, kind: str, entity_id: str) -> list[str]:
        """Seat ids referencing ``(kind, entity_id)``."""
        node = (kind, entity_id)
        if node not in self._g:
            return []
        return sorted(sid for _, sid in self._g.predecessors(node))

    def dangling(self) -> list[tuple[str, str, str]]:
        """Return ``(seat_id, kind, missing_id)`` for every broken reference."""
        out = []
        for (skind, sid), target in self._g.edges():
            if not self._g.nodes[target].get("declared"):
                out.append((sid, target[0], target[1]))
        return sorted(out)

    def orphans(self, kind: str) -> list[str]:
        """Declared entities of ``kind`` no seat refers to."""
        return sorted(
            eid
            for (k, eid), data in self._g.nodes(data=True)
            if k == kind and data.get("declared") and self._g.in_degree((k, eid)) == 0
        )

    def __len__(self) -> int:
        return len(self._g.nodes)
