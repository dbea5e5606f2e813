"""In-memory persistence adapter (tests, previews, single-process tools)."""

from __future__ import annotations

import logging
from typing import Optional

from seatplan.assignment.manager import AuditEntry
from seatplan.errors import ConflictError, NotFound
from seatplan.layout.codec import layout_from_dict, layout_to_dict
from seatplan.layout.document import LayoutDocument
from seatplan.persistence.adapter_base import PersistenceAdapter

logger = logging.getLogger(__name__)


class InMemoryAdapter(PersistenceAdapter):
    def __init__(self) -> None:
        self._drafts: dict[str, dict] = {}
        self._revisions: dict[str, int] = {}
        self._published: dict[str, dict] = {}
        self._audit: dict[str, list[AuditEntry]] = {}

    def load_layout(self, library_id: str) -> LayoutDocument:
        if library_id not in self._drafts:
            raise NotFound(f"No layout stored for library '{library_id}'.")
        return layout_from_dict(self._drafts[library_id])

    def save_layout(
        self,
        library_id: str,
        doc: LayoutDocument,
        expected_revision: Optional[int] = None,
    ) -> int:
        current = self.revision(library_id)
        if expected_revision is not None and expected_revision != current:
            raise ConflictError(
                f"Library '{library_id}' is at revision {current}, expected {expected_revision}."
            )
        doc.validate()
        self._drafts[library_id] = layout_to_dict(doc)
        self._revisions[library_id] = current + 1
        logger.debug("Saved layout for %s (revision %d)", library_id, current + 1)
        return current + 1

    def revision(self, library_id: str) -> int:
        return self._revisions.get(library_id, 0)

    def publish_snapshot(self, library_id: str, doc: LayoutDocument) -> None:
        self._published[library_id] = layout_to_dict(doc)

    def load_published(self, library_id: str) -> LayoutDocument:
        if library_id not in self._published:
            raise NotFound(f"Library '{library_id}' has no published layout.")
        return layout_from_dict(self._published[library_id]).snapshot()

    def append_audit(self, library_id: str, entry: AuditEntry) -> None:
        self._audit.setdefault(library_id, []).append(entry)

    def audit_log(self, library_id: str) -> list[AuditEntry]:
        return list(self._audit.get(library_id, []))
