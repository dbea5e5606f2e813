"""Abstract base class for persistence adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from seatplan.assignment.manager import AuditEntry, AuditSink
from seatplan.layout.document import LayoutDocument
from seatplan.validate.reports import OccupancyStats, occupancy_stats


class PersistenceAdapter(ABC):
    """Storage for one layout draft, one published snapshot and an
    append-only assignment audit log per library.

    Adapters store the serialised JSON form so that whatever is loaded back
    is a fresh, independent :class:`LayoutDocument`.
    """

    @abstractmethod
    def load_layout(self, library_id: str) -> LayoutDocument:
        """Return the working (draft) layout.

        Raises
        ------
        NotFound
            If the library has no layout yet.
        """

    @abstractmethod
    def save_layout(
        self,
        library_id: str,
        doc: LayoutDocument,
        expected_revision: Optional[int] = None,
    ) -> int:
        """Validate and store ``doc``; return the new revision number.

        Raises
        ------
        IntegrityError
            If the document does not validate.
        ConflictError
            If ``expected_revision`` is given and differs from the stored one.
        """

    @abstractmethod
    def revision(self, library_id: str) -> int:
        """Current stored revision (0 when nothing was saved)."""

    @abstractmethod
    def publish_snapshot(self, library_id: str, doc: LayoutDocument) -> None:
        """Store ``doc`` as the version non-admin viewers see."""

    @abstractmethod
    def load_published(self, library_id: str) -> LayoutDocument:
        """Return the last published snapshot or raise ``NotFound``."""

    @abstractmethod
    def append_audit(self, library_id: str, entry: AuditEntry) -> None:
        """Append an assignment audit entry."""

    @abstractmethod
    def audit_log(self, library_id: str) -> list[AuditEntry]:
        """All audit entries of the library, oldest first."""

    # ------------------------------------------------------------------ #
    # Shared helpers
    # ------------------------------------------------------------------ #

    def get_occupancy_stats(self, library_id: str) -> OccupancyStats:
        return occupancy_stats(self.load_layout(library_id))

    def audit_sink(self, library_id: str) -> AuditSink:
        """Callable suitable for :class:`AssignmentManager`'s ``audit_sink``."""

        def _sink(entry: AuditEntry) -> None:
            self.append_audit(library_id, entry)

        return _sink
