"""EditSession – one admin's edit session over one library's layout.

Owns the live document and wires the status machine, the assignment manager
(auditing into the adapter), the publish workflow and the command router
around it.  Nothing here is global: two sessions never share a document.
"""

from __future__ import annotations

import logging
from typing import Optional

from seatplan.assignment.manager import AssignmentManager
from seatplan.config import Config
from seatplan.errors import ConflictError, NotFound
from seatplan.layout.document import LayoutDocument
from seatplan.persistence.adapter_base import PersistenceAdapter
from seatplan.publish.workflow import PublishWorkflow
from seatplan.status.machine import SeatStatusMachine
from seatplan.validate.reports import OccupancyStats, occupancy_stats
from seatplan.viewer.events import SeatCommand, SeatCommandRouter
from seatplan.viewer.scene import Scene, build_scene

logger = logging.getLogger(__name__)


class EditSession:
    def __init__(
        self,
        library_id: str,
        adapter: PersistenceAdapter,
        document: LayoutDocument,
        revision: int = 0,
        config: Optional[Config] = None,
    ) -> None:
        self.library_id = library_id
        self.adapter = adapter
        self.document = document
        self.revision = revision
        self.config = config or Config.default()
        self.machine = SeatStatusMachine(document)
        self.manager = AssignmentManager(
            document, machine=self.machine, audit_sink=adapter.audit_sink(library_id)
        )
        self.workflow = PublishWorkflow(library_id, document, adapter)
        self.router = SeatCommandRouter(self.manager)

    @classmethod
    def open(
        cls,
        library_id: str,
        adapter: PersistenceAdapter,
        config: Optional[Config] = None,
        create: bool = True,
    ) -> "EditSession":
        """Load the library's layout, or start a default one if ``create``."""
        cfg = config or Config.default()
        try:
            doc = adapter.load_layout(library_id)
        except NotFound:
            if not create:
                raise
            doc = LayoutDocument.create(defaults=cfg.layout)
            logger.info("No layout for %s yet; starting from defaults", library_id)
        return cls(library_id, adapter, doc, adapter.revision(library_id), cfg)

    def save(self) -> int:
        """Persist the document; fails with ``ConflictError`` on a stale revision."""
        self.revision = self.adapter.save_layout(
            self.library_id, self.document, expected_revision=self.revision
        )
        return self.revision

    def publish(self) -> LayoutDocument:
        """Publish and persist the draft.

        The stored revision is checked first: a stale session must not put a
        layout in front of viewers that was never saved as a draft.
        """
        self._check_revision()
        snapshot = self.workflow.publish()
        self.save()
        return snapshot

    def unpublish(self) -> None:
        self._check_revision()
        self.workflow.unpublish()
        self.save()

    def _check_revision(self) -> None:
        current = self.adapter.revision(self.library_id)
        if current != self.revision:
            raise ConflictError(
                f"Library '{self.library_id}' is at revision {current}, "
                f"this session loaded {self.revision}."
            )

    def handle(self, command: SeatCommand) -> LayoutDocument:
        return self.router.handle(command)

    def editor_scene(self, selected_seat_id: Optional[str] = None) -> Scene:
        """The admin's view: the live draft."""
        return build_scene(
            self.document.snapshot(),
            self.machine.live_statuses(),
            selected_seat_id,
            self.config.viewer,
        )

    def viewer_scene(self, selected_seat_id: Optional[str] = None) -> Scene:
        """What end users see: last published layout with live statuses."""
        return build_scene(
            self.workflow.viewer_document(),
            self.machine.live_statuses(),
            selected_seat_id,
            self.config.viewer,
        )

    def stats(self) -> OccupancyStats:
        return occupancy_stats(self.document)
