"""Draft / publish lifecycle of a library's layout.

``draft → published → draft (new edits) → published (new version)``

Viewers always see the last published snapshot.  Unpublishing or editing
the live document does not change what they see until the next successful
:meth:`PublishWorkflow.publish`.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from seatplan.errors import NotFound, PublishInProgress
from seatplan.layout.document import LayoutDocument
from seatplan.layout.model import LayoutVersion
from seatplan.persistence.adapter_base import PersistenceAdapter

logger = logging.getLogger(__name__)

_registry_lock = threading.Lock()
_publish_locks: dict[str, threading.Lock] = {}


def _publish_lock(library_id: str) -> threading.Lock:
    with _registry_lock:
        return _publish_locks.setdefault(library_id, threading.Lock())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PublishWorkflow:
    """Publish/unpublish one library's working document."""

    def __init__(
        self,
        library_id: str,
        document: LayoutDocument,
        adapter: PersistenceAdapter,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.library_id = library_id
        self.document = document
        self.adapter = adapter
        self._clock = clock
        self._current: Optional[LayoutDocument] = None

    @property
    def version(self) -> LayoutVersion:
        return self.document.version

    @property
    def has_unpublished_changes(self) -> bool:
        return self.document.version != LayoutVersion.PUBLISHED

    def publish(self) -> LayoutDocument:
        """Validate, hand a snapshot to the adapter, then flip the flag.

        Returns the published snapshot.  On any failure the previously
        published snapshot stays current.

        Raises
        ------
        PublishInProgress
            Another publish for the same library is running.
        IntegrityError
            The document does not validate.
        """
        lock = _publish_lock(self.library_id)
        if not lock.acquire(blocking=False):
            raise PublishInProgress(f"A publish for library '{self.library_id}' is already running.")
        try:
            self.document.validate()
            when = self._clock()
            staged = self.document.copy()
            staged.mark_published(when)
            snapshot = staged.snapshot()
            self.adapter.publish_snapshot(self.library_id, snapshot)
            self.document.mark_published(when)
            self._current = snapshot
        finally:
            lock.release()
        logger.info(
            "Published layout '%s' for %s at %s (%d seats)",
            snapshot.name, self.library_id, when.isoformat(), len(snapshot.seats),
        )
        return snapshot

    def unpublish(self) -> None:
        """Return the live document to draft; viewers keep the last snapshot."""
        self.document.mark_draft()
        logger.info("Layout for %s back to draft", self.library_id)

    def viewer_document(self) -> LayoutDocument:
        """The snapshot non-admin viewers see.

        Raises ``NotFound`` if nothing was ever published.
        """
        if self._current is None:
            self._current = self.adapter.load_published(self.library_id)
        return self._current

    def editor_document(self) -> LayoutDocument:
        """The live draft, including edits not yet published."""
        return self.document

    def is_published(self) -> bool:
        try:
            self.viewer_document()
        except NotFound:
            return False
        return True
