"""JSON-file persistence adapter.

One directory holds, per library::

    <library>.draft.json       working layout
    <library>.meta.json        {"revision": n}
    <library>.published.json   snapshot visible to viewers
    <library>.audit.jsonl      one AuditEntry per line
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Optional

from seatplan.assignment.manager import AuditEntry
from seatplan.errors import ConflictError, LayoutFormatError, NotFound
from seatplan.layout.codec import dumps, load_layout_json
from seatplan.layout.document import LayoutDocument
from seatplan.persistence.adapter_base import PersistenceAdapter

logger = logging.getLogger(__name__)

_LIBRARY_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class JsonFileAdapter(PersistenceAdapter):
    def __init__(self, data_dir: str | Path, indent: int = 2) -> None:
        self.data_dir = Path(data_dir)
        self.indent = indent

    # ------------------------------------------------------------------ #
    # Paths
    # ------------------------------------------------------------------ #

    def _path(self, library_id: str, suffix: str) -> Path:
        if not _LIBRARY_ID_RE.match(library_id):
            raise ValueError(f"Invalid library id: {library_id!r}")
        return self.data_dir / f"{library_id}.{suffix}"

    def _write(self, path: Path, text: str) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(path)

    # ------------------------------------------------------------------ #
    # Layouts
    # ------------------------------------------------------------------ #

    def load_layout(self, library_id: str) -> LayoutDocument:
        path = self._path(library_id, "draft.json")
        if not path.exists():
            raise NotFound(f"No layout stored for library '{library_id}'.")
        return load_layout_json(path)

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
        self._write(self._path(library_id, "draft.json"), dumps(doc, indent=self.indent))
        self._write(self._path(library_id, "meta.json"), json.dumps({"revision": current + 1}))
        logger.info("Saved layout for %s (revision %d) → %s", library_id, current + 1, self.data_dir)
        return current + 1

    def revision(self, library_id: str) -> int:
        path = self._path(library_id, "meta.json")
        if not path.exists():
            return 0
        try:
            return int(json.loads(path.read_text(encoding="utf-8"))["revision"])
        except (ValueError, KeyError, TypeError) as exc:
            raise LayoutFormatError(f"Corrupt metadata file {path}: {exc}") from exc

    def publish_snapshot(self, library_id: str, doc: LayoutDocument) -> None:
        path = self._path(library_id, "published.json")
        self._write(path, dumps(doc, indent=self.indent))
        logger.info("Published snapshot for %s → %s", library_id, path)

    def load_published(self, library_id: str) -> LayoutDocument:
        path = self._path(library_id, "published.json")
        if not path.exists():
            raise NotFound(f"Library '{library_id}' has no published layout.")
        return load_layout_json(path).snapshot()

    # ------------------------------------------------------------------ #
    # Audit
    # ------------------------------------------------------------------ #

    def append_audit(self, library_id: str, entry: AuditEntry) -> None:
        path = self._path(library_id, "audit.jsonl")
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as fh:
            fh.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")

    def audit_log(self, library_id: str) -> list[AuditEntry]:
        path = self._path(library_id, "audit.jsonl")
        if not path.exists():
            return []
        entries = []
        with open(path, "r", encoding="utf-8") as fh:
            for line in fh:
                if line.strip():
                    entries.append(AuditEntry.from_dict(json.loads(line)))
        return entries
