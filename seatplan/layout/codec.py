"""JSON wire/storage format of a :class:`LayoutDocument`.

The format is a single camelCase JSON object.  Seat status and fixed
assignment are stored inline on each seat.  Keys this module does not know
about are kept in the ``extras`` bag of the owning object and written back
unchanged, so documents produced by other clients survive a round trip.

Older clients used a few different spellings; these are accepted on load and
normalised on save:

    seat ``category`` / ``section``     → ``categoryId`` / ``sectionId``
    seat ``x`` / ``y``                  → ``position``
    status VACANT, BLANK / FILLED, FIXED / BLOCKED
    top-level ``text``                  → ``textLabels``
    workspace ``initialViewBoxScale``   → ``initialViewScale``
    seat ``currentAssignment`` (FIXED)  → ``assignedPersonId``

A legacy key that appears next to its canonical key is not read; it is kept
in ``extras`` like any other unknown key.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from seatplan.errors import LayoutFormatError
from seatplan.geometry.primitives import ImageAnchor, Point, Polyline, Shape, TextLabel
from seatplan.layout.document import LayoutDocument
from seatplan.layout.model import (
    Category,
    LayoutVersion,
    Seat,
    SeatStatus,
    Section,
    Workspace,
)

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _split(data: Any, known: tuple[str, ...], owner: str) -> tuple[dict, dict]:
    """Return ``(known_fields, extras)`` of a JSON object."""
    if not isinstance(data, dict):
        raise LayoutFormatError(f"{owner}: expected an object, got {type(data).__name__}.")
    picked = {k: data[k] for k in known if k in data}
    extras = {k: v for k, v in data.items() if k not in known}
    return picked, extras


def _shadowed_aliases(d: dict, extras: dict, aliases: dict[str, str]) -> None:
    """Move legacy keys whose canonical key is also present into ``extras``."""
    for alias, canonical in aliases.items():
        if alias in d and canonical in d:
            extras[alias] = d.pop(alias)


def _req_str(d: dict, key: str, owner: str) -> str:
    value = d.get(key)
    if value is None or value == "":
        raise LayoutFormatError(f"{owner}: missing '{key}'.")
    return str(value)


def _num(d: dict, key: str, owner: str, default: Optional[float] = 0.0) -> Optional[float]:
    value = d.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool):
        raise LayoutFormatError(f"{owner}: '{key}' must be a number.")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise LayoutFormatError(f"{owner}: '{key}' must be a number, got {value!r}.") from None


def _list(data: dict, key: str) -> list:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise LayoutFormatError(f"'{key}' must be a list.")
    return value


def _put_opt(out: dict, key: str, value: Any) -> None:
    if value is not None:
        out[key] = value


# --------------------------------------------------------------------------- #
# Decoding
# --------------------------------------------------------------------------- #

_CATEGORY_KEYS = ("id", "name", "color", "textColor")
_SECTION_KEYS = ("id", "name", "color", "stroke", "freeSeating")
_SEAT_KEYS = (
    "id", "label", "sectionId", "categoryId", "position", "status",
    "assignedPersonId", "square", "rotation",
    "section", "category", "x", "y",
)
_SHAPE_KEYS = ("id", "name", "x", "y", "width", "height", "rx", "color", "stroke", "rotation")
_POLYLINE_KEYS = ("id", "points", "section", "color", "stroke")
_TEXT_KEYS = ("id", "x", "y", "label", "fontSize", "fontWeight", "color", "rotation")
_IMAGE_KEYS = ("id", "x", "y", "width", "height", "href", "opacity")
_WORKSPACE_KEYS = (
    "initialViewScale", "initialViewScaleForWidth", "visibilityOffset",
    "airplaneMode", "initialViewBoxScale",
)
_DOCUMENT_KEYS = (
    "name", "categories", "sections", "seats", "shapes", "polylines",
    "textLabels", "text", "images", "workspace", "version", "publishedAt",
)

# legacy key -> canonical key it stands in for
_SEAT_ALIASES = {"section": "sectionId", "category": "categoryId", "x": "position", "y": "position"}
_WORKSPACE_ALIASES = {"initialViewBoxScale": "initialViewScale"}
_DOCUMENT_ALIASES = {"text": "textLabels"}


def _category_from_dict(data: Any) -> Category:
    d, extras = _split(data, _CATEGORY_KEYS, "category")
    return Category(
        id=_req_str(d, "id", "category"),
        name=str(d.get("name", "")),
        color=d.get("color", "#4CAF50"),
        text_color=d.get("textColor", "#FFFFFF"),
        extras=extras,
    )


def _section_from_dict(data: Any) -> Section:
    d, extras = _split(data, _SECTION_KEYS, "section")
    return Section(
        id=_req_str(d, "id", "section"),
        name=str(d.get("name", "")),
        color=d.get("color", "#E3F2FD"),
        stroke=d.get("stroke", "#1976D2"),
        free_seating=bool(d.get("freeSeating", False)),
        extras=extras,
    )


def _status_from_value(value: Any, owner: str) -> SeatStatus:
    if value is None:
        return SeatStatus.AVAILABLE
    try:
        status = SeatStatus.from_str(str(value))
    except ValueError as exc:
        raise LayoutFormatError(f"{owner}: {exc}") from None
    if status.value != value:
        logger.debug("%s: legacy status %r read as %s", owner, value, status.value)
    return status


def _legacy_assignee(current: Any, status: SeatStatus, owner: str) -> Optional[str]:
    """Person bound by an older client's ``currentAssignment`` block.

    Only fixed assignments on occupied seats count; temporary ones were
    walk-ins and carry no binding.
    """
    if not isinstance(current, dict) or current.get("assignmentType") != "FIXED":
        return None
    student = current.get("studentId")
    if not student:
        return None
    if status != SeatStatus.OCCUPIED:
        logger.debug("%s: fixed assignment to %r ignored, seat is %s", owner, student, status.value)
        return None
    return str(student)


def _seat_from_dict(data: Any) -> Seat:
    d, extras = _split(data, _SEAT_KEYS, "seat")
    _shadowed_aliases(d, extras, _SEAT_ALIASES)
    seat_id = _req_str(d, "id", "seat")
    owner = f"seat '{seat_id}'"

    pos = d.get("position")
    if pos is not None:
        if not isinstance(pos, dict):
            raise LayoutFormatError(f"{owner}: 'position' must be an object.")
        position = Point(_num(pos, "x", owner), _num(pos, "y", owner))
    else:
        position = Point(_num(d, "x", owner), _num(d, "y", owner))

    section_id = d.get("sectionId", d.get("section"))
    category_id = d.get("categoryId", d.get("category"))
    status = _status_from_value(d.get("status"), owner)
    if "assignedPersonId" in d:
        assigned = d["assignedPersonId"]
    else:
        assigned = _legacy_assignee(extras.get("currentAssignment"), status, owner)

    return Seat(
        id=seat_id,
        section_id="" if section_id is None else str(section_id),
        category_id="" if category_id is None else str(category_id),
        position=position,
        label=str(d.get("label") or ""),
        status=status,
        assigned_person_id=None if assigned is None else str(assigned),
        square=bool(d.get("square", False)),
        rotation=_num(d, "rotation", owner),
        extras=extras,
    )


def _shape_from_dict(data: Any) -> Shape:
    d, extras = _split(data, _SHAPE_KEYS, "shape")
    owner = f"shape '{d.get('id')}'"
    return Shape(
        id=_req_str(d, "id", "shape"),
        name=str(d.get("name", "")),
        x=_num(d, "x", owner),
        y=_num(d, "y", owner),
        width=_num(d, "width", owner),
        height=_num(d, "height", owner),
        rx=_num(d, "rx", owner),
        color=d.get("color"),
        stroke=d.get("stroke"),
        rotation=_num(d, "rotation", owner),
        extras=extras,
    )


def _polyline_from_dict(data: Any) -> Polyline:
    d, extras = _split(data, _POLYLINE_KEYS, "polyline")
    owner = f"polyline '{d.get('id')}'"
    raw_points = d.get("points") or []
    if not isinstance(raw_points, list):
        raise LayoutFormatError(f"{owner}: 'points' must be a list.")
    points = []
    for p in raw_points:
        if not isinstance(p, dict):
            raise LayoutFormatError(f"{owner}: every point must be an object with x and y.")
        points.append(Point(_num(p, "x", owner), _num(p, "y", owner)))
    return Polyline(
        id=_req_str(d, "id", "polyline"),
        points=points,
        section=d.get("section"),
        color=d.get("color"),
        stroke=d.get("stroke"),
        extras=extras,
    )


def _text_from_dict(data: Any) -> TextLabel:
    d, extras = _split(data, _TEXT_KEYS, "text label")
    owner = f"text label '{d.get('id')}'"
    return TextLabel(
        id=_req_str(d, "id", "text label"),
        x=_num(d, "x", owner),
        y=_num(d, "y", owner),
        label=str(d.get("label", "")),
        font_size=_num(d, "fontSize", owner, 16.0),
        font_weight=int(_num(d, "fontWeight", owner, 400)),
        color=d.get("color"),
        rotation=_num(d, "rotation", owner),
        extras=extras,
    )


def _image_from_dict(data: Any) -> ImageAnchor:
    d, extras = _split(data, _IMAGE_KEYS, "image")
    owner = f"image '{d.get('id')}'"
    return ImageAnchor(
        id=_req_str(d, "id", "image"),
        x=_num(d, "x", owner),
        y=_num(d, "y", owner),
        width=_num(d, "width", owner),
        height=_num(d, "height", owner),
        href=str(d.get("href", "")),
        opacity=_num(d, "opacity", owner, 1.0),
        extras=extras,
    )


def _workspace_from_dict(data: Any) -> Workspace:
    d, extras = _split(data or {}, _WORKSPACE_KEYS, "workspace")
    _shadowed_aliases(d, extras, _WORKSPACE_ALIASES)
    scale_key = "initialViewScale" if "initialViewScale" in d else "initialViewBoxScale"
    return Workspace(
        initial_view_scale=_num(d, scale_key, "workspace", None),
        initial_view_scale_for_width=_num(d, "initialViewScaleForWidth", "workspace", None),
        visibility_offset=_num(d, "visibilityOffset", "workspace"),
        airplane_mode=bool(d.get("airplaneMode", False)),
        extras=extras,
    )


def layout_from_dict(data: Any) -> LayoutDocument:
    """Build a :class:`LayoutDocument` from its JSON object.

    Raises
    ------
    LayoutFormatError
        If the object is structurally malformed.  Referential problems are
        *not* checked here; call :meth:`LayoutDocument.validate`.
    """
    d, extras = _split(data, _DOCUMENT_KEYS, "layout")
    _shadowed_aliases(d, extras, _DOCUMENT_ALIASES)

    version_raw = d.get("version", LayoutVersion.DRAFT.value)
    try:
        version = LayoutVersion(version_raw)
    except ValueError:
        raise LayoutFormatError(f"layout: unknown version {version_raw!r}.") from None

    published_at = None
    if d.get("publishedAt"):
        try:
            published_at = datetime.fromisoformat(str(d["publishedAt"]).replace("Z", "+00:00"))
        except ValueError:
            raise LayoutFormatError(f"layout: bad publishedAt {d['publishedAt']!r}.") from None

    text_key = "textLabels" if "textLabels" in d else "text"
    doc = LayoutDocument(
        name=str(d.get("name", "")),
        categories=[_category_from_dict(c) for c in _list(d, "categories")],
        sections=[_section_from_dict(s) for s in _list(d, "sections")],
        seats=[_seat_from_dict(s) for s in _list(d, "seats")],
        shapes=[_shape_from_dict(s) for s in _list(d, "shapes")],
        polylines=[_polyline_from_dict(p) for p in _list(d, "polylines")],
        text_labels=[_text_from_dict(t) for t in _list(d, text_key)],
        images=[_image_from_dict(i) for i in _list(d, "images")],
        workspace=_workspace_from_dict(d.get("workspace")),
        version=version,
        published_at=published_at,
        extras=extras,
    )
    logger.debug(
        "Decoded layout '%s': %d seats, %d sections, %d categories",
        doc.name, len(doc.seats), len(doc.sections), len(doc.categories),
    )
    return doc


# --------------------------------------------------------------------------- #
# Encoding
# --------------------------------------------------------------------------- #


def _with_extras(known: dict, extras: dict) -> dict:
    out = dict(known)
    for k, v in extras.items():
        out.setdefault(k, v)
    return out


def _seat_to_dict(s: Seat) -> dict:
    out = {
        "id": s.id,
        "label": s.label,
        "sectionId": s.section_id,
        "categoryId": s.category_id,
        "position": {"x": s.x, "y": s.y},
        "status": s.status.value,
        "assignedPersonId": s.assigned_person_id,
        "square": s.square,
        "rotation": s.rotation,
    }
    return _with_extras(out, s.extras)


def _shape_to_dict(s: Shape) -> dict:
    out = {
        "id": s.id, "name": s.name, "x": s.x, "y": s.y,
        "width": s.width, "height": s.height, "rx": s.rx, "rotation": s.rotation,
    }
    _put_opt(out, "color", s.color)
    _put_opt(out, "stroke", s.stroke)
    return _with_extras(out, s.extras)


def _polyline_to_dict(p: Polyline) -> dict:
    out = {"id": p.id, "points": [{"x": pt.x, "y": pt.y} for pt in p.points]}
    _put_opt(out, "section", p.section)
    _put_opt(out, "color", p.color)
    _put_opt(out, "stroke", p.stroke)
    return _with_extras(out, p.extras)


def _text_to_dict(t: TextLabel) -> dict:
    out = {
        "id": t.id, "x": t.x, "y": t.y, "label": t.label,
        "fontSize": t.font_size, "fontWeight": t.font_weight, "rotation": t.rotation,
    }
    _put_opt(out, "color", t.color)
    return _with_extras(out, t.extras)


def _image_to_dict(i: ImageAnchor) -> dict:
    out = {
        "id": i.id, "x": i.x, "y": i.y, "width": i.width, "height": i.height,
        "href": i.href, "opacity": i.opacity,
    }
    return _with_extras(out, i.extras)


def _workspace_to_dict(w: Workspace) -> dict:
    out: dict = {"visibilityOffset": w.visibility_offset, "airplaneMode": w.airplane_mode}
    _put_opt(out, "initialViewScale", w.initial_view_scale)
    _put_opt(out, "initialViewScaleForWidth", w.initial_view_scale_for_width)
    return _with_extras(out, w.extras)


def layout_to_dict(doc: LayoutDocument) -> dict:
    """Serialise ``doc`` to its canonical JSON object."""
    out = {
        "name": doc.name,
        "categories": [
            _with_extras(
                {"id": c.id, "name": c.name, "color": c.color, "textColor": c.text_color},
                c.extras,
            )
            for c in doc.categories
        ],
        "sections": [
            _with_extras(
                {
                    "id": s.id, "name": s.name, "color": s.color,
                    "stroke": s.stroke, "freeSeating": s.free_seating,
                },
                s.extras,
            )
            for s in doc.sections
        ],
        "seats": [_seat_to_dict(s) for s in doc.seats],
        "shapes": [_shape_to_dict(s) for s in doc.shapes],
        "polylines": [_polyline_to_dict(p) for p in doc.polylines],
        "textLabels": [_text_to_dict(t) for t in doc.text_labels],
        "images": [_image_to_dict(i) for i in doc.images],
        "workspace": _workspace_to_dict(doc.workspace),
        "version": doc.version.value,
        "publishedAt": doc.published_at.isoformat() if doc.published_at else None,
    }
    return _with_extras(out, doc.extras)


# --------------------------------------------------------------------------- #
# Text / file helpers
# --------------------------------------------------------------------------- #


def dumps(doc: LayoutDocument, indent: Optional[int] = 2) -> str:
    return json.dumps(layout_to_dict(doc), indent=indent, ensure_ascii=False)


def loads(text: str) -> LayoutDocument:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LayoutFormatError(f"Invalid layout JSON: {exc}") from exc
    return layout_from_dict(data)


def save_layout_json(doc: LayoutDocument, path: Path, indent: int = 2) -> None:
    """Save layout as JSON."""
    Path(path).write_text(dumps(doc, indent=indent), encoding="utf-8")
    logger.debug("Saved layout JSON → %s", path)


def load_layout_json(path: Path) -> LayoutDocument:
    return loads(Path(path).read_text(encoding="utf-8"))
