"""Scene building for the layout viewer.

:func:`build_scene` is a pure function of a layout snapshot, the live seat
statuses and the selected seat.  It returns an immutable :class:`Scene` of
draw items in paint order:

    0  shapes, polylines, images
    1  text labels
    2  seats

The viewer never mutates the model.  Presses are reported through
:mod:`seatplan.viewer.events` and routed by the caller.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Union

import numpy as np
from shapely import affinity
from shapely.geometry import Point as ShapelyPoint, box, mapping
from shapely.geometry.base import BaseGeometry

from seatplan.config import ViewerConfig
from seatplan.layout.document import LayoutDocument
from seatplan.layout.model import Seat, SeatStatus, Workspace

logger = logging.getLogger(__name__)

LAYER_BACKGROUND = 0
LAYER_TEXT = 1
LAYER_SEATS = 2

StatusLike = Union[SeatStatus, str]


# --------------------------------------------------------------------------- #
# Scene types
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class Style:
    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: float = 0.0
    text_color: Optional[str] = None
    font_size: Optional[float] = None
    font_weight: Optional[int] = None
    rotation: float = 0.0
    rx: float = 0.0
    opacity: float = 1.0


@dataclass(frozen=True)
class DrawItem:
    kind: str               # "shape" | "polyline" | "image" | "text" | "seat"
    id: str
    layer: int
    geometry: BaseGeometry
    style: Style
    label: str = ""
    status: Optional[SeatStatus] = None
    selected: bool = False
    href: Optional[str] = None


@dataclass(frozen=True)
class ViewBox:
    min_x: float
    min_y: float
    width: float
    height: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.min_x + self.width / 2, self.min_y + self.height / 2)


@dataclass(frozen=True)
class Scene:
    view_box: ViewBox
    items: tuple[DrawItem, ...]
    selected_seat_id: Optional[str] = None
    airplane_mode: bool = False

    def layer(self, layer: int) -> tuple[DrawItem, ...]:
        return tuple(i for i in self.items if i.layer == layer)

    def seats(self) -> tuple[DrawItem, ...]:
        return self.layer(LAYER_SEATS)

    def item(self, item_id: str) -> Optional[DrawItem]:
        return next((i for i in self.items if i.id == item_id), None)


# --------------------------------------------------------------------------- #
# Scene building
# --------------------------------------------------------------------------- #


def compute_view_box(
    doc: LayoutDocument,
    config: Optional[ViewerConfig] = None,
) -> ViewBox:
    """Seat bounds padded on every side; a default box for empty layouts."""
    cfg = config or ViewerConfig()
    if not doc.seats:
        return ViewBox(0.0, 0.0, cfg.default_width, cfg.default_height)
    pad = cfg.padding + doc.workspace.visibility_offset
    xs = [s.x for s in doc.seats]
    ys = [s.y for s in doc.seats]
    min_x, min_y = min(xs) - pad, min(ys) - pad
    return ViewBox(min_x, min_y, max(xs) + pad - min_x, max(ys) + pad - min_y)


def _seat_status(seat: Seat, live: Mapping[str, StatusLike]) -> SeatStatus:
    value = live.get(seat.id, seat.status)
    if isinstance(value, SeatStatus):
        return value
    try:
        return SeatStatus.from_str(str(value))
    except ValueError:
        logger.debug("Seat %s: unknown live status %r, drawing stored %s", seat.id, value, seat.status.value)
        return seat.status


def _seat_item(
    doc: LayoutDocument,
    seat: Seat,
    status: SeatStatus,
    selected: bool,
    cfg: ViewerConfig,
) -> DrawItem:
    category = next((c for c in doc.categories if c.id == seat.category_id), None)
    if status == SeatStatus.AVAILABLE and category is not None:
        fill = category.color
    else:
        fill = cfg.status_colors.get(status.value, cfg.default_stroke)
    text_color = category.text_color if category is not None else "#FFFFFF"

    r = cfg.seat_radius
    if seat.square:
        geom = box(seat.x - r, seat.y - r, seat.x + r, seat.y + r)
        if seat.rotation:
            geom = affinity.rotate(geom, seat.rotation, origin=(seat.x, seat.y))
    else:
        geom = ShapelyPoint(seat.x, seat.y).buffer(r)

    return DrawItem(
        kind="seat",
        id=seat.id,
        layer=LAYER_SEATS,
        geometry=geom,
        style=Style(
            fill=fill,
            stroke=cfg.selection_color if selected else None,
            stroke_width=cfg.selection_stroke_width if selected else 0.0,
            text_color=text_color,
            font_size=cfg.seat_font_size,
            font_weight=700,
            rotation=seat.rotation,
        ),
        label=seat.display_label,
        status=status,
        selected=selected,
    )


def build_scene(
    doc: LayoutDocument,
    live_statuses: Optional[Mapping[str, StatusLike]] = None,
    selected_seat_id: Optional[str] = None,
    config: Optional[ViewerConfig] = None,
) -> Scene:
    """Return the renderable scene for ``doc``.

    ``live_statuses`` overrides the status stored on the seats (ids not in
    the layout are ignored).  Identical inputs give equal scenes.
    """
    cfg = config or ViewerConfig()
    live = live_statuses or {}
    stroke_w = cfg.primitive_stroke_width
    items: list[DrawItem] = []

    for s in doc.shapes:
        items.append(DrawItem(
            "shape", s.id, LAYER_BACKGROUND, s.geometry(),
            Style(fill=s.color or "transparent", stroke=s.stroke or cfg.default_stroke,
                  stroke_width=stroke_w, rotation=s.rotation, rx=s.rx),
            label=s.name,
        ))
    for p in doc.polylines:
        items.append(DrawItem(
            "polyline", p.id, LAYER_BACKGROUND, p.geometry(),
            Style(fill=p.color or "transparent", stroke=p.stroke or cfg.default_stroke,
                  stroke_width=stroke_w),
        ))
    for img in doc.images:
        items.append(DrawItem(
            "image", img.id, LAYER_BACKGROUND, img.geometry(),
            Style(opacity=img.opacity), href=img.href,
        ))
    for t in doc.text_labels:
        items.append(DrawItem(
            "text", t.id, LAYER_TEXT, t.geometry(),
            Style(text_color=t.color or cfg.default_text_color, font_size=t.font_size,
                  font_weight=t.font_weight, rotation=t.rotation),
            label=t.label,
        ))
    for seat in doc.seats:
        items.append(_seat_item(doc, seat, _seat_status(seat, live), seat.id == selected_seat_id, cfg))

    return Scene(
        view_box=compute_view_box(doc, cfg),
        items=tuple(items),
        selected_seat_id=selected_seat_id if doc.has_seat(selected_seat_id or "") else None,
        airplane_mode=doc.workspace.airplane_mode,
    )


def hit_test(scene: Scene, x: float, y: float, radius: float = 40.0) -> Optional[str]:
    """Id of the seat whose centre is nearest to ``(x, y)`` within ``radius``."""
    seats = scene.seats()
    if not seats:
        return None
    centres = np.array([[i.geometry.centroid.x, i.geometry.centroid.y] for i in seats])
    dists = np.hypot(centres[:, 0] - x, centres[:, 1] - y)
    idx = int(np.argmin(dists))
    if dists[idx] >= radius:
        return None
    return seats[idx].id


def legend(doc: LayoutDocument, config: Optional[ViewerConfig] = None) -> dict:
    """Categories and status colours, as shown in the viewer's legend."""
    cfg = config or ViewerConfig()
    return {
        "categories": [{"id": c.id, "name": c.name, "color": c.color} for c in doc.categories],
        "statuses": [
            {"status": st.value, "color": cfg.status_colors.get(st.value, cfg.default_stroke)}
            for st in SeatStatus
        ],
    }


# --------------------------------------------------------------------------- #
# Viewport
# --------------------------------------------------------------------------- #


@dataclass
class Viewport:
    """Pan/zoom state mapping layout coordinates to screen pixels.

    The view box is fitted into the screen ("meet"), then the user's pan
    (in fitted units) and zoom are applied about the screen centre.
    """

    view_box: ViewBox
    screen_width: float
    screen_height: float
    workspace: Workspace = field(default_factory=Workspace)
    config: ViewerConfig = field(default_factory=ViewerConfig)
    scale: float = field(init=False, default=1.0)
    translate_x: float = field(init=False, default=0.0)
    translate_y: float = field(init=False, default=0.0)

    def __post_init__(self) -> None:
        self.scale = self.initial_scale()

    def initial_scale(self) -> float:
        ws = self.workspace
        scale = ws.initial_view_scale or 1.0
        if ws.initial_view_scale is not None and ws.initial_view_scale_for_width:
            scale *= self.screen_width / ws.initial_view_scale_for_width
        return self._clamp(scale)

    def _clamp(self, scale: float) -> float:
        return max(self.config.min_scale, min(self.config.max_scale, scale))

    @property
    def fit(self) -> float:
        vb = self.view_box
        return min(self.screen_width / vb.width, self.screen_height / vb.height)

    def pan(self, dx: float, dy: float) -> None:
        """Move by a screen-pixel delta."""
        self.translate_x += dx / self.scale
        self.translate_y += dy / self.scale

    def zoom(self, factor: float) -> None:
        if factor <= 0:
            raise ValueError("Zoom factor must be positive")
        self.scale = self._clamp(self.scale * factor)

    def reset(self) -> None:
        self.scale = self.initial_scale()
        self.translate_x = 0.0
        self.translate_y = 0.0

    def matrix(self) -> np.ndarray:
        """3x3 homogeneous transform, layout → screen."""
        cx, cy = self.view_box.center
        f, s = self.fit, self.scale

        def translate(tx: float, ty: float) -> np.ndarray:
            return np.array([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]])

        def scaling(k: float) -> np.ndarray:
            return np.diag([k, k, 1.0])

        return (
            translate(self.screen_width / 2, self.screen_height / 2)
            @ scaling(s)
            @ translate(self.translate_x, self.translate_y)
            @ scaling(f)
            @ translate(-cx, -cy)
        )

    def layout_to_screen(self, x: float, y: float) -> tuple[float, float]:
        sx, sy, _ = self.matrix() @ np.array([x, y, 1.0])
        return float(sx), float(sy)

    def screen_to_layout(self, sx: float, sy: float) -> tuple[float, float]:
        x, y, _ = np.linalg.inv(self.matrix()) @ np.array([sx, sy, 1.0])
        return float(x), float(y)


# --------------------------------------------------------------------------- #
# Debug export
# --------------------------------------------------------------------------- #


def scene_to_geojson(scene: Scene) -> dict:
    """Scene as a GeoJSON FeatureCollection, in paint order."""
    features = []
    for item in scene.items:
        props = {
            "id": item.id,
            "kind": item.kind,
            "layer": item.layer,
            "label": item.label,
            "fill": item.style.fill,
            "stroke": item.style.stroke,
        }
        if item.status is not None:
            props["status"] = item.status.value
            props["selected"] = item.selected
        features.append({"type": "Feature", "properties": props, "geometry": mapping(item.geometry)})
    return {"type": "FeatureCollection", "features": features}


def save_scene_geojson(scene: Scene, path: Path) -> None:
    path.write_text(json.dumps(scene_to_geojson(scene), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug("Saved scene GeoJSON → %s", path)
