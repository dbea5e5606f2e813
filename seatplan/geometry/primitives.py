"""Drawing primitives of a seat layout.

Point       – 2-D coordinate
Shape       – (rounded) rectangle, optionally rotated about its centre
Polyline    – open or closed list of points (walls, section outlines)
TextLabel   – free-standing caption
ImageAnchor – bitmap placed on the floor plan

Primitives are decorative/structural only.  They carry geometry + style and
are never referenced by seat or assignment logic.  Each one can produce a
Shapely geometry for bounds computation and debug export.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from shapely import affinity
from shapely.geometry import LineString, Point as ShapelyPoint, box
from shapely.geometry.base import BaseGeometry

_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


def is_valid_color(value: Optional[str]) -> bool:
    """``None`` (use theme default), ``transparent`` or a #hex colour."""
    if value is None:
        return True
    return value == "transparent" or bool(_COLOR_RE.match(value))


def _color_errors(owner: str, **colors: Optional[str]) -> list[str]:
    return [
        f"{owner}: invalid {name} '{value}'."
        for name, value in colors.items()
        if not is_valid_color(value)
    ]


# --------------------------------------------------------------------------- #
# Point
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def to_shapely(self) -> ShapelyPoint:
        return ShapelyPoint(self.x, self.y)

    def distance_to(self, other: "Point") -> float:
        return ((self.x - other.x) ** 2 + (self.y - other.y) ** 2) ** 0.5


# --------------------------------------------------------------------------- #
# Shapes
# --------------------------------------------------------------------------- #


@dataclass
class Shape:
    """Rectangle with optional corner radius ``rx`` and rotation (degrees)."""

    id: str
    x: float
    y: float
    width: float
    height: float
    name: str = ""
    rx: float = 0.0
    color: Optional[str] = None
    stroke: Optional[str] = None
    rotation: float = 0.0
    extras: dict = field(default_factory=dict)

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def geometry(self) -> BaseGeometry:
        rect = box(self.x, self.y, self.x + self.width, self.y + self.height)
        if self.rotation:
            c = self.center
            rect = affinity.rotate(rect, self.rotation, origin=(c.x, c.y))
        return rect

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.width <= 0 or self.height <= 0:
            errors.append(f"Shape '{self.id}' has non-positive dimensions.")
        if self.rx < 0:
            errors.append(f"Shape '{self.id}' has a negative corner radius.")
        errors.extend(_color_errors(f"Shape '{self.id}'", color=self.color, stroke=self.stroke))
        return errors


@dataclass
class Polyline:
    id: str
    points: list[Point] = field(default_factory=list)
    section: Optional[str] = None   # informational only, not a reference
    color: Optional[str] = None
    stroke: Optional[str] = None
    extras: dict = field(default_factory=dict)

    def geometry(self) -> BaseGeometry:
        return LineString([(p.x, p.y) for p in self.points])

    def validate(self) -> list[str]:
        errors: list[str] = []
        if len(self.points) < 2:
            errors.append(f"Polyline '{self.id}' needs at least two points.")
        elif self.geometry().length == 0:
            errors.append(f"Polyline '{self.id}' has zero length.")
        errors.extend(_color_errors(f"Polyline '{self.id}'", color=self.color, stroke=self.stroke))
        return errors


@dataclass
class TextLabel:
    id: str
    x: float
    y: float
    label: str
    font_size: float = 16.0
    font_weight: int = 400
    color: Optional[str] = None
    rotation: float = 0.0
    extras: dict = field(default_factory=dict)

    def geometry(self) -> BaseGeometry:
        return ShapelyPoint(self.x, self.y)

    def validate(self) -> list[str]:
        errors: list[str] = []
        if not self.label:
            errors.append(f"Text label '{self.id}' is empty.")
        if self.font_size <= 0:
            errors.append(f"Text label '{self.id}' has a non-positive font size.")
        errors.extend(_color_errors(f"Text label '{self.id}'", color=self.color))
        return errors


@dataclass
class ImageAnchor:
    id: str
    x: float
    y: float
    width: float
    height: float
    href: str
    opacity: float = 1.0
    extras: dict = field(default_factory=dict)

    def geometry(self) -> BaseGeometry:
        return box(self.x, self.y, self.x + self.width, self.y + self.height)

    def validate(self) -> list[str]:
        errors: list[str] = []
        if not self.href:
            errors.append(f"Image '{self.id}' has no source.")
        if self.width <= 0 or self.height <= 0:
            errors.append(f"Image '{self.id}' has non-positive dimensions.")
        if not 0.0 <= self.opacity <= 1.0:
            errors.append(f"Image '{self.id}' opacity {self.opacity} outside [0, 1].")
        return errors
