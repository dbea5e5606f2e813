"""Global configuration and defaults for seatplan."""

from __future__ import annotations

import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class LayoutDefaults:
    """Defaults used when a layout is created or extended."""

    layout_name: str = "Library Layout"
    category_name: str = "Standard"
    category_color: str = "#4CAF50"
    category_text_color: str = "#FFFFFF"
    section_name: str = "Section 1"
    section_color: str = "#E3F2FD"
    section_stroke: str = "#1976D2"
    category_id_prefix: str = "cat"
    section_id_prefix: str = "sec"
    seat_spacing: float = 60.0  # grid generator pitch (layout units)


def _default_status_colors() -> dict[str, str]:
    return {
        "available": "#4CAF50",
        "reserved": "#F44336",
        "occupied": "#FF9800",
        "maintenance": "#9E9E9E",
    }


@dataclass
class ViewerConfig:
    """Scene building and viewport parameters."""

    padding: float = 100.0          # view box margin around seats
    default_width: float = 800.0    # view box when the layout has no seats
    default_height: float = 600.0
    seat_radius: float = 20.0
    seat_font_size: float = 14.0
    hit_radius: float = 40.0
    min_scale: float = 0.5
    max_scale: float = 3.0
    selection_color: str = "#6200EE"
    selection_stroke_width: float = 3.0
    primitive_stroke_width: float = 2.0
    default_stroke: str = "#E0E0E0"
    default_text_color: str = "#212121"
    status_colors: dict[str, str] = field(default_factory=_default_status_colors)


@dataclass
class StorageConfig:
    """Where the JSON file adapter keeps its data."""

    data_dir: Path = Path("./seatplan-data")
    indent: int = 2


@dataclass
class Config:
    """Top-level configuration."""

    layout: LayoutDefaults = field(default_factory=LayoutDefaults)
    viewer: ViewerConfig = field(default_factory=ViewerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    library_id: Optional[str] = None

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML file."""
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}

        layout_data = data.get("layout", {})
        viewer_data = dict(data.get("viewer", {}))
        storage_data = dict(data.get("storage", {}))

        status_colors = _default_status_colors()
        status_colors.update(viewer_data.pop("status_colors", None) or {})
        if "data_dir" in storage_data:
            storage_data["data_dir"] = Path(storage_data["data_dir"])

        return cls(
            layout=LayoutDefaults(**layout_data) if layout_data else LayoutDefaults(),
            viewer=ViewerConfig(status_colors=status_colors, **viewer_data),
            storage=StorageConfig(**storage_data) if storage_data else StorageConfig(),
            library_id=data.get("library_id"),
        )

    @classmethod
    def default(cls) -> "Config":
        return cls()
