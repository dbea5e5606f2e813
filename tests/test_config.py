"""Tests for YAML configuration loading."""

from pathlib import Path

import yaml

from seatplan.config import Config


def test_defaults():
    cfg = Config.default()
    assert cfg.viewer.min_scale == 0.5
    assert cfg.viewer.max_scale == 3.0
    assert cfg.viewer.hit_radius == 40.0
    assert cfg.viewer.status_colors["available"] == "#4CAF50"
    assert cfg.layout.category_name == "Standard"
    assert cfg.library_id is None


def test_from_yaml(tmp_path):
    path = tmp_path / "seatplan.yaml"
    path.write_text(yaml.safe_dump({
        "library_id": "central",
        "layout": {"layout_name": "Central Library", "seat_spacing": 80},
        "viewer": {"padding": 50, "status_colors": {"reserved": "#123456"}},
        "storage": {"data_dir": str(tmp_path / "store"), "indent": 4},
    }), encoding="utf-8")

    cfg = Config.from_yaml(path)
    assert cfg.library_id == "central"
    assert cfg.layout.layout_name == "Central Library"
    assert cfg.layout.seat_spacing == 80
    assert cfg.viewer.padding == 50
    assert cfg.viewer.status_colors["reserved"] == "#123456"
    assert cfg.viewer.status_colors["available"] == "#4CAF50"
    assert cfg.storage.data_dir == Path(tmp_path / "store")
    assert cfg.storage.indent == 4


def test_empty_yaml(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert Config.from_yaml(path) == Config.default()
