from __future__ import annotations

import json
from pathlib import Path

from framecrop.config import CropConfig
from framecrop.settings_manager import SettingsManager


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    sm = SettingsManager(str(tmp_path / "settings.json"))
    assert sm.data == {}
    assert sm.get("output_format") == "image/jpeg"
    assert sm.get("output_width") == 850
    assert sm.pan_step == 10.0
    assert not sm.has("pan_step")
    assert sm.crop_config() == CropConfig()


def test_set_persists_to_disk(tmp_path: Path) -> None:
    settings_path = tmp_path / "nested" / "settings.json"
    sm = SettingsManager(str(settings_path))
    sm.set("aspect_ratio", 1.5)
    sm.set("pan_step", 25)

    stored = json.loads(settings_path.read_text(encoding="utf-8"))
    assert stored == {"aspect_ratio": 1.5, "pan_step": 25}

    again = SettingsManager(str(settings_path))
    assert again.crop_config().aspect_ratio == 1.5
    assert again.pan_step == 25.0


def test_invalid_crop_settings_fall_back_to_defaults(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.json"
    settings_path.write_text(json.dumps({"min_zoom": 3.0, "max_zoom": 1.0}), encoding="utf-8")
    sm = SettingsManager(str(settings_path))
    assert sm.crop_config() == CropConfig()


def test_corrupt_file_is_ignored(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.json"
    settings_path.write_text("{not json", encoding="utf-8")
    sm = SettingsManager(str(settings_path))
    assert sm.data == {}
    assert sm.get("zoom_step") == 0.1


def test_overlay_color(tmp_path: Path) -> None:
    sm = SettingsManager(str(tmp_path / "settings.json"))
    color = sm.determine_overlay_color()
    assert color.alpha() == 128
    assert (color.red(), color.green(), color.blue()) == (0, 0, 0)

    sm.set("overlay_color", "#ff0000")
    assert sm.determine_overlay_color().red() == 255

    sm.set("overlay_color", "not a color")
    assert sm.determine_overlay_color().alpha() == 128


def test_output_options(tmp_path: Path) -> None:
    sm = SettingsManager(str(tmp_path / "settings.json"))
    opts = sm.output_options()
    assert (opts.fmt, opts.quality, opts.width) == ("image/jpeg", 0.92, 850)

    sm.update(output_format="IMAGE/PNG", output_quality=0.5, output_width=400)
    opts = sm.output_options()
    assert (opts.fmt, opts.quality, opts.width) == ("image/png", 0.5, 400)

    sm.update(output_format="image/bmp", output_width=-3)
    opts = sm.output_options()
    assert (opts.fmt, opts.width) == ("image/jpeg", 850)
