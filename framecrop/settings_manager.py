from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any

from PySide6.QtGui import QColor

from .config import CropConfig
from .crop.extractor import DEFAULT_FORMAT, DEFAULT_OUTPUT_WIDTH, DEFAULT_QUALITY, OUTPUT_FORMATS
from .errors import InvalidInputError
from .logger import get_logger

_logger = get_logger("settings")


@dataclass(frozen=True, slots=True)
class OutputOptions:
    fmt: str = DEFAULT_FORMAT
    quality: float = DEFAULT_QUALITY
    width: int = DEFAULT_OUTPUT_WIDTH


class SettingsManager:
    """JSON-backed user settings. Missing keys resolve to `DEFAULTS`."""

    DEFAULTS: dict[str, Any] = {
        "aspect_ratio": 8.5 / 11,
        "min_zoom": 0.1,
        "max_zoom": 5.0,
        "zoom_step": 0.1,
        "output_format": DEFAULT_FORMAT,
        "output_quality": DEFAULT_QUALITY,
        "output_width": DEFAULT_OUTPUT_WIDTH,
        "pan_step": 10,
        # #AARRGGBB: half-transparent black
        "overlay_color": "#80000000",
    }

    def __init__(self, settings_path: str):
        self.settings_path = settings_path
        self._settings: dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        self._settings = {}
        if not os.path.exists(self.settings_path):
            return
        try:
            with open(self.settings_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            _logger.warning("settings load failed: %s", e)
            return
        if not isinstance(data, dict):
            _logger.warning("settings file is not a JSON object: %s", self.settings_path)
            return
        unknown = sorted(set(data) - set(self.DEFAULTS))
        if unknown:
            _logger.debug("ignoring unknown settings keys: %s", ", ".join(unknown))
        self._settings = data
        _logger.debug("settings loaded: %s", self.settings_path)

    def save(self) -> None:
        try:
            parent = os.path.dirname(self.settings_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, ensure_ascii=False, indent=2)
            _logger.debug("settings saved: %s", self.settings_path)
        except OSError as e:
            _logger.error("settings save failed: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def has(self, key: str) -> bool:
        return key in self._settings

    def set(self, key: str, value: Any) -> None:
        self.update(**{key: value})

    def update(self, **values: Any) -> None:
        """Store several values with a single write."""
        self._settings.update(values)
        self.save()

    @property
    def data(self) -> dict[str, Any]:
        return self._settings

    @property
    def pan_step(self) -> float:
        try:
            return float(self.get("pan_step"))
        except (TypeError, ValueError):
            return float(self.DEFAULTS["pan_step"])

    def crop_config(self) -> CropConfig:
        """Build a CropConfig from stored values, falling back to defaults if invalid."""
        try:
            return CropConfig(
                aspect_ratio=self.get("aspect_ratio"),
                min_zoom=self.get("min_zoom"),
                max_zoom=self.get("max_zoom"),
                zoom_step=self.get("zoom_step"),
            )
        except InvalidInputError as e:
            _logger.warning("stored crop settings invalid, using defaults: %s", e)
            return CropConfig()

    def output_options(self) -> OutputOptions:
        fmt = str(self.get("output_format") or "").strip().lower()
        if fmt not in OUTPUT_FORMATS:
            _logger.warning("unsupported output_format %r, using %s", fmt, DEFAULT_FORMAT)
            fmt = DEFAULT_FORMAT
        try:
            quality = float(self.get("output_quality"))
        except (TypeError, ValueError):
            quality = DEFAULT_QUALITY
        try:
            width = int(self.get("output_width"))
        except (TypeError, ValueError):
            width = DEFAULT_OUTPUT_WIDTH
        if width <= 0:
            width = DEFAULT_OUTPUT_WIDTH
        return OutputOptions(fmt, quality, width)

    def determine_overlay_color(self) -> QColor:
        hexcol = self.get("overlay_color")
        if isinstance(hexcol, str):
            color = QColor(hexcol)
            if color.isValid():
                return color
        _logger.warning("saved overlay_color invalid: %s", hexcol)
        return QColor(0, 0, 0, 128)
