from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any

from framecrop.errors import InvalidInputError

# Letter paper (8.5in x 11in) portrait.
DEFAULT_ASPECT_RATIO = 8.5 / 11
DEFAULT_MIN_ZOOM = 0.1
DEFAULT_MAX_ZOOM = 5.0
DEFAULT_ZOOM_STEP = 0.1


def _positive_finite(name: str, value: Any) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"{name} must be a number, got {value!r}") from e
    if not math.isfinite(v) or v <= 0:
        raise InvalidInputError(f"{name} must be a positive finite number, got {value!r}")
    return v


@dataclass(frozen=True, slots=True)
class CropConfig:
    """Immutable crop session configuration.

    `aspect_ratio` is width/height of the crop frame (and default output).
    """

    aspect_ratio: float = DEFAULT_ASPECT_RATIO
    min_zoom: float = DEFAULT_MIN_ZOOM
    max_zoom: float = DEFAULT_MAX_ZOOM
    zoom_step: float = DEFAULT_ZOOM_STEP

    def __post_init__(self) -> None:
        # frozen: normalize via object.__setattr__
        object.__setattr__(self, "aspect_ratio", _positive_finite("aspect_ratio", self.aspect_ratio))
        object.__setattr__(self, "min_zoom", _positive_finite("min_zoom", self.min_zoom))
        object.__setattr__(self, "max_zoom", _positive_finite("max_zoom", self.max_zoom))
        object.__setattr__(self, "zoom_step", _positive_finite("zoom_step", self.zoom_step))
        if self.max_zoom < self.min_zoom:
            raise InvalidInputError(f"max_zoom ({self.max_zoom}) must be >= min_zoom ({self.min_zoom})")

    def with_changes(self, **changes: Any) -> CropConfig:
        """Return a validated copy; `None` values keep the current setting."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def parse_aspect_ratio(value: str | float) -> float:
    """Parse `"8.5:11"`, `"16/9"` or a plain number into width/height."""
    if isinstance(value, (int, float)):
        return _positive_finite("aspect_ratio", value)
    text = str(value).strip()
    for sep in (":", "/", "x"):
        if sep in text:
            w, h = text.split(sep, 1)
            return _positive_finite("aspect_ratio", _positive_finite("width", w) / _positive_finite("height", h))
    return _positive_finite("aspect_ratio", text)
