from __future__ import annotations

import math
from dataclasses import dataclass

from framecrop.logger import get_logger

from .frame_geometry import Frame

_logger = get_logger("view_state")


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


@dataclass(slots=True)
class ViewState:
    """Affine placement of the source image: ``screen = offset + scale * image``."""

    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def as_tuple(self) -> tuple[float, float, float]:
        return self.scale, self.offset_x, self.offset_y

    def copy(self) -> ViewState:
        return ViewState(self.scale, self.offset_x, self.offset_y)

    def reset(self) -> None:
        self.scale = 1.0
        self.offset_x = 0.0
        self.offset_y = 0.0

    def image_to_screen(self, x: float, y: float) -> tuple[float, float]:
        return self.offset_x + self.scale * x, self.offset_y + self.scale * y

    def screen_to_image(self, x: float, y: float) -> tuple[float, float]:
        return (x - self.offset_x) / self.scale, (y - self.offset_y) / self.scale

    def fit_to_frame(self, source_width: float, source_height: float, frame: Frame | None) -> bool:
        """Scale the whole image to fit inside `frame`, centered on it.

        The fit scale is not clamped to the zoom range: full visibility wins.
        Degrades to the default view and returns False on invalid dimensions.
        """
        if frame is None or source_width <= 0 or source_height <= 0 or frame.is_empty():
            _logger.warning(
                "cannot fit view: image=%sx%s frame=%s", source_width, source_height, frame
            )
            self.reset()
            return False

        image_aspect = source_width / source_height
        frame_aspect = frame.width / frame.height

        if image_aspect > frame_aspect:
            scale = frame.height / source_height
        else:
            scale = frame.width / source_width

        cx, cy = frame.center
        self.scale = scale
        self.offset_x = cx - source_width * scale / 2
        self.offset_y = cy - source_height * scale / 2
        return True

    def zoom_at_point(
        self,
        factor: float,
        screen_x: float,
        screen_y: float,
        *,
        min_zoom: float,
        max_zoom: float,
    ) -> bool:
        """Multiply scale by `factor` keeping the image point under (x, y) fixed.

        A finite factor <= 0 drives the scale to `min_zoom`. Returns False (and
        leaves the view untouched) for NaN/inf or when the clamp absorbs the
        whole change.
        """
        if factor == 1.0 or not math.isfinite(factor):
            return False

        old_scale = self.scale
        new_scale = _clamp(old_scale * factor, min_zoom, max_zoom)
        if new_scale == old_scale:
            return False

        image_x = (screen_x - self.offset_x) / old_scale
        image_y = (screen_y - self.offset_y) / old_scale

        self.offset_x = screen_x - image_x * new_scale
        self.offset_y = screen_y - image_y * new_scale
        self.scale = new_scale
        return True

    def pan(self, dx: float, dy: float) -> bool:
        """Shift the image by (dx, dy) screen pixels. Unconstrained."""
        if dx == 0 and dy == 0:
            return False
        self.offset_x += dx
        self.offset_y += dy
        return True

    def set_offset(self, x: float, y: float) -> bool:
        if x == self.offset_x and y == self.offset_y:
            return False
        self.offset_x = x
        self.offset_y = y
        return True
