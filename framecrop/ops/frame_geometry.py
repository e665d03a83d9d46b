from __future__ import annotations

import math
from dataclasses import dataclass

from framecrop.errors import InvalidInputError

# Fraction of each viewport axis the frame may occupy.
FRAME_FILL = 0.9


@dataclass(frozen=True, slots=True)
class Frame:
    """Crop frame rectangle in viewport coordinates."""

    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> tuple[float, float]:
        return self.left + self.width / 2, self.top + self.height / 2

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height > 0 else 0.0

    def is_empty(self) -> bool:
        return not (self.width > 0 and self.height > 0)

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom

    def as_dict(self) -> dict[str, float]:
        return {
            "left": self.left,
            "top": self.top,
            "width": self.width,
            "height": self.height,
            "right": self.right,
            "bottom": self.bottom,
        }


def compute_frame(viewport_width: float, viewport_height: float, aspect_ratio: float) -> Frame | None:
    """Largest `aspect_ratio` rectangle within 90% of the viewport, centered.

    Returns None when the viewport has no area (e.g. a hidden container);
    callers must not render or extract while the frame is undefined.
    """
    ratio = float(aspect_ratio)
    if not math.isfinite(ratio) or ratio <= 0:
        raise InvalidInputError(f"aspect_ratio must be a positive finite number, got {aspect_ratio!r}")

    vw = float(viewport_width)
    vh = float(viewport_height)
    if not (math.isfinite(vw) and math.isfinite(vh)) or vw <= 0 or vh <= 0:
        return None

    available_w = vw * FRAME_FILL
    available_h = vh * FRAME_FILL

    if available_w / available_h > ratio:
        # Available area is relatively wider: height binds.
        frame_h = available_h
        frame_w = frame_h * ratio
    else:
        frame_w = available_w
        frame_h = frame_w / ratio

    return Frame(
        left=(vw - frame_w) / 2,
        top=(vh - frame_h) / 2,
        width=frame_w,
        height=frame_h,
    )
