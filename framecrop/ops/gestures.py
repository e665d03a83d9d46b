"""Pointer/wheel/touch input to view mutations.

The controller holds at most one gesture session (a drag or a pinch) and
mutates the view through the `ViewTarget` protocol. All coordinates are
viewport-local. Every handler returns whether the event was consumed, so the
host can decide on default-action suppression (page scroll, text selection).
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal, Protocol

from framecrop.logger import get_logger

_logger = get_logger("gestures")

PRIMARY_BUTTON = 0
_PINCH_TOUCHES = 2


class ViewTarget(Protocol):
    @property
    def zoom_step(self) -> float: ...

    def can_interact(self) -> bool: ...

    def current_offset(self) -> tuple[float, float]: ...

    def set_offset(self, x: float, y: float) -> bool: ...

    def zoom_at_point(self, factor: float, x: float, y: float) -> bool: ...


@dataclass(frozen=True, slots=True)
class PointerEvent:
    x: float
    y: float
    button: int = PRIMARY_BUTTON


@dataclass(frozen=True, slots=True)
class WheelEvent:
    x: float
    y: float
    delta_y: float


@dataclass(frozen=True, slots=True)
class TouchPoint:
    identifier: int
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class DragSession:
    start_pointer_x: float
    start_pointer_y: float
    start_offset_x: float
    start_offset_y: float
    source: Literal["pointer", "touch"] = "pointer"


@dataclass(slots=True)
class PinchSession:
    distance: float
    mid_x: float
    mid_y: float


def _pinch_geometry(touches: Sequence[TouchPoint]) -> tuple[float, float, float]:
    a, b = touches[0], touches[1]
    return math.hypot(b.x - a.x, b.y - a.y), (a.x + b.x) / 2, (a.y + b.y) / 2


class GestureController:
    def __init__(self, target: ViewTarget) -> None:
        self._target = target
        self._drag: DragSession | None = None
        self._pinch: PinchSession | None = None

    @property
    def drag(self) -> DragSession | None:
        return self._drag

    @property
    def pinch(self) -> PinchSession | None:
        return self._pinch

    def is_active(self) -> bool:
        return self._drag is not None or self._pinch is not None

    def cancel(self) -> None:
        """Drop any active session without touching the view."""
        if self.is_active():
            _logger.debug("gesture cancelled: drag=%s pinch=%s", self._drag, self._pinch)
        self._drag = None
        self._pinch = None

    def _start_drag(self, x: float, y: float, source: Literal["pointer", "touch"]) -> None:
        ox, oy = self._target.current_offset()
        self._drag = DragSession(x, y, ox, oy, source)

    def _drag_to(self, x: float, y: float) -> None:
        d = self._drag
        if d is None:
            return
        self._target.set_offset(
            d.start_offset_x + (x - d.start_pointer_x),
            d.start_offset_y + (y - d.start_pointer_y),
        )

    # ---- pointer ----
    def on_pointer_down(self, event: PointerEvent) -> bool:
        if not self._target.can_interact() or event.button != PRIMARY_BUTTON:
            return False
        if self.is_active():
            # Overlapping gestures would compute deltas from the wrong start.
            _logger.debug("pointer down ignored: gesture already active")
            return False
        self._start_drag(event.x, event.y, "pointer")
        return True

    def on_pointer_move(self, event: PointerEvent) -> bool:
        if self._drag is None or self._drag.source != "pointer":
            return False
        self._drag_to(event.x, event.y)
        return True

    def on_pointer_up(self, event: PointerEvent) -> bool:  # noqa: ARG002
        if self._drag is None or self._drag.source != "pointer":
            return False
        self._drag = None
        return True

    # ---- wheel ----
    def on_wheel(self, event: WheelEvent) -> bool:
        if not self._target.can_interact():
            return False
        # Only the direction matters; deltas differ wildly across devices.
        direction = (event.delta_y > 0) - (event.delta_y < 0)
        factor = 1.0 - direction * self._target.zoom_step
        self._target.zoom_at_point(factor, event.x, event.y)
        return True

    # ---- touch ----
    def on_touch_start(self, touches: Sequence[TouchPoint]) -> bool:
        if not self._target.can_interact():
            return False
        n = len(touches)
        if n == 1:
            if self.is_active():
                return False
            t = touches[0]
            self._start_drag(t.x, t.y, "touch")
            return True
        if n == _PINCH_TOUCHES:
            if self._drag is not None and self._drag.source == "pointer":
                return False
            distance, mx, my = _pinch_geometry(touches)
            # Second finger down turns a one-finger drag into a pinch.
            self._drag = None
            self._pinch = PinchSession(distance, mx, my)
            return True
        return False

    def on_touch_move(self, touches: Sequence[TouchPoint]) -> bool:
        if self._pinch is not None:
            if len(touches) == 1:
                # One finger lifted: keep panning with the one that remains.
                self._pinch = None
                t = touches[0]
                self._start_drag(t.x, t.y, "touch")
                return True
            if len(touches) < _PINCH_TOUCHES:
                return False
            distance, mx, my = _pinch_geometry(touches)
            p = self._pinch
            if p.distance > 0 and distance > 0:
                self._target.zoom_at_point(distance / p.distance, mx, my)
            ox, oy = self._target.current_offset()
            self._target.set_offset(ox + (mx - p.mid_x), oy + (my - p.mid_y))
            p.distance = distance
            p.mid_x = mx
            p.mid_y = my
            return True

        if self._drag is not None and self._drag.source == "touch" and len(touches) == 1:
            t = touches[0]
            self._drag_to(t.x, t.y)
            return True
        return False

    def on_touch_end(self, touches: Sequence[TouchPoint]) -> bool:  # noqa: ARG002
        # Default action is left alone so taps keep working.
        if self._pinch is not None:
            self._pinch = None
        if self._drag is not None and self._drag.source == "touch":
            self._drag = None
        return False
