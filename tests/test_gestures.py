from __future__ import annotations

import math

import pytest

from framecrop.ops.gestures import GestureController, PointerEvent, TouchPoint, WheelEvent
from framecrop.ops.view_state import ViewState


class _FakeTarget:
    """ViewTarget backed by a plain ViewState."""

    def __init__(self, interactive: bool = True, scale: float = 1.0) -> None:
        self.view = ViewState(scale, 100.0, 200.0)
        self.interactive = interactive
        self.zooms: list[tuple[float, float, float]] = []

    @property
    def zoom_step(self) -> float:
        return 0.1

    def can_interact(self) -> bool:
        return self.interactive

    def current_offset(self) -> tuple[float, float]:
        return self.view.offset_x, self.view.offset_y

    def set_offset(self, x: float, y: float) -> bool:
        return self.view.set_offset(x, y)

    def zoom_at_point(self, factor: float, x: float, y: float) -> bool:
        self.zooms.append((factor, x, y))
        return self.view.zoom_at_point(factor, x, y, min_zoom=0.1, max_zoom=5.0)


@pytest.mark.parametrize("scale", [0.1, 0.72, 3.0])
def test_pointer_drag_moves_offset_by_pointer_delta(scale: float) -> None:
    target = _FakeTarget(scale=scale)
    gc = GestureController(target)

    assert gc.on_pointer_down(PointerEvent(300, 300))
    assert gc.drag is not None
    assert gc.on_pointer_move(PointerEvent(320, 290))
    assert gc.on_pointer_move(PointerEvent(350, 270))
    assert target.current_offset() == (150.0, 170.0)
    assert target.view.scale == scale

    assert gc.on_pointer_up(PointerEvent(350, 270))
    assert gc.drag is None
    assert not gc.on_pointer_move(PointerEvent(400, 400))
    assert target.current_offset() == (150.0, 170.0)


def test_pointer_down_ignored_when_not_interactive() -> None:
    gc = GestureController(_FakeTarget(interactive=False))
    assert not gc.on_pointer_down(PointerEvent(1, 1))
    assert not gc.is_active()


def test_non_primary_button_does_not_start_drag() -> None:
    gc = GestureController(_FakeTarget())
    assert not gc.on_pointer_down(PointerEvent(1, 1, button=2))
    assert gc.drag is None


def test_overlapping_drag_start_is_ignored() -> None:
    target = _FakeTarget()
    gc = GestureController(target)
    assert gc.on_pointer_down(PointerEvent(10, 10))
    first = gc.drag
    assert not gc.on_pointer_down(PointerEvent(500, 500))
    assert not gc.on_touch_start([TouchPoint(1, 500, 500)])
    assert gc.drag is first


@pytest.mark.parametrize(("delta", "factor"), [(120, 0.9), (-120, 1.1), (3, 0.9), (-0.5, 1.1), (0, 1.0)])
def test_wheel_uses_direction_only(delta: float, factor: float) -> None:
    target = _FakeTarget()
    gc = GestureController(target)
    assert gc.on_wheel(WheelEvent(40, 50, delta))
    assert len(target.zooms) == 1
    f, x, y = target.zooms[0]
    assert f == pytest.approx(factor)
    assert (x, y) == (40, 50)


def test_wheel_not_consumed_without_image() -> None:
    target = _FakeTarget(interactive=False)
    gc = GestureController(target)
    assert not gc.on_wheel(WheelEvent(0, 0, 120))
    assert target.zooms == []


def test_one_finger_touch_drag() -> None:
    target = _FakeTarget()
    gc = GestureController(target)
    assert gc.on_touch_start([TouchPoint(7, 10, 10)])
    assert gc.drag is not None and gc.drag.source == "touch"
    assert gc.on_touch_move([TouchPoint(7, 60, -20)])
    assert target.current_offset() == (150.0, 170.0)
    # Pointer events do not drive a touch drag.
    assert not gc.on_pointer_move(PointerEvent(0, 0))
    assert not gc.on_touch_end([])
    assert not gc.is_active()


def test_pinch_zooms_by_distance_ratio_at_midpoint() -> None:
    target = _FakeTarget()
    gc = GestureController(target)
    assert gc.on_touch_start([TouchPoint(1, 100, 100), TouchPoint(2, 200, 100)])
    assert gc.pinch is not None

    # Fingers spread symmetrically: distance 100 -> 200, midpoint unchanged.
    assert gc.on_touch_move([TouchPoint(1, 50, 100), TouchPoint(2, 250, 100)])
    factor, mx, my = target.zooms[-1]
    assert factor == pytest.approx(2.0)
    assert (mx, my) == (150, 100)
    assert target.view.scale == pytest.approx(2.0)
    assert gc.pinch.distance == pytest.approx(200)


def test_pinch_pans_by_midpoint_delta() -> None:
    target = _FakeTarget()
    gc = GestureController(target)
    gc.on_touch_start([TouchPoint(1, 100, 100), TouchPoint(2, 200, 100)])
    # Same distance, midpoint moved by (+30, +40).
    assert gc.on_touch_move([TouchPoint(1, 130, 140), TouchPoint(2, 230, 140)])
    assert target.current_offset() == (130.0, 240.0)
    assert gc.pinch is not None
    assert (gc.pinch.mid_x, gc.pinch.mid_y) == (180, 140)


def test_second_finger_turns_touch_drag_into_pinch() -> None:
    gc = GestureController(_FakeTarget())
    gc.on_touch_start([TouchPoint(1, 0, 0)])
    assert gc.on_touch_start([TouchPoint(1, 0, 0), TouchPoint(2, 30, 40)])
    assert gc.drag is None
    assert gc.pinch is not None
    assert math.isclose(gc.pinch.distance, 50)


def test_pinch_does_not_replace_pointer_drag() -> None:
    gc = GestureController(_FakeTarget())
    gc.on_pointer_down(PointerEvent(5, 5))
    assert not gc.on_touch_start([TouchPoint(1, 0, 0), TouchPoint(2, 10, 0)])
    assert gc.pinch is None
    assert gc.drag is not None and gc.drag.source == "pointer"


def test_touch_end_clears_sessions_and_is_not_consumed() -> None:
    gc = GestureController(_FakeTarget())
    gc.on_touch_start([TouchPoint(1, 0, 0), TouchPoint(2, 10, 0)])
    assert not gc.on_touch_end([])
    assert not gc.is_active()


def test_cancel_drops_sessions_without_touching_view() -> None:
    target = _FakeTarget()
    gc = GestureController(target)
    gc.on_pointer_down(PointerEvent(0, 0))
    gc.cancel()
    assert not gc.is_active()
    assert not gc.on_pointer_move(PointerEvent(99, 99))
    assert target.current_offset() == (100.0, 200.0)


def test_lifting_one_pinch_finger_continues_as_touch_drag() -> None:
    target = _FakeTarget()
    gc = GestureController(target)
    gc.on_touch_start([TouchPoint(1, 100, 100), TouchPoint(2, 200, 100)])
    assert gc.on_touch_move([TouchPoint(2, 200, 100)])
    assert gc.pinch is None
    assert gc.drag is not None and gc.drag.source == "touch"
    assert target.current_offset() == (100.0, 200.0)

    # The remaining finger pans from where it was when the other lifted.
    assert gc.on_touch_move([TouchPoint(2, 230, 80)])
    assert target.current_offset() == (130.0, 180.0)
    assert target.view.scale == 1.0
    assert not gc.on_touch_end([])
    assert not gc.is_active()
