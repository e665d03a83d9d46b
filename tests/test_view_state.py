from __future__ import annotations

import pytest

from framecrop.ops.frame_geometry import Frame, compute_frame
from framecrop.ops.view_state import ViewState

LETTER = 8.5 / 11


@pytest.fixture
def frame() -> Frame:
    f = compute_frame(1000, 800, LETTER)
    assert f is not None
    return f


def test_fit_wide_image_binds_on_height(frame: Frame) -> None:
    view = ViewState()
    assert view.fit_to_frame(2000, 1000, frame)
    assert view.scale == pytest.approx(0.72)
    assert view.offset_x == pytest.approx(-220)
    assert view.offset_y == pytest.approx(40)


def test_fit_tall_image_binds_on_width(frame: Frame) -> None:
    view = ViewState()
    view.fit_to_frame(500, 2000, frame)
    assert view.scale == pytest.approx(frame.width / 500)
    # Whole image visible: width matches the frame, height spills past it.
    assert 500 * view.scale == pytest.approx(frame.width)


@pytest.mark.parametrize(("w", "h"), [(2000, 1000), (500, 2000), (850, 1100), (1, 1), (10000, 3)])
def test_fit_centers_image_on_frame(frame: Frame, w: int, h: int) -> None:
    view = ViewState()
    view.fit_to_frame(w, h, frame)
    cx, cy = view.image_to_screen(w / 2, h / 2)
    fx, fy = frame.center
    assert cx == pytest.approx(fx)
    assert cy == pytest.approx(fy)


def test_fit_with_invalid_input_resets(frame: Frame) -> None:
    view = ViewState(2.0, 5.0, 6.0)
    assert not view.fit_to_frame(0, 100, frame)
    assert view.as_tuple() == (1.0, 0.0, 0.0)
    view = ViewState(2.0, 5.0, 6.0)
    assert not view.fit_to_frame(100, 100, None)
    assert view.as_tuple() == (1.0, 0.0, 0.0)


@pytest.mark.parametrize(("factor", "x", "y"), [(1.1, 500, 400), (0.9, 10, 790), (2.0, -100, 3000), (1.5, 0, 0)])
def test_zoom_keeps_anchor_point_fixed(factor: float, x: float, y: float) -> None:
    view = ViewState(0.72, -220, 40)
    before = view.screen_to_image(x, y)
    assert view.zoom_at_point(factor, x, y, min_zoom=0.1, max_zoom=5.0)
    after = view.screen_to_image(x, y)
    assert after[0] == pytest.approx(before[0])
    assert after[1] == pytest.approx(before[1])


def test_zoom_round_trip_restores_view() -> None:
    view = ViewState(0.72, -220, 40)
    view.zoom_at_point(1.25, 321, 123, min_zoom=0.1, max_zoom=5.0)
    view.zoom_at_point(1 / 1.25, 321, 123, min_zoom=0.1, max_zoom=5.0)
    assert view.scale == pytest.approx(0.72)
    assert view.offset_x == pytest.approx(-220)
    assert view.offset_y == pytest.approx(40)


def test_zoom_factor_one_is_noop() -> None:
    view = ViewState(0.05, 1.0, 2.0)  # below min_zoom, as after a fit of a huge image
    assert not view.zoom_at_point(1.0, 50, 50, min_zoom=0.1, max_zoom=5.0)
    assert view.as_tuple() == (0.05, 1.0, 2.0)


@pytest.mark.parametrize("factor", [float("nan"), float("inf"), float("-inf")])
def test_zoom_rejects_non_finite_factor(factor: float) -> None:
    view = ViewState(1.0, 0.0, 0.0)
    assert not view.zoom_at_point(factor, 10, 10, min_zoom=0.1, max_zoom=5.0)
    assert view.as_tuple() == (1.0, 0.0, 0.0)


@pytest.mark.parametrize("factor", [0.0, -1.0])
def test_zoom_non_positive_factor_clamps_to_min(factor: float) -> None:
    view = ViewState(1.0, 0.0, 0.0)
    assert view.zoom_at_point(factor, 10, 10, min_zoom=0.1, max_zoom=5.0)
    assert view.scale == 0.1
    # Anchor stays put: image point (10, 10) is still under (10, 10).
    assert view.screen_to_image(10, 10) == pytest.approx((10.0, 10.0))
    assert not view.zoom_at_point(factor, 10, 10, min_zoom=0.1, max_zoom=5.0)


def test_zoom_clamps_to_bounds() -> None:
    view = ViewState(4.8, 0.0, 0.0)
    assert view.zoom_at_point(1.1, 0, 0, min_zoom=0.1, max_zoom=5.0)
    assert view.scale == 5.0

    view = ViewState(0.105, 0.0, 0.0)
    assert view.zoom_at_point(0.9, 0, 0, min_zoom=0.1, max_zoom=5.0)
    assert view.scale == 0.1


def test_zoom_at_bound_changes_nothing() -> None:
    view = ViewState(5.0, 12.0, 34.0)
    assert not view.zoom_at_point(1.1, 200, 200, min_zoom=0.1, max_zoom=5.0)
    assert view.as_tuple() == (5.0, 12.0, 34.0)


def test_pan_and_set_offset() -> None:
    view = ViewState(0.5, 10.0, 10.0)
    assert view.pan(5, -5)
    assert view.as_tuple() == (0.5, 15.0, 5.0)
    assert not view.pan(0, 0)
    assert not view.set_offset(15.0, 5.0)
    assert view.set_offset(0, 0)
    assert view.as_tuple() == (0.5, 0.0, 0.0)


def test_copy_is_independent() -> None:
    view = ViewState(2.0, 1.0, 1.0)
    other = view.copy()
    other.pan(10, 10)
    assert view.as_tuple() == (2.0, 1.0, 1.0)
