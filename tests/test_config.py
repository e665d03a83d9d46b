import math

import pytest

from framecrop.config import DEFAULT_ASPECT_RATIO, CropConfig, parse_aspect_ratio
from framecrop.errors import InvalidInputError


def test_defaults() -> None:
    cfg = CropConfig()
    assert cfg.aspect_ratio == pytest.approx(8.5 / 11)
    assert (cfg.min_zoom, cfg.max_zoom, cfg.zoom_step) == (0.1, 5.0, 0.1)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"aspect_ratio": 0},
        {"aspect_ratio": -2},
        {"aspect_ratio": math.inf},
        {"aspect_ratio": "wide"},
        {"min_zoom": 0},
        {"max_zoom": math.nan},
        {"zoom_step": -0.1},
        {"min_zoom": 2.0, "max_zoom": 1.0},
    ],
)
def test_invalid_config_raises(kwargs) -> None:
    with pytest.raises(InvalidInputError):
        CropConfig(**kwargs)


def test_with_changes_skips_none() -> None:
    cfg = CropConfig().with_changes(aspect_ratio=2, max_zoom=None)
    assert cfg.aspect_ratio == 2.0
    assert cfg.max_zoom == 5.0
    with pytest.raises(InvalidInputError):
        cfg.with_changes(max_zoom=0.01)


@pytest.mark.parametrize(
    ("text", "expected"),
    [("8.5:11", DEFAULT_ASPECT_RATIO), ("16/9", 16 / 9), ("4x3", 4 / 3), ("1.5", 1.5), (2, 2.0)],
)
def test_parse_aspect_ratio(text, expected: float) -> None:
    assert parse_aspect_ratio(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", ["", "0:5", "5:0", "a:b", "-1"])
def test_parse_aspect_ratio_rejects(text: str) -> None:
    with pytest.raises(InvalidInputError):
        parse_aspect_ratio(text)
