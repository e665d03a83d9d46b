"""Frame extraction backend using pyvips.

Maps the on-screen crop frame back through the current view into source
pixel coordinates, resamples that rectangle into the output size and encodes
it. No Qt dependencies.

Edge policy: output pixels whose sample point falls outside the source image
are zero in every band (opaque black for RGB, transparent black for RGBA;
formats without alpha flatten that onto black).
"""

from __future__ import annotations

import base64
import math
from dataclasses import dataclass
from typing import Any

import numpy as np

from framecrop.errors import DegenerateGeometryError, EncodeError, NotReadyError
from framecrop.image_engine.decoder import SourceImage, _get_pyvips_module, image_to_array
from framecrop.image_engine.metrics import metrics
from framecrop.logger import get_logger
from framecrop.ops.frame_geometry import Frame
from framecrop.ops.view_state import ViewState

_logger = get_logger("extractor")

DEFAULT_FORMAT = "image/jpeg"
DEFAULT_QUALITY = 0.92
DEFAULT_OUTPUT_WIDTH = 850


@dataclass(frozen=True, slots=True)
class OutputFormat:
    suffix: str
    lossy: bool
    alpha: bool


OUTPUT_FORMATS: dict[str, OutputFormat] = {
    "image/jpeg": OutputFormat(".jpg", lossy=True, alpha=False),
    "image/png": OutputFormat(".png", lossy=False, alpha=True),
    "image/webp": OutputFormat(".webp", lossy=True, alpha=True),
    "image/tiff": OutputFormat(".tif", lossy=False, alpha=True),
}


@dataclass(frozen=True, slots=True)
class SourceRect:
    """Rectangle in source-image pixel space (may extend past the image)."""

    x: float
    y: float
    width: float
    height: float


def source_rect_for(frame: Frame, view: ViewState) -> SourceRect:
    """Source-image rectangle currently shown inside `frame`."""
    scale = view.scale
    if not math.isfinite(scale) or scale <= 0:
        raise DegenerateGeometryError(f"invalid view scale: {scale}")
    if frame.is_empty():
        raise DegenerateGeometryError(f"frame has no area: {frame}")

    # Frame top-left relative to the displayed (scaled + offset) image.
    rel_x = frame.left - view.offset_x
    rel_y = frame.top - view.offset_y
    return SourceRect(
        x=rel_x / scale,
        y=rel_y / scale,
        width=frame.width / scale,
        height=frame.height / scale,
    )


def output_size(output_width: float, output_aspect_ratio: float) -> tuple[int, int]:
    """Integer output dimensions; raises EncodeError for empty/invalid sizes."""
    try:
        w = float(output_width)
        ratio = float(output_aspect_ratio)
    except (TypeError, ValueError) as e:
        raise EncodeError(f"invalid output size: {output_width!r} @ {output_aspect_ratio!r}") from e
    if not (math.isfinite(w) and math.isfinite(ratio)) or ratio <= 0:
        raise EncodeError(f"invalid output size: {output_width!r} @ {output_aspect_ratio!r}")
    out_w = round(w)
    out_h = round(w / ratio)
    if out_w <= 0 or out_h <= 0:
        raise EncodeError(f"output would be empty: {out_w}x{out_h}")
    return out_w, out_h


def _format_spec(fmt: str) -> OutputFormat:
    spec = OUTPUT_FORMATS.get(str(fmt or "").strip().lower())
    if spec is None:
        raise EncodeError(f"unsupported output format: {fmt!r}")
    return spec


def _quality_to_q(quality: float) -> int:
    # Same contract as canvas toDataURL: 0..1, anything else -> default.
    try:
        q = float(quality)
    except (TypeError, ValueError):
        q = DEFAULT_QUALITY
    if not (0.0 <= q <= 1.0):
        q = DEFAULT_QUALITY
    return max(1, round(q * 100))


def resample(source: SourceImage, rect: SourceRect, out_w: int, out_h: int) -> Any:
    """Bilinear-resample `rect` of the source into an out_w x out_h image."""
    pyvips = _get_pyvips_module()
    a = out_w / rect.width
    d = out_h / rect.height

    image = source.image
    try:
        alpha = image.hasalpha()
        if alpha:
            image = image.premultiply()

        out = image.affine(
            [a, 0.0, 0.0, d],
            interpolate=pyvips.Interpolate.new("bilinear"),
            oarea=[0, 0, out_w, out_h],
            odx=-rect.x * a,
            ody=-rect.y * d,
            extend="black",
        )

        if alpha:
            out = out.unpremultiply()
        if out.format != "uchar":
            out = out.cast("uchar")
    except pyvips.Error as e:
        metrics.inc("extractor.encode_errors")
        _logger.error("resample to %dx%d failed: %s", out_w, out_h, e)
        raise EncodeError(f"failed to resample frame: {e}") from e
    return out


def resample_frame(
    frame: Frame | None,
    view: ViewState,
    source: SourceImage | None,
    output_width: float,
    output_aspect_ratio: float,
) -> Any:
    if source is None:
        raise NotReadyError("no image loaded")
    if frame is None:
        raise NotReadyError("crop frame is undefined")
    out_w, out_h = output_size(output_width, output_aspect_ratio)
    rect = source_rect_for(frame, view)
    _logger.debug("extract source rect=%s -> %dx%d", rect, out_w, out_h)
    return resample(source, rect, out_w, out_h)


def encode(image: Any, fmt: str = DEFAULT_FORMAT, quality: float = DEFAULT_QUALITY) -> bytes:
    """Encode a pyvips image to bytes in the given MIME format."""
    spec = _format_spec(fmt)
    pyvips = _get_pyvips_module()

    if image.hasalpha() and not spec.alpha:
        image = image.flatten(background=[0, 0, 0])

    options: dict[str, Any] = {}
    if spec.lossy:
        options["Q"] = _quality_to_q(quality)

    try:
        out = image.write_to_buffer(spec.suffix, **options)
    except pyvips.Error as e:
        metrics.inc("extractor.encode_errors")
        _logger.error("encode to %s failed: %s", fmt, e)
        raise EncodeError(f"failed to encode {fmt}: {e}") from e
    return out if isinstance(out, bytes) else bytes(out)


def extract(
    frame: Frame | None,
    view: ViewState,
    source: SourceImage | None,
    output_width: float = DEFAULT_OUTPUT_WIDTH,
    output_aspect_ratio: float | None = None,
    fmt: str = DEFAULT_FORMAT,
    quality: float = DEFAULT_QUALITY,
) -> bytes:
    """Extract the pixels inside `frame` and encode them.

    `output_aspect_ratio` defaults to the frame's own ratio. Raises
    NotReadyError or EncodeError; never returns partial output.
    """
    _format_spec(fmt)
    if output_aspect_ratio is None and frame is not None:
        output_aspect_ratio = frame.aspect_ratio
    with metrics.timed("extractor.extract"):
        image = resample_frame(frame, view, source, output_width, output_aspect_ratio or 0.0)
        return encode(image, fmt, quality)


def extract_array(
    frame: Frame | None,
    view: ViewState,
    source: SourceImage | None,
    output_width: float = DEFAULT_OUTPUT_WIDTH,
    output_aspect_ratio: float | None = None,
) -> np.ndarray:
    """Like `extract` but returns the raw (H, W, bands) uint8 buffer."""
    if output_aspect_ratio is None and frame is not None:
        output_aspect_ratio = frame.aspect_ratio
    image = resample_frame(frame, view, source, output_width, output_aspect_ratio or 0.0)
    pyvips = _get_pyvips_module()
    try:
        return image_to_array(image)
    except pyvips.Error as e:
        # pyvips is lazy; pixel work only happens here.
        metrics.inc("extractor.encode_errors")
        _logger.error("pixel readout failed: %s", e)
        raise EncodeError(f"failed to read cropped pixels: {e}") from e


def as_data_url(data: bytes, fmt: str = DEFAULT_FORMAT) -> str:
    return f"data:{fmt};base64,{base64.b64encode(data).decode('ascii')}"


def crop_output_name(filename: str, fmt: str = DEFAULT_FORMAT) -> str:
    """`photo.final.png` -> `cropped_photo.jpg` (for the default jpeg format)."""
    base = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = base.split(".")[0] or "image"
    return f"cropped_{name}{_format_spec(fmt).suffix}"
