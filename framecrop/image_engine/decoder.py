"""Image decoder using pyvips.

Turns raw image bytes into a `SourceImage` kept in memory for the whole
editing session, and converts pyvips images into numpy arrays.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from framecrop.errors import InvalidInputError, LoadError
from framecrop.logger import get_logger

from .metrics import metrics

_logger = get_logger("decoder")

RGB_CHANNELS = 3
RGBA_CHANNELS = 4

_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        _pyvips = pyvips
    return _pyvips


@dataclass(frozen=True, slots=True)
class SourceImage:
    """A decoded source bitmap and its natural size."""

    image: Any
    width: int
    height: int
    loader: str = ""

    @property
    def has_alpha(self) -> bool:
        return bool(self.image.hasalpha())


def sniff_loader(data: bytes | bytearray | memoryview) -> str | None:
    """Return the pyvips loader name for `data`, or None for a non-image payload."""
    try:
        pyvips = _get_pyvips_module()
    except ImportError as e:
        raise LoadError("pyvips is not available") from e
    try:
        # Header-only open; pixels are not decoded here.
        header = pyvips.Image.new_from_buffer(bytes(data), "")
        return str(header.get("vips-loader"))
    except pyvips.Error:
        return None


def validate_payload(data: object) -> str:
    """Reject anything that is not non-empty image bytes; returns the loader name."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise InvalidInputError(f"image payload must be bytes, got {type(data).__name__}")
    if len(data) == 0:
        raise InvalidInputError("image payload is empty")
    loader = sniff_loader(data)
    if not loader:
        raise InvalidInputError("payload is not a supported image format")
    return loader


def _normalize(image: Any) -> Any:
    """Bring a freshly loaded image to 8-bit sRGB, keeping any alpha band."""
    pyvips = _get_pyvips_module()
    try:
        image = image.colourspace("srgb")
    except pyvips.Error as e:
        _logger.debug("colourspace srgb failed (%s bands, %s): %s", image.bands, image.interpretation, e)
    if image.format == "ushort":
        image = (image / 256).cast("uchar")
    elif image.format != "uchar":
        image = image.cast("uchar")
    return image


def decode_image_bytes(data: bytes | bytearray | memoryview) -> SourceImage:
    """Decode image bytes fully into memory.

    Raises InvalidInputError for non-image payloads and LoadError for decode
    failures. Decoding is forced here so corrupt files fail at load time,
    not on the first extraction.
    """
    loader = validate_payload(data)
    pyvips = _get_pyvips_module()
    with metrics.timed("decoder.decode"):
        try:
            image = pyvips.Image.new_from_buffer(bytes(data), "")
            image = _normalize(image)
            image = image.copy_memory()
        except pyvips.Error as e:
            _logger.debug("decode failed (%s): %s", loader, e)
            raise LoadError(f"failed to decode image: {e}") from e

    if image.width <= 0 or image.height <= 0:
        raise LoadError(f"decoded image has no pixels: {image.width}x{image.height}")
    _logger.debug("decoded %s image %dx%d bands=%d", loader, image.width, image.height, image.bands)
    return SourceImage(image=image, width=int(image.width), height=int(image.height), loader=str(loader))


def decode_image(generation: int, data: bytes) -> tuple[int, SourceImage | None, str | None]:
    """Decode image bytes for a load request.

    Returns (generation, source|None, error|None).
    """
    try:
        return generation, decode_image_bytes(data), None
    except Exception as e:
        _logger.debug("decode failed: %s", e)
        return generation, None, str(e)


def image_to_array(image: Any, *, keep_alpha: bool = True) -> np.ndarray:
    """Copy a pyvips image into an (H, W, 3|4) uint8 numpy array."""
    if image.hasalpha() and not keep_alpha:
        image = image.flatten(background=[0, 0, 0])
    bands = RGBA_CHANNELS if image.hasalpha() else RGB_CHANNELS
    if image.bands > bands:
        image = image.extract_band(0, bands)
    elif image.bands < bands:
        if image.hasalpha():
            # grey + alpha
            image = image[0].bandjoin([image[0], image[0], image[1]])
        else:
            image = image.bandjoin([image] * (RGB_CHANNELS - 1))
    if image.format != "uchar":
        image = image.cast("uchar")

    mem = image.write_to_memory()
    array = np.frombuffer(mem, dtype=np.uint8).reshape(image.height, image.width, image.bands)
    return array.copy()
