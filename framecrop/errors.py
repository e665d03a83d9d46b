"""Error taxonomy for the crop engine.

Only `LoadError` and `EncodeError` are surfaced to the host as explicit
failure results. `NotReadyError` (and `DegenerateGeometryError`) are recovered
inside the engine and returned as values, never raised past `CropEngine`.
"""

from __future__ import annotations


class FrameCropError(Exception):
    """Base class for all framecrop errors."""


class InvalidInputError(FrameCropError, ValueError):
    """Malformed configuration or a non-image load payload."""


class NotReadyError(FrameCropError):
    """An operation needs a loaded image and a defined frame."""


class DegenerateGeometryError(NotReadyError):
    """The viewport or frame collapsed to zero area."""


class LoadError(FrameCropError):
    """Image bytes could not be decoded."""


class EncodeError(FrameCropError):
    """The extracted pixels could not be encoded."""


__all__ = [
    "DegenerateGeometryError",
    "EncodeError",
    "FrameCropError",
    "InvalidInputError",
    "LoadError",
    "NotReadyError",
]
