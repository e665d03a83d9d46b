"""Crop package public API.

Expose pure-backend extraction helpers for external import as `framecrop.crop`.

Important: keep this module lightweight.
Do NOT import Qt-heavy UI modules here.
"""

from .extractor import (
    DEFAULT_FORMAT,
    DEFAULT_OUTPUT_WIDTH,
    DEFAULT_QUALITY,
    OUTPUT_FORMATS,
    SourceRect,
    as_data_url,
    crop_output_name,
    encode,
    extract,
    extract_array,
    output_size,
    source_rect_for,
)

__all__ = [
    "DEFAULT_FORMAT",
    "DEFAULT_OUTPUT_WIDTH",
    "DEFAULT_QUALITY",
    "OUTPUT_FORMATS",
    "SourceRect",
    "as_data_url",
    "crop_output_name",
    "encode",
    "extract",
    "extract_array",
    "output_size",
    "source_rect_for",
]
