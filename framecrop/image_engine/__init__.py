"""Image Engine - decoding and background loading.

This package provides the image data layer for a crop session:
- Payload validation and decoding into memory (decoder)
- Last-load-wins background decoding (loader)
- In-process counters/timings (metrics)

Usage:
    from framecrop.image_engine import Loader

    loader = Loader()
    loader.image_decoded.connect(on_decoded)
    generation = loader.request_load(data)
"""

from .decoder import SourceImage, decode_image, decode_image_bytes, image_to_array, validate_payload
from .loader import Loader

__all__ = [
    "Loader",
    "SourceImage",
    "decode_image",
    "decode_image_bytes",
    "image_to_array",
    "validate_payload",
]
