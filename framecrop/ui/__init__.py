"""Qt widgets hosting a CropEngine."""

from .crop_canvas import CropCanvas, build_overlay_path

__all__ = ["CropCanvas", "build_overlay_path"]
