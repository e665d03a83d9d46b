"""framecrop: pan/zoom an image inside a fixed-aspect frame and extract it."""

__version__ = "0.1.0"
