"""Pure geometry layer.

Frame placement, the view transform and gesture handling. Nothing here
touches pixels or Qt; `framecrop.app.engine.CropEngine` wires it together.
"""

from .frame_geometry import FRAME_FILL, Frame, compute_frame
from .gestures import DragSession, GestureController, PinchSession, PointerEvent, TouchPoint, WheelEvent
from .view_state import ViewState

__all__ = [
    "FRAME_FILL",
    "DragSession",
    "Frame",
    "GestureController",
    "PinchSession",
    "PointerEvent",
    "TouchPoint",
    "ViewState",
    "WheelEvent",
    "compute_frame",
]
