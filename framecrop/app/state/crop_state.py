from __future__ import annotations

from PySide6.QtCore import Property, QObject, Signal

from framecrop.ops.frame_geometry import Frame


class CropState(QObject):
    """Render descriptor published by the engine.

    Design:
    - The host paints the image with the (scale, offsetX, offsetY) transform and
      dims everything outside `frame`.
    - Setters only emit when a value actually changes, so a no-op operation
      (e.g. a zoom fully absorbed by the clamp) produces no rendering update.
    """

    activeChanged = Signal(bool)
    imageWidthChanged = Signal(int)
    imageHeightChanged = Signal(int)

    scaleChanged = Signal(float)
    offsetXChanged = Signal(float)
    offsetYChanged = Signal(float)
    transformChanged = Signal(float, float, float)

    viewportWidthChanged = Signal(float)
    viewportHeightChanged = Signal(float)
    frameChanged = Signal(object)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._active = False
        self._image_w = 0
        self._image_h = 0

        self._scale = 1.0
        self._offset_x = 0.0
        self._offset_y = 0.0

        self._viewport_w = 0.0
        self._viewport_h = 0.0
        self._frame: Frame | None = None

    # ---- read-only properties (mutate via engine) ----
    def _get_active(self) -> bool:
        return bool(self._active)

    active = Property(bool, _get_active, notify=activeChanged)  # type: ignore[arg-type]

    def _get_image_width(self) -> int:
        return int(self._image_w)

    imageWidth = Property(int, _get_image_width, notify=imageWidthChanged)  # type: ignore[arg-type]

    def _get_image_height(self) -> int:
        return int(self._image_h)

    imageHeight = Property(int, _get_image_height, notify=imageHeightChanged)  # type: ignore[arg-type]

    def _get_scale(self) -> float:
        return float(self._scale)

    scale = Property(float, _get_scale, notify=scaleChanged)  # type: ignore[arg-type]

    def _get_offset_x(self) -> float:
        return float(self._offset_x)

    offsetX = Property(float, _get_offset_x, notify=offsetXChanged)  # type: ignore[arg-type]

    def _get_offset_y(self) -> float:
        return float(self._offset_y)

    offsetY = Property(float, _get_offset_y, notify=offsetYChanged)  # type: ignore[arg-type]

    def _get_viewport_width(self) -> float:
        return float(self._viewport_w)

    viewportWidth = Property(float, _get_viewport_width, notify=viewportWidthChanged)  # type: ignore[arg-type]

    def _get_viewport_height(self) -> float:
        return float(self._viewport_h)

    viewportHeight = Property(float, _get_viewport_height, notify=viewportHeightChanged)  # type: ignore[arg-type]

    @property
    def frame(self) -> Frame | None:
        return self._frame

    def transform(self) -> tuple[float, float, float]:
        return self._scale, self._offset_x, self._offset_y

    # ---- internal mutation helpers (called by engine) ----
    def _set_active(self, value: bool) -> None:
        v = bool(value)
        if v == self._active:
            return
        self._active = v
        self.activeChanged.emit(v)

    def _set_image_size(self, w: int, h: int) -> None:
        iw = int(w)
        ih = int(h)
        if iw != self._image_w:
            self._image_w = iw
            self.imageWidthChanged.emit(iw)
        if ih != self._image_h:
            self._image_h = ih
            self.imageHeightChanged.emit(ih)

    def _set_transform(self, scale: float, offset_x: float, offset_y: float) -> None:
        s = float(scale)
        x = float(offset_x)
        y = float(offset_y)
        changed = False

        if s != self._scale:
            self._scale = s
            self.scaleChanged.emit(s)
            changed = True
        if x != self._offset_x:
            self._offset_x = x
            self.offsetXChanged.emit(x)
            changed = True
        if y != self._offset_y:
            self._offset_y = y
            self.offsetYChanged.emit(y)
            changed = True
        if changed:
            self.transformChanged.emit(s, x, y)

    def _set_viewport(self, w: float, h: float) -> None:
        vw = float(w)
        vh = float(h)
        if vw != self._viewport_w:
            self._viewport_w = vw
            self.viewportWidthChanged.emit(vw)
        if vh != self._viewport_h:
            self._viewport_h = vh
            self.viewportHeightChanged.emit(vh)

    def _set_frame(self, frame: Frame | None) -> None:
        if frame == self._frame:
            return
        self._frame = frame
        self.frameChanged.emit(frame)
