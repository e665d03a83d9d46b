from __future__ import annotations

from collections.abc import Callable

from PySide6.QtCore import QEvent, QRectF, Qt
from PySide6.QtGui import QColor, QImage, QPainter, QPainterPath, QPen, QPixmap
from PySide6.QtWidgets import QWidget

from framecrop.app.engine import CropEngine
from framecrop.image_engine.decoder import RGB_CHANNELS, RGBA_CHANNELS, image_to_array
from framecrop.logger import get_logger
from framecrop.ops.frame_geometry import Frame
from framecrop.ops.gestures import TouchPoint

_logger = get_logger("ui_canvas")

DEFAULT_PAN_STEP = 10.0
FRAME_BORDER_WIDTH = 2
BACKGROUND_COLOR = QColor(32, 32, 32)

_BUTTONS = {
    Qt.MouseButton.LeftButton: 0,
    Qt.MouseButton.MiddleButton: 1,
    Qt.MouseButton.RightButton: 2,
}


def build_overlay_path(viewport_width: float, viewport_height: float, frame: Frame | None) -> QPainterPath:
    """Whole viewport minus the frame (even-odd), i.e. the dimmed region."""
    path = QPainterPath()
    path.setFillRule(Qt.FillRule.OddEvenFill)
    path.addRect(QRectF(0, 0, viewport_width, viewport_height))
    if frame is not None:
        path.addRect(QRectF(frame.left, frame.top, frame.width, frame.height))
    return path


def _pixmap_from_source(image) -> QPixmap:
    arr = image_to_array(image)
    h, w, bands = arr.shape
    if bands == RGBA_CHANNELS:
        qimg = QImage(arr.data, w, h, w * RGBA_CHANNELS, QImage.Format.Format_RGBA8888)
    else:
        qimg = QImage(arr.data, w, h, w * RGB_CHANNELS, QImage.Format.Format_RGB888)
    # copy(): QImage does not own the numpy buffer
    return QPixmap.fromImage(qimg.copy())


class CropCanvas(QWidget):
    """Paints the engine's render state and forwards input to it."""

    def __init__(
        self,
        engine: CropEngine,
        parent: QWidget | None = None,
        *,
        overlay_color: QColor | None = None,
        pan_step: float = DEFAULT_PAN_STEP,
        on_save: Callable[[], None] | None = None,
    ) -> None:
        super().__init__(parent)
        self._engine = engine
        self._overlay_color = overlay_color or QColor(0, 0, 0, 128)
        self._pan_step = float(pan_step)
        self._on_save = on_save
        self._pixmap: QPixmap | None = None

        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMouseTracking(False)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        self.setMinimumSize(200, 200)

        engine.imageLoaded.connect(self._on_image_loaded)
        engine.cleared.connect(self._on_cleared)
        state = engine.state
        state.transformChanged.connect(self._schedule_repaint)
        state.frameChanged.connect(self._schedule_repaint)
        state.activeChanged.connect(self._schedule_repaint)

    @property
    def engine(self) -> CropEngine:
        return self._engine

    @property
    def overlay_color(self) -> QColor:
        return QColor(self._overlay_color)

    def set_overlay_color(self, color: QColor) -> None:
        self._overlay_color = QColor(color)
        self.update()

    def has_pixmap(self) -> bool:
        return self._pixmap is not None and not self._pixmap.isNull()

    # ---- engine notifications ----
    def _on_image_loaded(self, generation: int, width: int, height: int) -> None:
        source = self._engine.source
        if source is None:
            return
        self._pixmap = _pixmap_from_source(source.image)
        _logger.debug("canvas pixmap gen=%s %dx%d", generation, width, height)
        self.update()

    def _on_cleared(self) -> None:
        self._pixmap = None
        self.update()

    def _schedule_repaint(self, *_args) -> None:
        self.update()

    # ---- painting ----
    def paintEvent(self, event) -> None:  # noqa: ARG002
        painter = QPainter(self)
        try:
            painter.fillRect(self.rect(), BACKGROUND_COLOR)
            if self.has_pixmap():
                scale, ox, oy = self._engine.state.transform()
                painter.save()
                painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
                painter.translate(ox, oy)
                painter.scale(scale, scale)
                painter.drawPixmap(0, 0, self._pixmap)
                painter.restore()

            frame = self._engine.frame
            if frame is None:
                return
            painter.fillPath(build_overlay_path(self.width(), self.height(), frame), self._overlay_color)
            pen = QPen(QColor(255, 255, 255), FRAME_BORDER_WIDTH)
            painter.setPen(pen)
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(QRectF(frame.left, frame.top, frame.width, frame.height))
        finally:
            painter.end()

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        size = event.size()
        self._engine.on_viewport_resized(size.width(), size.height())

    # ---- mouse ----
    def mousePressEvent(self, event) -> None:
        pos = event.position()
        button = _BUTTONS.get(event.button(), -1)
        if self._engine.on_pointer_down(pos.x(), pos.y(), button):
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
            event.accept()
        else:
            event.ignore()

    def mouseMoveEvent(self, event) -> None:
        pos = event.position()
        if self._engine.on_pointer_move(pos.x(), pos.y()):
            event.accept()
        else:
            event.ignore()

    def mouseReleaseEvent(self, event) -> None:
        pos = event.position()
        if self._engine.on_pointer_up(pos.x(), pos.y()):
            self.unsetCursor()
            event.accept()
        else:
            event.ignore()

    def wheelEvent(self, event) -> None:
        pos = event.position()
        # Qt reports "away from user" as positive; the engine expects scroll-down positive.
        delta_y = -event.angleDelta().y()
        if self._engine.on_wheel(pos.x(), pos.y(), delta_y):
            event.accept()
        else:
            event.ignore()

    # ---- touch ----
    def event(self, event) -> bool:
        etype = event.type()
        if etype in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate, QEvent.Type.TouchEnd):
            touches = [TouchPoint(p.id(), p.position().x(), p.position().y()) for p in event.points()]
            if etype == QEvent.Type.TouchBegin:
                consumed = self._engine.on_touch_start(touches)
            elif etype == QEvent.Type.TouchUpdate:
                # A second finger arriving shows up as an update; restart as pinch.
                if self._engine.gestures.pinch is None and len(touches) == 2:  # noqa: PLR2004
                    consumed = self._engine.on_touch_start(touches)
                else:
                    consumed = self._engine.on_touch_move(touches)
            else:
                consumed = self._engine.on_touch_end(touches)
            event.setAccepted(consumed)
            return True
        return super().event(event)

    # ---- keyboard ----
    def keyPressEvent(self, event) -> None:
        key = event.key()
        text = event.text()
        engine = self._engine
        step = self._pan_step

        if key in (Qt.Key.Key_Plus, Qt.Key.Key_Equal):
            engine.zoom_in()
        elif key == Qt.Key.Key_Minus:
            engine.zoom_out()
        elif key == Qt.Key.Key_R or text in ("r", "R"):
            engine.reset_view()
        elif key == Qt.Key.Key_Left:
            engine.pan(-step, 0)
        elif key == Qt.Key.Key_Right:
            engine.pan(step, 0)
        elif key == Qt.Key.Key_Up:
            engine.pan(0, -step)
        elif key == Qt.Key.Key_Down:
            engine.pan(0, step)
        elif key in (Qt.Key.Key_Return, Qt.Key.Key_Enter) and self._on_save is not None:
            self._on_save()
        else:
            super().keyPressEvent(event)
            return
        event.accept()
