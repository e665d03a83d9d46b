from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import Future
from typing import Any

import numpy as np
from PySide6.QtCore import QObject, Signal, Slot

from framecrop.app.state.crop_state import CropState
from framecrop.config import CropConfig, parse_aspect_ratio
from framecrop.crop.extractor import (
    DEFAULT_FORMAT,
    DEFAULT_OUTPUT_WIDTH,
    DEFAULT_QUALITY,
    extract,
    extract_array,
)
from framecrop.errors import (
    EncodeError,
    FrameCropError,
    InvalidInputError,
    LoadError,
    NotReadyError,
)
from framecrop.image_engine.decoder import SourceImage, decode_image_bytes, validate_payload
from framecrop.image_engine.loader import Loader
from framecrop.image_engine.metrics import metrics
from framecrop.logger import get_logger
from framecrop.ops.frame_geometry import Frame, compute_frame
from framecrop.ops.gestures import GestureController, PointerEvent, TouchPoint, WheelEvent
from framecrop.ops.view_state import ViewState

_logger = get_logger("engine")


class CropEngine(QObject):
    """One editing session: viewport, frame, source image, view and gestures.

    All mutations happen on the thread that owns the engine. Background
    decoding results arrive through `Loader.image_decoded` and are applied
    only if they belong to the newest load request.
    """

    imageLoaded = Signal(int, int, int)  # generation, width, height
    loadFailed = Signal(int, str)  # generation, message
    cleared = Signal()

    def __init__(
        self,
        config: CropConfig | None = None,
        parent: QObject | None = None,
        *,
        loader: Loader | None = None,
    ) -> None:
        super().__init__(parent)
        self._config = config or CropConfig()
        self._state = CropState(self)
        self._view = ViewState()
        self._gestures = GestureController(self)

        self._viewport_w = 0.0
        self._viewport_h = 0.0
        self._frame: Frame | None = None
        self._source: SourceImage | None = None
        self._needs_fit = False
        self._destroyed = False

        self._loader = loader or Loader()
        self._loader.image_decoded.connect(self._on_image_decoded)
        self._pending_gen: int | None = None
        self._pending_future: Future | None = None

    # ---- read-only accessors ----
    @property
    def state(self) -> CropState:
        return self._state

    @property
    def config(self) -> CropConfig:
        return self._config

    @property
    def frame(self) -> Frame | None:
        return self._frame

    @property
    def view(self) -> ViewState:
        """Copy of the current view; mutate through engine methods only."""
        return self._view.copy()

    @property
    def source(self) -> SourceImage | None:
        return self._source

    @property
    def gestures(self) -> GestureController:
        return self._gestures

    @property
    def zoom_step(self) -> float:
        return self._config.zoom_step

    def is_loaded(self) -> bool:
        return self._source is not None

    def can_interact(self) -> bool:
        return self._source is not None and self._frame is not None

    def current_offset(self) -> tuple[float, float]:
        return self._view.offset_x, self._view.offset_y

    def transform(self) -> tuple[float, float, float]:
        return self._view.as_tuple()

    # ---- configuration / geometry ----
    def configure(
        self,
        aspect_ratio: float | None = None,
        min_zoom: float | None = None,
        max_zoom: float | None = None,
        zoom_step: float | None = None,
    ) -> CropConfig:
        """Replace the configuration. Raises InvalidInputError without mutating."""
        new = self._config.with_changes(
            aspect_ratio=aspect_ratio,
            min_zoom=min_zoom,
            max_zoom=max_zoom,
            zoom_step=zoom_step,
        )
        if new == self._config:
            return new
        ratio_changed = new.aspect_ratio != self._config.aspect_ratio
        self._config = new
        _logger.debug("configured: %s", new)
        if ratio_changed:
            self._recompute_frame()
        self._publish()
        return new

    def on_viewport_resized(self, width: float, height: float) -> Frame | None:
        self._viewport_w = float(width)
        self._viewport_h = float(height)
        self._recompute_frame()
        self._publish()
        return self._frame

    def _recompute_frame(self) -> None:
        frame = compute_frame(self._viewport_w, self._viewport_h, self._config.aspect_ratio)
        if frame is None:
            if self._frame is not None:
                _logger.warning(
                    "viewport has zero dimensions (%sx%s); crop frame undefined",
                    self._viewport_w,
                    self._viewport_h,
                )
            self._gestures.cancel()
        self._frame = frame
        if frame is not None and self._source is not None and self._needs_fit:
            self._fit()

    # ---- loading ----
    def load_image(self, data: bytes) -> Future:
        """Start decoding `data` in the background.

        Returns a Future resolving to the SourceImage, failing with LoadError,
        or cancelled when a newer load supersedes it. Invalid payloads raise
        InvalidInputError synchronously, before any state change.
        """
        future: Future = Future()
        if self._destroyed:
            future.set_exception(NotReadyError("engine destroyed"))
            return future
        validate_payload(data)

        self.clear()
        gen = self._loader.invalidate()
        self._pending_gen = gen
        self._pending_future = future
        self._loader.submit(gen, bytes(data))
        return future

    def load_image_sync(self, data: bytes) -> SourceImage:
        """Decode `data` inline (for hosts without a running Qt event loop)."""
        if self._destroyed:
            raise NotReadyError("engine destroyed")
        validate_payload(data)

        self.clear()
        # Anything still decoding in the background is now stale.
        gen = self._loader.invalidate()
        try:
            source = decode_image_bytes(data)
        except LoadError as e:
            _logger.error("image load failed: %s", e)
            self.loadFailed.emit(gen, str(e))
            raise
        self._apply_loaded_image(gen, source)
        return source

    @Slot(int, object, object)
    def _on_image_decoded(self, generation: int, source: object, error: object) -> None:
        if generation != self._pending_gen or self._destroyed:
            _logger.debug("ignoring decode result gen=%s (pending=%s)", generation, self._pending_gen)
            return
        future = self._pending_future
        self._pending_gen = None
        self._pending_future = None

        if error or not isinstance(source, SourceImage):
            message = str(error or "decoder returned no image")
            _logger.error("image load failed: %s", message)
            # Rolled back: clear() already ran when the load started.
            self.loadFailed.emit(generation, message)
            if future is not None and not future.done():
                future.set_exception(LoadError(message))
            return

        self._apply_loaded_image(generation, source)
        if future is not None and not future.done():
            future.set_result(source)

    def _apply_loaded_image(self, generation: int, source: SourceImage) -> None:
        metrics.inc("engine.loads")
        self._source = source
        self._gestures.cancel()
        self._view.reset()
        self._needs_fit = True
        self._recompute_frame()
        if self._needs_fit:
            _logger.debug("image loaded before frame was defined; fit deferred")
        self._publish()
        _logger.info("image loaded: %dx%d (%s)", source.width, source.height, source.loader)
        self.imageLoaded.emit(generation, source.width, source.height)

    def _cancel_pending(self) -> None:
        future = self._pending_future
        self._pending_gen = None
        self._pending_future = None
        if future is not None and not future.done():
            future.cancel()

    def clear(self) -> None:
        """Drop the image and reset the view; the frame stays valid."""
        self._cancel_pending()
        self._gestures.cancel()
        had_image = self._source is not None
        self._source = None
        self._needs_fit = False
        self._view.reset()
        self._publish()
        if had_image:
            _logger.debug("cleared image")
            self.cleared.emit()

    def destroy(self) -> None:
        if self._destroyed:
            return
        self.clear()
        self._destroyed = True
        self._loader.shutdown()
        self._viewport_w = 0.0
        self._viewport_h = 0.0
        self._frame = None
        self._publish()

    # ---- view operations ----
    def _fit(self) -> None:
        if self._source is None:
            return
        self._view.fit_to_frame(self._source.width, self._source.height, self._frame)
        self._needs_fit = self._frame is None

    def reset_view(self) -> bool:
        """Fit the whole image into the frame and center it."""
        if not self.can_interact():
            _logger.warning("cannot reset view: image not loaded or frame not calculated")
            return False
        self._fit()
        self._publish()
        return True

    def zoom_at_point(self, factor: float, x: float, y: float) -> bool:
        if not self.can_interact():
            return False
        changed = self._view.zoom_at_point(
            factor,
            x,
            y,
            min_zoom=self._config.min_zoom,
            max_zoom=self._config.max_zoom,
        )
        if changed:
            self._publish()
        return changed

    def _frame_center(self) -> tuple[float, float] | None:
        if not self.can_interact() or self._frame is None:
            return None
        return self._frame.center

    def zoom_in(self) -> bool:
        center = self._frame_center()
        if center is None:
            return False
        return self.zoom_at_point(1 + self._config.zoom_step, *center)

    def zoom_out(self) -> bool:
        center = self._frame_center()
        if center is None:
            return False
        return self.zoom_at_point(1 - self._config.zoom_step, *center)

    def pan(self, dx: float, dy: float) -> bool:
        if not self.can_interact():
            return False
        changed = self._view.pan(dx, dy)
        if changed:
            self._publish()
        return changed

    def set_offset(self, x: float, y: float) -> bool:
        if not self.can_interact():
            return False
        changed = self._view.set_offset(x, y)
        if changed:
            self._publish()
        return changed

    # ---- input dispatch ----
    def on_pointer_down(self, x: float, y: float, button: int = 0) -> bool:
        return self._gestures.on_pointer_down(PointerEvent(x, y, button))

    def on_pointer_move(self, x: float, y: float) -> bool:
        return self._gestures.on_pointer_move(PointerEvent(x, y))

    def on_pointer_up(self, x: float, y: float) -> bool:
        return self._gestures.on_pointer_up(PointerEvent(x, y))

    def on_wheel(self, x: float, y: float, delta_y: float) -> bool:
        return self._gestures.on_wheel(WheelEvent(x, y, delta_y))

    def on_touch_start(self, touches: Sequence[TouchPoint]) -> bool:
        return self._gestures.on_touch_start(touches)

    def on_touch_move(self, touches: Sequence[TouchPoint]) -> bool:
        return self._gestures.on_touch_move(touches)

    def on_touch_end(self, touches: Sequence[TouchPoint]) -> bool:
        return self._gestures.on_touch_end(touches)

    # ---- extraction ----
    def get_cropped_image(
        self,
        fmt: str = DEFAULT_FORMAT,
        quality: float = DEFAULT_QUALITY,
        output_width: float = DEFAULT_OUTPUT_WIDTH,
        output_aspect_ratio: float | None = None,
    ) -> tuple[bytes | None, FrameCropError | None]:
        """Extract and encode the framed pixels.

        Returns (bytes, None) on success or (None, error) where error is a
        NotReadyError or EncodeError. The view is never modified.
        """
        if self._source is None or self._frame is None:
            _logger.error("cannot crop: image not loaded or frame not calculated")
            return None, NotReadyError("image not loaded or frame not calculated")
        ratio = output_aspect_ratio if output_aspect_ratio is not None else self._config.aspect_ratio
        try:
            data = extract(self._frame, self._view.copy(), self._source, output_width, ratio, fmt, quality)
        except (NotReadyError, EncodeError) as e:
            _logger.error("crop extraction failed: %s", e)
            return None, e
        _logger.debug("cropped image: %d bytes %s", len(data), fmt)
        return data, None

    def get_cropped_pixels(
        self,
        output_width: float = DEFAULT_OUTPUT_WIDTH,
        output_aspect_ratio: float | None = None,
    ) -> np.ndarray | None:
        if self._source is None or self._frame is None:
            return None
        ratio = output_aspect_ratio if output_aspect_ratio is not None else self._config.aspect_ratio
        try:
            return extract_array(self._frame, self._view.copy(), self._source, output_width, ratio)
        except (NotReadyError, EncodeError) as e:
            _logger.error("crop extraction failed: %s", e)
            return None

    # ---- host command entry ----
    def dispatch(self, cmd: str, payload: object | None = None) -> bool:  # noqa: PLR0911
        command = str(cmd or "").strip()
        if not command:
            _logger.warning("empty command")
            return False

        if command == "zoomIn":
            return self.zoom_in()

        if command == "zoomOut":
            return self.zoom_out()

        if command == "resetView":
            return self.reset_view()

        if command == "pan":
            try:
                dx = float(_get_payload_value(payload, "dx", default=0.0))
                dy = float(_get_payload_value(payload, "dy", default=0.0))
            except (TypeError, ValueError) as e:
                _logger.warning("pan rejected: %s", e)
                return False
            return self.pan(dx, dy)

        if command == "zoomAt":
            try:
                factor = float(_get_payload_value(payload, "factor", default=1.0))
                x = float(_get_payload_value(payload, "x", default=0.0))
                y = float(_get_payload_value(payload, "y", default=0.0))
            except (TypeError, ValueError) as e:
                _logger.warning("zoomAt rejected: %s", e)
                return False
            return self.zoom_at_point(factor, x, y)

        if command == "resize":
            try:
                w = float(_get_payload_value(payload, "width", default=0.0))
                h = float(_get_payload_value(payload, "height", default=0.0))
            except (TypeError, ValueError) as e:
                _logger.warning("resize rejected: %s", e)
                return False
            return self.on_viewport_resized(w, h) is not None

        if command == "setAspect":
            ratio = _get_payload_value(payload, "ratio", default=None)
            if ratio is None:
                _logger.warning("setAspect without ratio")
                return False
            try:
                self.configure(aspect_ratio=parse_aspect_ratio(ratio))
            except InvalidInputError as e:
                _logger.warning("setAspect rejected: %s", e)
                return False
            return True

        if command == "clear":
            self.clear()
            return True

        _logger.warning("Unknown cmd: %s", command)
        return False

    # ---- render descriptor ----
    def _publish(self) -> None:
        st = self._state
        st._set_viewport(self._viewport_w, self._viewport_h)
        st._set_frame(self._frame)
        if self._source is not None:
            st._set_image_size(self._source.width, self._source.height)
        else:
            st._set_image_size(0, 0)
        st._set_transform(*self._view.as_tuple())
        st._set_active(self._source is not None)


def _get_payload_value(payload: object | None, key: str, *, default: Any) -> Any:
    """Extract a value from a command payload.

    Supports:
    - dict-like payloads (Python dict)
    - None
    - otherwise returns default
    """
    if payload is None:
        return default
    if isinstance(payload, dict):
        return payload.get(key, default)
    return default


__all__ = ["CropEngine"]
