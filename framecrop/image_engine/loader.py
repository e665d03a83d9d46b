import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from PySide6.QtCore import QObject, Signal

from framecrop.logger import get_logger

from .decoder import decode_image
from .metrics import metrics

_logger = get_logger("loader")


class Loader(QObject):
    """Background decoder with last-load-wins semantics.

    Every request gets a monotonically increasing generation. Only the result
    of the newest generation is emitted; anything older is dropped, no matter
    in which order the worker finishes.

    decode_fn takes (generation, data) and returns
    (generation, source|None, error|None).
    """

    image_decoded = Signal(int, object, object)  # generation, SourceImage, error

    def __init__(self, decode_fn: Callable[[int, bytes], tuple] = decode_image):
        super().__init__()
        self._decode_fn = decode_fn
        self.io_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="framecrop-decode")
        self._latest_id = 0
        self._lock = threading.Lock()

    @property
    def latest_generation(self) -> int:
        with self._lock:
            return self._latest_id

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._latest_id

    def invalidate(self) -> int:
        """Make every pending request stale; returns the new generation."""
        with self._lock:
            self._latest_id += 1
            return self._latest_id

    def request_load(self, data: bytes) -> int:
        gen = self.invalidate()
        self.submit(gen, data)
        return gen

    def submit(self, generation: int, data: bytes) -> None:
        """Decode `data` under a generation reserved with `invalidate()`.

        The result may be emitted before this returns (a decode that finishes
        before the done-callback is attached runs it on the calling thread),
        so callers must record `generation` first.
        """
        metrics.inc("loader.requests")
        _logger.debug("submit gen=%s bytes=%d", generation, len(data))
        future = self.io_pool.submit(self._decode_fn, generation, data)
        if future is not None:
            future.add_done_callback(lambda f, g=generation: self.on_decode_finished(g, f))

    def on_decode_finished(self, generation: int, future: Future) -> None:
        if future.cancelled():
            return
        try:
            gen, source, error = future.result()
        except Exception as e:
            _logger.exception("decode future failed")
            gen, source, error = generation, None, str(e)
        if not self.is_current(gen):
            metrics.inc("loader.stale_results")
            _logger.debug("dropping stale decode result gen=%s", gen)
            return
        self.image_decoded.emit(gen, source, error)

    def shutdown(self) -> None:
        self.invalidate()
        self.io_pool.shutdown(wait=False, cancel_futures=True)
