import os
import sys
from pathlib import Path

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QApplication, QMainWindow

from framecrop.app.engine import CropEngine
from framecrop.config import CropConfig, parse_aspect_ratio
from framecrop.crop.extractor import OUTPUT_FORMATS, crop_output_name
from framecrop.errors import FrameCropError
from framecrop.image_engine.metrics import COUNTER_KEYS, metrics
from framecrop.logger import get_logger, level_from_name, setup_logger
from framecrop.settings_manager import SettingsManager
from framecrop.ui.crop_canvas import CropCanvas

logger = get_logger("main")

_DEFAULT_SETTINGS = Path.home() / ".framecrop" / "settings.json"


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="framecrop",
        description="Pan/zoom an image inside a fixed-aspect frame and save the framed region.",
    )
    parser.add_argument("image", help="Image file to open")
    parser.add_argument("--output", "-o", help="Output file (default: cropped_<name>.<ext> next to the image)")
    parser.add_argument("--aspect", help="Frame aspect ratio as W:H or a number (default 8.5:11)")
    parser.add_argument("--width", type=int, help="Output width in pixels")
    parser.add_argument("--format", dest="fmt", choices=sorted(OUTPUT_FORMATS), help="Output MIME type")
    parser.add_argument("--quality", type=float, help="Encoder quality 0..1 for lossy formats")
    parser.add_argument("--settings", help="Settings JSON path")
    parser.add_argument("--log-level", help="Set log level")
    return parser


class CropWindow(QMainWindow):
    def __init__(
        self,
        engine: CropEngine,
        settings: SettingsManager,
        image_path: Path,
        output_path: Path | None = None,
        *,
        fmt: str | None = None,
        quality: float | None = None,
        width: int | None = None,
    ):
        super().__init__()
        self.setWindowTitle(f"framecrop - {image_path.name}")
        self.resize(1000, 800)
        self.engine = engine
        self.image_path = image_path
        defaults = settings.output_options()
        self.fmt = fmt or defaults.fmt
        self.quality = quality if quality is not None else defaults.quality
        self.output_width = width or defaults.width
        self.output_path = output_path or image_path.with_name(crop_output_name(image_path.name, self.fmt))

        self.canvas = CropCanvas(
            engine,
            self,
            overlay_color=settings.determine_overlay_color(),
            pan_step=settings.pan_step,
            on_save=self.save_crop,
        )
        self.setCentralWidget(self.canvas)
        self.canvas.setFocus()
        self.statusBar().showMessage("Loading...")

        engine.imageLoaded.connect(self._on_image_loaded)
        engine.loadFailed.connect(self._on_load_failed)

    def _on_image_loaded(self, generation: int, width: int, height: int) -> None:  # noqa: ARG002
        self.statusBar().showMessage(
            f"{width}x{height}  drag: pan  wheel/+/-: zoom  r: reset  Enter: save  Esc: close"
        )

    def _on_load_failed(self, generation: int, message: str) -> None:  # noqa: ARG002
        self.statusBar().showMessage(f"Load failed: {message}")

    def save_crop(self) -> bool:
        data, error = self.engine.get_cropped_image(self.fmt, self.quality, self.output_width)
        if error is not None or data is None:
            self.statusBar().showMessage(f"Crop failed: {error}")
            return False
        try:
            self.output_path.write_bytes(data)
        except OSError as e:
            logger.error("failed to write %s: %s", self.output_path, e)
            self.statusBar().showMessage(f"Save failed: {e}")
            return False
        logger.info("saved crop: %s (%d bytes)", self.output_path, len(data))
        self.statusBar().showMessage(f"Saved {self.output_path}")
        return True

    def keyPressEvent(self, event) -> None:
        if event.key() == Qt.Key.Key_Escape:
            self.close()
            return
        super().keyPressEvent(event)

    def closeEvent(self, event) -> None:
        self.engine.destroy()
        super().closeEvent(event)


def _log_metrics() -> None:
    for key in COUNTER_KEYS:
        logger.debug("metric %s=%d", key, metrics.counter(key))
    for key, s in metrics.timing_summary().items():
        logger.debug("metric %s: n=%d mean=%.1fms max=%.1fms", key, s["count"], s["mean"] * 1000, s["max"] * 1000)


def run(argv: list[str] | None = None) -> int:
    """Application entrypoint (packaging-friendly)."""
    if argv is None:
        argv = sys.argv

    args = build_parser().parse_args(argv[1:])
    if args.log_level:
        # get_logger re-runs setup_logger, which re-reads the env
        os.environ["FRAMECROP_LOG_LEVEL"] = args.log_level
    setup_logger(level_from_name(args.log_level))

    settings = SettingsManager(args.settings or _DEFAULT_SETTINGS.as_posix())
    config: CropConfig = settings.crop_config()
    try:
        if args.aspect:
            config = config.with_changes(aspect_ratio=parse_aspect_ratio(args.aspect))
    except FrameCropError as e:
        logger.error("invalid --aspect: %s", e)
        return 2

    image_path = Path(args.image)
    try:
        data = image_path.read_bytes()
    except OSError as e:
        logger.error("cannot read %s: %s", image_path, e)
        return 1

    app = QApplication.instance() or QApplication(argv[:1])
    engine = CropEngine(config)
    window = CropWindow(
        engine,
        settings,
        image_path,
        Path(args.output) if args.output else None,
        fmt=args.fmt,
        quality=args.quality,
        width=args.width,
    )
    window.show()

    try:
        engine.load_image(data)
    except FrameCropError as e:
        logger.error("cannot open %s: %s", image_path, e)
        return 1

    code = app.exec()
    _log_metrics()
    return code


if __name__ == "__main__":
    sys.exit(run())
