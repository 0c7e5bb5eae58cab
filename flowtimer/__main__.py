"""Allow running FlowTimer as a module: python -m flowtimer."""

import logging
import logging.handlers
import os
import sys

from PyQt6.QtWidgets import QApplication

from .database.db import APP_SUPPORT_DIR, init_db
from .app import FlowTimerApp


LOG_PATH = APP_SUPPORT_DIR / "flowtimer.log"
_MAX_BYTES = 1024 * 1024  # 1 MB
_BACKUP_COUNT = 3
_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


def configure_logging() -> None:
    """Log to ``flowtimer.log`` in the data dir and to stderr.

    The level comes from ``FLOWTIMER_LOG_LEVEL`` (default ``INFO``).
    """
    level_name = os.environ.get("FLOWTIMER_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.INFO

    formatter = logging.Formatter(_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    logger = logging.getLogger("flowtimer")
    logger.setLevel(level)
    if logger.handlers:
        return

    APP_SUPPORT_DIR.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        LOG_PATH,
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)


def main() -> None:
    configure_logging()
    init_db()
    logging.getLogger("flowtimer").info("FlowTimer ready, data in %s", APP_SUPPORT_DIR)

    app = QApplication(sys.argv)
    app.setApplicationName("FlowTimer")
    app.setOrganizationName("FlowTimer")
    app.setQuitOnLastWindowClosed(False)

    # Dock icon (generated placeholder, amber circle)
    from PyQt6.QtGui import QIcon, QPixmap, QPainter, QColor
    icon = QPixmap(256, 256)
    icon.fill(QColor(0, 0, 0, 0))
    p = QPainter(icon)
    p.setRenderHint(QPainter.RenderHint.Antialiasing)
    p.setBrush(QColor("#FBBF24"))
    p.setPen(QColor("#FBBF24").darker(120))
    p.drawEllipse(16, 16, 224, 224)
    p.end()
    app.setWindowIcon(QIcon(icon))

    window = FlowTimerApp()
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
