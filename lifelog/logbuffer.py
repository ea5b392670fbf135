"""
Ring buffer of recent log lines, served by GET /api/logs.
"""

import logging
import threading
from collections import deque

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogBuffer(logging.Handler):
    """Logging handler keeping the last `capacity` formatted records."""

    def __init__(self, capacity: int = 200, level: int = logging.INFO):
        super().__init__(level)
        self._lines: deque[str] = deque(maxlen=capacity)
        self._guard = threading.Lock()
        self.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:
            self.handleError(record)
            return
        with self._guard:
            self._lines.append(line)

    def tail(self, limit: int = 50) -> list[str]:
        with self._guard:
            lines = list(self._lines)
        return lines[-limit:] if limit > 0 else []


def configure_logging(buffer: LogBuffer | None = None, level: int = logging.INFO) -> None:
    """Root logging setup for the server process."""
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    if buffer is not None:
        root = logging.getLogger()
        if buffer not in root.handlers:
            root.addHandler(buffer)
