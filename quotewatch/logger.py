import logging
import os
from collections import deque
from datetime import datetime
from typing import Deque, Optional

from quotewatch.constants import LOG_DIR

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str = "quotewatch", log_dir: Optional[str] = None, level=logging.INFO, log_to_file: bool = True
) -> logging.Logger:
    """
    Setup the package logger with an optional dated file handler

    No console handler is attached: the Live screen owns the terminal, and
    log lines reach the user through StatusLogHandler instead.

    Args:
        name: Logger name
        log_dir: Directory to store log files (default: project logs/)
        level: Logging level
        log_to_file: Whether to create file handler

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if log_to_file and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        log_dir = log_dir or LOG_DIR
        log_filename = f"{name}_{datetime.now().strftime('%Y%m%d')}.log"
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(os.path.join(log_dir, log_filename), encoding="utf-8")
        except OSError:
            # read-only install location; status line logging still works
            return logger
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger


class StatusLogHandler(logging.Handler):
    """Log bridge that feeds records into the view's status line.

    Records may arrive from worker threads, so they are queued here and
    copied onto the view by the foreground loop via publish().
    """

    def __init__(self, enabled: bool = True, level=logging.INFO, maxlen: int = 50):
        super().__init__(level=level)
        self.enabled = enabled
        self.lines: Deque[str] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        if not self.enabled:
            return
        try:
            stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
            self.lines.append(f"{stamp} {record.getMessage()}")
        except Exception:
            self.handleError(record)

    def publish(self, view) -> None:
        if self.lines:
            view.status = self.lines[-1]
