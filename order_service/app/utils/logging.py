"""
Order Service logging: one JSON line per record on stdout, plus rotating
files when file logging is enabled.
"""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List

LOG_DIR = Path(__file__).parent.parent / "logs"
MAX_LOG_BYTES = 100 * 1024 * 1024

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


class OrderJSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "service": "order_service",
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_FIELDS
        )
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def _rotating_handler(path: Path, level: int) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=5)
    handler.setLevel(level)
    return handler


def setup_order_logging(
    service_name: str = "order_service",
    log_level: str = "INFO",
    enable_file_logging: bool = False,
) -> logging.Logger:
    """Configure and return the named logger, replacing any earlier handlers."""
    level = getattr(logging, log_level.upper())
    logger = logging.getLogger(service_name)
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    handlers: List[logging.Handler] = [console_handler]
    if enable_file_logging:
        LOG_DIR.mkdir(exist_ok=True)
        handlers.append(_rotating_handler(LOG_DIR / f"{service_name}.log", level))
        handlers.append(
            _rotating_handler(LOG_DIR / f"{service_name}_errors.log", logging.ERROR)
        )

    formatter = OrderJSONFormatter()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
