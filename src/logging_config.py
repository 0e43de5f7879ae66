"""Configure structured logging for the checkout flow.

Log records are written as one JSON object per line to the console
(stderr, so they never interleave with the receipt on stdout) and to a
rotating file.  Each record carries timestamp, level, module and
message, plus any fields passed as ``extra={"extra": {...}}``.
"""

import json
import logging
import logging.handlers
import os
from datetime import datetime, UTC

LOG_FILE_NAME = "checkout.log"


class JsonFormatter(logging.Formatter):
    """Format log records as JSON strings."""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "module": record.module,
            "message": record.getMessage(),
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            # Merge into top level rather than nesting under "extra"
            log_record.update(extra)
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def configure_logging(log_dir: str = "logs", level: int = logging.INFO) -> None:
    """Configure the root logger with JSON console and rotating file handlers.

    Args:
        log_dir: Directory where log files are written.  Created if it
            does not exist.
        level: Logging level for the root logger and both handlers.
    """
    os.makedirs(log_dir, exist_ok=True)
    logger = logging.getLogger()
    logger.setLevel(level)
    # Replace handlers from basicConfig or an earlier call
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    formatter = JsonFormatter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    file_handler = logging.handlers.RotatingFileHandler(
        filename=os.path.join(log_dir, LOG_FILE_NAME),
        maxBytes=5 * 1024 * 1024,  # 5 MB per log file
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)
    logger.addHandler(file_handler)
