"""
Logging configuration

One coloured console stream plus two rotating files under LOG_DIR:
``wms.log`` for INFO and above, ``wms-error.log`` for errors only. Both roll
over at midnight and keep LOG_RETENTION_DAYS old files.
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "apscheduler", "passlib")


class ColoredFormatter(logging.Formatter):
    """Level names in colour, console only"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # The record is shared with the file handlers
        colored = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, "")
        colored.levelname = f"{color}{record.levelname}{self.RESET}" if color else record.levelname
        return super().format(colored)


def _rotating_file(path: Path, level: int, retention_days: int) -> logging.Handler:
    handler = TimedRotatingFileHandler(
        path, when="midnight", backupCount=retention_days, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = None, retention_days: int = 14) -> None:
    """
    Configure the root logger; safe to call more than once.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_dir: directory of the log files, ``logs`` when omitted
        retention_days: rotated files kept per log
    """
    directory = Path(log_dir or "logs")
    directory.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    root.addHandler(console)
    root.addHandler(_rotating_file(directory / "wms.log", logging.INFO, retention_days))
    root.addHandler(_rotating_file(directory / "wms-error.log", logging.ERROR, retention_days))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging to {directory.resolve()} at {log_level.upper()}")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
