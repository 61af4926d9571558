"""Logging setup for applications that export receipts.

Output goes to stdout and, unless disabled, to a log file. The level comes
from the LOG_LEVEL setting (default INFO); DEBUG traces font fetches, CFF
conversion and ledger writes. Libraries that log every HTTP request or
font table are held at WARNING so receipt logs stay readable.
"""

import logging
import sys
from pathlib import Path

from roomledger.services.config import get_settings

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# httpx logs each font request at INFO, fontTools each decompiled table
QUIET_LOGGERS = ("httpx", "httpcore", "fontTools")

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_level(level_str: str | None = None) -> int:
    """Resolve a level name to a logging constant.

    Args:
        level_str: Level name; the LOG_LEVEL setting when None

    Returns:
        Logging level constant (default: INFO)
    """
    if level_str is None:
        level_str = get_settings().log_level
    return LOG_LEVEL_MAP.get(level_str.upper(), logging.INFO)


def setup_logging(log_file: str | None = None, level: str | None = None) -> Path | None:
    """
    Configure the root logger for receipt export.

    Args:
        log_file: Log file path; the LOG_FILE setting when None, stdout only when ""
        level: Level name (default: LOG_LEVEL setting)

    Returns:
        Path of the log file, or None when logging to stdout only

    Behavior:
        - Replaces previously installed root handlers
        - Holds QUIET_LOGGERS at WARNING unless DEBUG is requested
    """
    if log_file is None:
        log_file = get_settings().log_file

    log_level = get_log_level(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_path = None
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    quiet_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    return log_path
