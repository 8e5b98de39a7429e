# price_monitor/config/logging_config.py

"""Per-run timestamped logging configuration for price_monitor.

Each launch creates a dedicated log file inside ``logs/`` named with the
launch timestamp (e.g. ``logs/run_20260214_153045.log``).  All
``price_monitor.*`` loggers route through this file handler, so a whole
scrape sweep (every product attempt, every retry) lands in one file.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from price_monitor.config.settings import Settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# cloudscraper drags in requests/urllib3, which log every retry at DEBUG
_NOISY_LIBRARIES = ("urllib3", "charset_normalizer", "cloudscraper")


def _existing_log_file(root_logger: logging.Logger) -> Path | None:
    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)
    return None


def setup_logging(
    logs_dir: Path | None = None,
    console_level: int = logging.WARNING,
) -> Path:
    """Initialise the root ``price_monitor`` logger for the current run.

    Args:
        logs_dir: Directory for the log file. Defaults to
            ``Settings.LOGS_DIR``.
        console_level: Threshold for the stderr handler; the file
            always records DEBUG.

    Returns:
        The log file of this run.  When logging is already configured
        the existing file is returned and no handler is added.
    """
    root_logger = logging.getLogger("price_monitor")
    root_logger.setLevel(logging.DEBUG)

    existing = _existing_log_file(root_logger)
    if existing is not None:
        return existing

    target_dir = logs_dir or Settings.LOGS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = target_dir / f"run_{timestamp}.log"

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info("Logging initialised, log file: %s", log_file)
    return log_file
