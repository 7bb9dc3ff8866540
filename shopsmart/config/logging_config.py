# shopsmart/config/logging_config.py

"""Run log for the shopsmart CLI and services.

One process writes one file, ``logs/run_YYYYmmdd_HHMMSS.log``, which
receives every ``shopsmart.*`` record at DEBUG.  Operators watching the
terminal only see WARNING and above on stderr: rate limits, exhausted
retries, cache fallbacks and lost cache writes.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from shopsmart.config.settings import Settings

_ROOT = "shopsmart"

_FILE_FORMAT = (
    "%(asctime)s.%(msecs)03d %(levelname)-8s [%(name)s] "
    "%(funcName)s:%(lineno)d %(message)s"
)
_CONSOLE_FORMAT = "%(levelname)s [%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _run_log_path(logger: logging.Logger) -> Path | None:
    """Path of the run file already attached to ``logger``, if any."""
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)
    return None


def _file_handler(path: Path) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.WARNING)
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    return handler


def setup_logging(logs_dir: Path | None = None) -> Path:
    """Attach the run file and the stderr handler to ``shopsmart``.

    Safe to call more than once: later calls add nothing and return
    the file opened by the first call.

    Returns:
        Path of this run's log file.
    """
    logger = logging.getLogger(_ROOT)
    logger.setLevel(logging.DEBUG)

    existing = _run_log_path(logger)
    if existing is not None:
        return existing

    directory = logs_dir or Settings.LOGS_DIR
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / datetime.now().strftime("run_%Y%m%d_%H%M%S.log")

    logger.addHandler(_file_handler(log_file))
    logger.addHandler(_console_handler())
    logger.debug("Run log opened at %s", log_file)
    return log_file
