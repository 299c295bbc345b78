# hotprices/config/logging_config.py

"""Per-run timestamped logging configuration for hotprices.

Every invocation writes to its own file in ``logs/``, named after the
launch time (e.g. ``logs/run_20240101_030000.log``). The ``hotprices``
logger owns the handlers; module loggers such as ``hotprices.coles`` or
``hotprices.merge`` propagate into it, so a scrape and the merge that
follows it read back as one run.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from hotprices.config.settings import Settings

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Transport libraries that log every request at DEBUG/INFO
_QUIET_LOGGERS = ("urllib3", "cloudscraper", "curl_cffi")


def _handler(
    handler: logging.Handler, level: int, fmt: str
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_DATE_FORMAT))
    return handler


def setup_logging(debug: bool = False) -> Path:
    """Attach the run's file and console handlers to ``hotprices``.

    Args:
        debug: Lower the console threshold from WARNING to DEBUG.

    Returns:
        Path of the log file for this run. Calling again in the same
        process keeps the existing handlers.
    """
    logs_dir = Path(Settings.LOGS_DIR)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"run_{datetime.now():%Y%m%d_%H%M%S}.log"

    project_logger = logging.getLogger("hotprices")
    project_logger.setLevel(logging.DEBUG)
    if project_logger.handlers:
        return log_file

    project_logger.addHandler(
        _handler(
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.DEBUG,
            _FILE_FORMAT,
        )
    )
    project_logger.addHandler(
        _handler(
            logging.StreamHandler(sys.stderr),
            logging.DEBUG if debug else logging.WARNING,
            _CONSOLE_FORMAT,
        )
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    project_logger.info("Logging initialised, log file: %s", log_file)
    return log_file
