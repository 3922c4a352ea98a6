# catalog_dedup/config/logging_config.py

"""Per-run timestamped logging configuration for catalog_dedup.

Every invocation (CLI sweep, duplicate check, dashboard session) writes
to its own file inside ``logs/``, named with the launch timestamp
(e.g. ``logs/run_20261019_093015.log``).  All ``catalog_dedup.*``
loggers propagate to the project root logger, so pair scores, merge
change logs and deletion audit lines from every module land in the same
per-run file.

The console only receives WARNING and above unless ``verbose`` is set,
which keeps stdout/stderr readable during large batch sweeps.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from catalog_dedup.config.settings import Settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(funcName)s:%(lineno)d | "
    "%(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "catalog_dedup"


def setup_logging(
    logs_dir: Path | None = None,
    verbose: bool = False,
) -> Path:
    """Initialise the root ``catalog_dedup`` logger for the current run.

    Args:
        logs_dir: Directory for the run log. Defaults to ``Settings.LOGS_DIR``.
        verbose: Lower the console handler to INFO.

    Returns:
        The :class:`~pathlib.Path` to the log file created for this run.
    """
    target_dir: Path = logs_dir or Settings.LOGS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = target_dir / f"run_{timestamp}.log"

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)

    # Repeated calls (tests, dashboard reloads) keep the first handlers
    if root_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    root_logger.info("Logging initialised, log file: %s", log_file)

    return log_file
