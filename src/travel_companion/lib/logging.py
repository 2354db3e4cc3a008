"""Logging configuration for travel-companion.

Everything logs under the ``travel_companion`` logger tree. The service
and the CLI write to the console and to a timestamped file in the data
directory. Failures of the background sync and of API calls go through
``travel_companion.sync`` and ``travel_companion.client``; those two stay
silent unless the client settings enable logging (or dev mode).
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from travel_companion.config import Config

# Module logger
logger = logging.getLogger("travel_companion")

SYNC_LOGGERS = ("travel_companion.sync", "travel_companion.client")

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def sync_log_level(config: "Config | None") -> int:
    """Level for the sync and API client loggers.

    Off (CRITICAL) unless ``enable_logging`` or ``dev_mode`` is set; dev
    mode also lets request-level debug messages through.
    """
    if config is None or not config.client.sync_logging:
        return logging.CRITICAL
    return logging.DEBUG if config.client.dev_mode else logging.INFO


def _reset_handlers() -> None:
    urllib3_logger = logging.getLogger("urllib3")
    for handler in list(logger.handlers):
        urllib3_logger.removeHandler(handler)
        handler.close()
    logger.handlers.clear()


def setup_logging(
    config: "Config | None" = None,
    log_dir: Path | None = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    quiet: bool = False,
) -> logging.Logger:
    """Set up logging for travel-companion.

    Creates handlers for:
    - Console output at ``console_level`` (DEBUG in dev mode, WARNING if quiet)
    - File output at ``file_level`` in the logs/ directory

    and applies the client logging switch to the sync and API client loggers.

    Args:
        config: Application config (log directory and client logging switches).
        log_dir: Explicit log directory path.
        console_level: Log level for console output.
        file_level: Log level for file output.
        quiet: If True, console only shows warnings and errors.

    Returns:
        Configured logger.
    """
    _reset_handlers()
    logger.setLevel(logging.DEBUG)

    dev_mode = config is not None and config.client.dev_mode
    if dev_mode:
        console_level = min(console_level, logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING if quiet else console_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_dir is None:
        log_dir = config.data.directory / "logs" if config is not None else Path("logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"travel-companion-{datetime.now():%Y%m%dT%H%M%S}.log"

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(file_handler)

    level = sync_log_level(config)
    for name in SYNC_LOGGERS:
        logging.getLogger(name).setLevel(level)

    # Connection-level details from requests go to the file only
    urllib3_logger = logging.getLogger("urllib3")
    urllib3_logger.setLevel(logging.DEBUG if dev_mode else logging.WARNING)
    urllib3_logger.addHandler(file_handler)

    logger.debug(
        "Logging initialized. Log file: %s, sync logging %s",
        log_file,
        "on" if level < logging.CRITICAL else "off",
    )
    return logger
