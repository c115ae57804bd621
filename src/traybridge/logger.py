"""Logging configuration for the traybridge command line."""

import datetime
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

DEFAULT_LOG_FILE = "~/.config/traybridge/logs/traybridge.log"
MAX_LOG_FILE_BYTES = 5 * 1024 * 1024  # 5 MiB per rotated file.
LOG_BACKUP_COUNT = 3
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_ROLLED_LOG_PATHS: set[Path] = set()


def _archive_existing_log_file(log_path: Path) -> None:
    """Archive an existing log file to a timestamp-prefixed name once per process."""
    resolved_path = log_path.resolve()
    if resolved_path in _ROLLED_LOG_PATHS:
        return
    if not log_path.exists():
        _ROLLED_LOG_PATHS.add(resolved_path)
        return
    timestamp = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    archived_path = log_path.parent / f"{timestamp}_{log_path.name}"
    suffix = 1
    while archived_path.exists():
        archived_path = log_path.parent / f"{timestamp}_{suffix}_{log_path.name}"
        suffix += 1
    log_path.rename(archived_path)
    _ROLLED_LOG_PATHS.add(resolved_path)


def setup_logging(
    level_name: str = "INFO", log_file: Optional[Union[str, Path]] = None
) -> Optional[Path]:
    """Send ``traybridge`` records to a rotating file; returns the file path.

    Without ``log_file`` nothing is configured and the package stays silent.
    """
    if not log_file:
        return None
    level = getattr(logging, level_name.upper(), logging.INFO)
    log_path = Path(log_file).expanduser()

    log_path.parent.mkdir(parents=True, exist_ok=True)
    _archive_existing_log_file(log_path)

    handler = RotatingFileHandler(
        log_path,
        mode="a",
        maxBytes=MAX_LOG_FILE_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    package_logger = logging.getLogger("traybridge")
    package_logger.setLevel(level)
    # Remove existing file handlers to avoid duplicates if re-initialized
    for existing_handler in list(package_logger.handlers):
        if isinstance(existing_handler, logging.FileHandler):
            package_logger.removeHandler(existing_handler)
            existing_handler.close()
    package_logger.addHandler(handler)
    return log_path
