"""
Centralized logging configuration for ppgspec.

Library modules only create module-level loggers; handlers are installed
here, once, by the CLI. File logging is controlled by the [logging] section
of the config file:

    [logging]
    enabled = true
    level = "DEBUG"
    max_size_mb = 10
    backup_count = 5
"""

import logging
import logging.config
import os
import sys

from pathlib import Path
from typing import Any

from ppgspec.constants import (
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_FILE,
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_logging_configured = False


def get_log_dir() -> Path:
    """Directory holding ppgspec.log and its rotated backups (mode 0700)."""
    log_dir = DEFAULT_LOG_DIR
    os.makedirs(log_dir, mode=0o700, exist_ok=True)
    return log_dir


def get_log_path() -> Path:
    """Path to the active log file (ppgspec.log)."""
    return get_log_dir() / DEFAULT_LOG_FILE


def _get_user_logging_config() -> dict[str, Any]:
    """Return the [logging] config section, or {} if absent or not a table."""
    # Deferred: ppgspec.config pulls in the analysis types
    from ppgspec.config import load_config

    section = load_config().get("logging", {})
    return section if isinstance(section, dict) else {}


def _file_handler_config(settings: dict[str, Any]) -> dict[str, Any]:
    """RotatingFileHandler settings for the log file."""
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": str(settings.get("level", "DEBUG")).upper(),
        "formatter": "file",
        "filename": str(get_log_path()),
        "maxBytes": int(settings.get("max_size_mb", 10)) * 1024 * 1024,
        "backupCount": int(settings.get("backup_count", DEFAULT_LOG_BACKUP_COUNT)),
        "encoding": "utf-8",
    }


def _build_logging_config(
    verbose: bool = False,
    console_format: str | None = None,
) -> dict[str, Any]:
    """
    dictConfig mapping for the CLI.

    The root logger collects everything at DEBUG. The stderr console shows
    INFO and up (DEBUG with verbose), so per-event window failures and
    per-epoch progress stay out of the terminal unless asked for. The file
    handler is added unless [logging] enabled = false.
    """
    settings = _get_user_logging_config()

    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": console_format or LOG_FORMAT},
            "file": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG" if verbose else "INFO",
                "formatter": "console",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {
            "level": "DEBUG",
            "handlers": ["console"],
        },
    }

    if settings.get("enabled", True):
        config["handlers"]["file"] = _file_handler_config(settings)
        config["root"]["handlers"].append("file")

    return config


def setup_logging(
    *,
    verbose: bool = False,
    console_format: str | None = None,
) -> None:
    """
    Install ppgspec's console and file handlers.

    Called from the CLI group callback; library use leaves logging to the
    host application. Only the first call has an effect. RuntimeWarnings
    from numpy (empty-window means, log of zero power) are routed through
    logging so they land in the log file next to the analysis messages.

    Args:
        verbose: Show DEBUG messages on the console
        console_format: Console format string; defaults to the file format
    """
    global _logging_configured

    if _logging_configured:
        return

    try:
        config = _build_logging_config(verbose=verbose, console_format=console_format)
        logging.config.dictConfig(config)
    except (OSError, ValueError) as e:
        sys.stderr.write(f"WARNING: Failed to configure logging: {e}\n")
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format=console_format or "%(levelname)s: %(message)s",
        )

    logging.captureWarnings(True)
    _logging_configured = True
