"""
Logging configuration for the nixup CLI.

``setup_logging`` runs once per invocation from ``nixup.main``; modules
just do ``logger = logging.getLogger(__name__)``.

Console level precedence:
    --debug / --verbose / --quiet  >  NIXUP_LOG_LEVEL  >  WARNING

``NIXUP_LOG_FILE`` adds a file handler (level from NIXUP_LOG_FILE_LEVEL,
default DEBUG) so background ``fetch`` runs leave a trace. Commands
polled by status bars call ``quiet_console()`` so a stale or corrupt
cache doesn't spam the bar's stderr every few seconds; the file handler
keeps recording.
"""

from __future__ import annotations

import logging
import logging.config
from typing import Any

CONSOLE_HANDLER = "nixup-console"
FILE_HANDLER = "nixup-file"

# Short-lived process: no timestamps on the console
_FMT_CONSOLE = "nixup: %(levelname)s: %(message)s"
_FMT_CONSOLE_DEBUG = "%(levelname).1s %(name)s:%(lineno)d %(message)s"
_FMT_FILE = "%(asctime)s %(process)d %(levelname)s %(name)s: %(message)s"


def parse_level(level: str | int | None, default: int = logging.WARNING) -> int:
    """Level name (any case) or number → numeric level; unknown → ``default``."""
    if isinstance(level, int):
        return level
    if not level:
        return default
    if level.isdigit():
        return int(level)
    return logging.getLevelNamesMapping().get(level.upper(), default)


def setup_logging(
    level: str | int = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers with nixup's console (+ file) setup."""
    console_level = parse_level(level)
    handlers: dict[str, dict[str, Any]] = {
        CONSOLE_HANDLER: {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
            "level": console_level,
            "formatter": "debug" if console_level <= logging.DEBUG else "console",
        },
    }
    root_level = console_level

    if log_file:
        file_level = parse_level(log_file_level, default=logging.DEBUG)
        handlers[FILE_HANDLER] = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "encoding": "utf-8",
            "level": file_level,
            "formatter": "file",
        }
        root_level = min(root_level, file_level)

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": _FMT_CONSOLE},
            "debug": {"format": _FMT_CONSOLE_DEBUG},
            "file": {"format": _FMT_FILE, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": handlers,
        "root": {"level": root_level, "handlers": list(handlers)},
    })


def quiet_console(threshold: int = logging.ERROR) -> None:
    """Raise the console handler to at least ``threshold``."""
    for handler in logging.getLogger().handlers:
        if handler.get_name() == CONSOLE_HANDLER and handler.level < threshold:
            handler.setLevel(threshold)
