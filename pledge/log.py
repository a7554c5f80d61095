"""
Logging helpers for pledge.

- Modules get their logger with `get_logger(__name__)`.
- Applications may call `setup_logging(...)` once at startup; the library
  itself never configures handlers on import.
"""
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional, Union

# Avoid adding handlers twice
_CONFIGURED = False

FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"


def setup_logging(
    level: Union[str, int, None] = None,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = 5_000_000,
    backup_count: int = 5,
) -> None:
    """
    Attach a console handler (and optionally a rotating file handler) to
    the `pledge` logger.

    When `level` is None, the PLEDGE_LOG_LEVEL environment variable is
    used, falling back to WARNING.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    if level is None:
        level = os.environ.get("PLEDGE_LOG_LEVEL", "WARNING")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger("pledge")
    logger.setLevel(level)
    formatter = logging.Formatter(fmt=FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        log_path = Path(os.path.expanduser(str(log_file))).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    _CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger by name, defaulting to the package logger."""
    return logging.getLogger(name or "pledge")
