"""Logging setup for Bindery.

One rotating log file (``bindery.log`` in DATA_DIR, 10MB x 5) that keeps
DEBUG detail for post-mortems of failed passes, plus a Rich console handler
at the requested level. ``BINDERY_LOG_LEVEL`` overrides the console level.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

LOG_FILE_NAME = "bindery.log"
LOG_LEVEL_ENV = "BINDERY_LOG_LEVEL"

_logging_initialized = False


def _default_log_dir() -> Path:
    # Mirrors config.DATA_DIR; config imports this module
    env = os.environ.get("DATA_DIR")
    if env:
        return Path(env)
    return Path(__file__).resolve().parents[1]


def _resolve_level(log_level: str) -> int:
    name = os.environ.get(LOG_LEVEL_ENV) or log_level
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None) -> None:
    """Install the file and console handlers on the root logger, once.

    Args:
        log_level: Console level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for bindery.log, DATA_DIR when omitted
    """
    global _logging_initialized

    if _logging_initialized:
        return

    log_dir = log_dir or _default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(levelname)-8s - %(threadName)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    console = Console(
        theme=Theme(
            {
                "logging.level.info": "bold cyan",
                "logging.level.warning": "bold yellow",
            }
        )
    )
    console_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=False,
        markup=False,
    )
    console_handler.setLevel(_resolve_level(log_level))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    for noisy in ("watchdog", "sqlalchemy.engine", "rarfile"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    # Alembic installs its own handlers from alembic.ini; route it through ours
    alembic_logger = logging.getLogger("alembic")
    alembic_logger.handlers = []
    alembic_logger.propagate = True

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """Return the module logger for ``name`` (usually ``__name__``)."""
    return logging.getLogger(name)
