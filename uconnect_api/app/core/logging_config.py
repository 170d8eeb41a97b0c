"""
Basic logging configuration for the application.

``setup_logging`` configures the root logger with a console handler
and, when ``LOG_FILE`` is set, a file handler.  A relative log file is
placed under the ``uconnect_api`` directory, next to the default
database file.  Configuration happens at most once per process.
"""

import logging
import os
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_log_path(logfile: str) -> Path:
    """Absolute path of ``logfile``; relative paths resolve like ``DATABASE_URL``."""
    if os.path.isabs(logfile):
        return Path(logfile)
    base_dir = Path(__file__).resolve().parent.parent.parent  # uconnect_api/
    return (base_dir / logfile).resolve()


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure root logger.

    Parameters
    ----------
    level : str
        Logging level name (e.g. ``"DEBUG"``, ``"INFO"``).  Case
        insensitive; unknown names fall back to ``INFO``.
    logfile : Optional[str]
        Path to a file to log messages to.  Missing parent directories
        are created.  If omitted, only the console handler is added.
    """
    root = logging.getLogger()
    if root.handlers:
        # Already configured (tests, repeated ``create_app`` calls).
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if logfile:
        log_path = resolve_log_path(logfile)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Uvicorn's access log repeats every request; keep it at WARNING
    # unless the application itself runs at DEBUG.
    if root.level > logging.DEBUG:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
