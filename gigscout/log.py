"""Logging setup shared by the monitor, CLI and dashboard."""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

_DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_configured = False


def get_logger(name: str) -> logging.Logger:
    """Return a named logger; installs the root handlers on first call."""
    global _configured
    if not _configured:
        configure_logging()
    return logging.getLogger(name)


def configure_logging(level: str | None = None) -> None:
    """Attach console + daily file handlers to the root logger.

    Safe to call more than once: handlers are only added when the root
    logger has none, but an explicit *level* is always applied.
    """
    global _configured
    _configured = True

    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    resolved = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(resolved)

    if root.handlers:
        for handler in root.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                handler.setLevel(resolved)
        return

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(resolved)
    console.setFormatter(formatter)
    root.addHandler(console)

    log_dir = Path(os.environ.get("GIGSCOUT_LOG_DIR") or _DEFAULT_LOG_DIR)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"gigscout_{datetime.now().strftime('%Y-%m-%d')}.log"
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        root.addHandler(fh)
    except OSError:
        # Read-only checkout: console logging is enough.
        pass
