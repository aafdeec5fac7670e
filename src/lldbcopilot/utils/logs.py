"""Opt-in file logging for the copilot.

Logging stays silent unless LLDB_COPILOT_LOG is set: ``1``/``true`` writes to
``<home>/copilot.log``, any other value is used as the log file path.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

LOG_ENV_VAR = "LLDB_COPILOT_LOG"
LOGGER_NAME = "lldbcopilot"

_handler: Optional[logging.Handler] = None


def _log_path() -> Optional[Path]:
    raw = (os.environ.get(LOG_ENV_VAR) or "").strip()
    if not raw or raw.lower() in {"0", "false", "no", "off"}:
        return None
    if raw.lower() in {"1", "true", "yes", "on"}:
        from lldbcopilot.core.settings import settings_dir

        return settings_dir() / "copilot.log"
    return Path(raw).expanduser()


def configure_logging() -> Optional[Path]:
    """Attach a file handler to the package logger when enabled.

    Safe to call more than once; returns the log path in use, if any.
    """
    global _handler
    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        return Path(getattr(_handler, "baseFilename", ""))
    path = _log_path()
    if path is None:
        if not logger.handlers:
            logger.addHandler(logging.NullHandler())
        return None
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    _handler = handler
    return path
