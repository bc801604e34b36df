"""Logging helpers shared by the CLI and the resolution pipeline.

All log output goes to stderr; stdout is reserved for the JSON response.
"""
from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional

from opamextract.constants import Constants


class _ContextFormatter(logging.Formatter):
    """Append ``extra_context`` fields to the formatted message."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "context", None)
        if context:
            fields = " ".join(f"{key}={value}" for key, value in context.items())
            message = f"{message} ({fields})"
        return message


def configure_logging(level: Optional[str] = None) -> None:
    """Install a stderr handler on the root logger.

    The level comes from ``level``, then ``OPAMEXTRACT_LOG_LEVEL``, then INFO.
    Calling it again replaces the handler installed by a previous call.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_opamextract", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_ContextFormatter(Constants.LOG_FORMAT))
    handler._opamextract = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))


def add_file_handler(path: str) -> logging.Handler:
    """Mirror log output into ``path``."""
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(_ContextFormatter(Constants.LOG_FILE_FORMAT))
    logging.getLogger().addHandler(handler)
    return handler


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` argument for structured log records."""
    return {"context": {key: value for key, value in fields.items() if value is not None}}


def is_debug_enabled(logger: logging.Logger) -> bool:
    return logger.isEnabledFor(logging.DEBUG)


class Timer:
    """Context manager measuring elapsed wall time."""

    def __init__(self):
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc_info) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
