"""Tagged console logging for the sound sensing engine.

Every message carries a level and a subsystem tag ("Engine", "Capture",
"Config", ...) and optional key=value fields, e.g.::

    [INFO][Engine] Session started | sample_rate=48000 fft_size=2048
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import numpy as np

LOGGER_NAME = "soundsensing"
_FORMAT = "[%(levelname)s][%(tag)s] %(message)s"

_logger = logging.getLogger(LOGGER_NAME)
if not _logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    _logger.addHandler(handler)
    _logger.setLevel(logging.INFO)


def _format_value(value: Any) -> str:
    # Keep arrays and floats short enough for a single console line
    if isinstance(value, np.ndarray):
        return "[" + ",".join(_format_value(v) for v in value.tolist()) + "]"
    if isinstance(value, (float, np.floating)):
        return f"{float(value):.4g}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_format_value(v) for v in value) + "]"
    return str(value)


def _level_value(level: Optional[str]) -> int:
    """Level name to logging constant; unknown or empty names mean INFO."""
    value = logging.getLevelName((level or "INFO").upper())
    return value if isinstance(value, int) else logging.INFO


class _EventAdapter(logging.LoggerAdapter):
    """Moves ``tag`` into the record and renders ``fields`` after the message."""

    def process(self, msg: Any, kwargs: dict[str, Any]):
        extra = kwargs.setdefault("extra", {})
        extra["tag"] = kwargs.pop("tag", "Engine")
        fields = kwargs.pop("fields", None)
        if fields:
            msg = f"{msg} | " + " ".join(f"{k}={_format_value(v)}" for k, v in fields.items())
        return msg, kwargs


_events = _EventAdapter(_logger, {})


def log_event(level: str, tag: str, message: str, **fields: Any) -> None:
    """Log ``message`` under ``tag``; keyword fields are appended as key=value."""
    _events.log(_level_value(level), message, tag=tag, fields=fields)


def set_log_level(level: Optional[str]) -> None:
    """Set global log level (DEBUG/INFO/WARNING/ERROR)."""
    _logger.setLevel(_level_value(level))


def get_log_level() -> str:
    return logging.getLevelName(_logger.level)


def add_log_file(path: Path) -> logging.Handler:
    """Mirror tagged output into a file (used by the CLI's --log-file)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter("%(asctime)s " + _FORMAT))
    _logger.addHandler(file_handler)
    return file_handler


def remove_log_file(file_handler: logging.Handler) -> None:
    _logger.removeHandler(file_handler)
    file_handler.close()
