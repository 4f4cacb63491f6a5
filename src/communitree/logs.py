"""Structured logging sink on top of the stdlib logging module."""

from __future__ import annotations

import enum
import logging
from typing import Any

from communitree.config import LoggingConfig

_ROOT = "communitree"


class LogCategory(str, enum.Enum):
    STORAGE = "storage"
    CACHE = "cache"
    CONSISTENCY = "consistency"
    TRUST = "trust"
    STARTUP = "startup"
    GENERAL = "general"


_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}


def _level_no(level: int | str) -> int:
    if isinstance(level, int):
        return level
    return _LEVELS.get(str(level).lower(), logging.INFO)


def log_event(
    level: int | str,
    category: LogCategory | str,
    message: str,
    context: dict[str, Any] | None = None,
) -> None:
    """Emit one structured record under ``communitree.<category>``.

    Never raises: a broken handler or an unformattable context must not
    reach the caller.
    """
    try:
        cat = category.value if isinstance(category, LogCategory) else str(category)
        logger = logging.getLogger(f"{_ROOT}.{cat}")
        extra = {"category": cat, "context": dict(context or {})}
        if context:
            details = ", ".join(f"{k}={v!r}" for k, v in context.items())
            logger.log(_level_no(level), "%s (%s)", message, details, extra=extra)
        else:
            logger.log(_level_no(level), "%s", message, extra=extra)
    except Exception:  # noqa: BLE001
        pass


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Attach a stream handler to the package logger (CLI entry point)."""
    config = config or LoggingConfig()
    root = logging.getLogger(_ROOT)
    root.setLevel(_level_no(config.level))
    if not any(getattr(h, "_communitree", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(config.format))
        handler._communitree = True  # type: ignore[attr-defined]
        root.addHandler(handler)
