"""Logging initialization helpers."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from scribeflow.config import LoggingSettings, Settings

# httpx logs one INFO line per request; a segmented run uploads one file per segment.
_CHATTY_LOGGERS = ("httpx", "httpcore")


def _resolve_level(name: str | int | None, default: int = logging.INFO) -> int:
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name or "").strip().upper())
    return level if isinstance(level, int) else default


def _build_handlers(cfg: LoggingSettings, log_dir: str, level: int) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=str(cfg.format), datefmt=str(cfg.datefmt))
    handlers: list[logging.Handler] = []
    if cfg.console:
        handlers.append(logging.StreamHandler())
    if cfg.file:
        file_path = Path(str(cfg.file))
        if not file_path.is_absolute():
            file_path = Path(log_dir) / file_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                file_path,
                maxBytes=int(cfg.max_bytes),
                backupCount=int(cfg.backup_count),
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(settings: Settings, *, level: str | int | None = None) -> logging.Logger:
    """Configure the `scribeflow` logger tree from Settings.

    `level` overrides LOG_LEVEL (the CLI uses it for --verbose). Framework
    loggers keep their own handlers; HTTP client request lines are raised to
    WARNING unless running at DEBUG. Calling this twice is a no-op.
    """
    logger = logging.getLogger("scribeflow")
    if getattr(logger, "_scribeflow_configured", False):
        return logger

    resolved = _resolve_level(level if level is not None else settings.logging.level)
    logger.setLevel(resolved)
    logger.handlers = _build_handlers(settings.logging, settings.log_dir, resolved)
    logger.propagate = False

    if resolved > logging.DEBUG:
        for name in _CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    setattr(logger, "_scribeflow_configured", True)
    return logger
