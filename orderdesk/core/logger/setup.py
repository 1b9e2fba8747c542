"""
Logger setup: attach console and rotating JSON file handlers from config.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from orderdesk.core.logger.config import LoggerConfig
from orderdesk.core.logger.formatters import JsonFormatter, PlainConsoleFormatter


def _level(config: LoggerConfig) -> int:
    return getattr(logging, config.level.upper(), logging.INFO)


def configure(config: Optional[LoggerConfig] = None) -> None:
    """
    Configure the orderdesk root logger. Uses LoggerConfig.from_env() when
    config is None. Call once at application startup.
    """
    if config is None:
        config = LoggerConfig.from_env()

    root = logging.getLogger(config.root_name or "orderdesk")
    root.setLevel(_level(config))

    # Reconfiguring (tests, reload) must not stack handlers
    root.handlers.clear()

    if config.console:
        root.addHandler(build_console_handler(config.level))

    if config.file_rotating and config.log_dir and config.log_dir.strip():
        try:
            root.addHandler(
                build_rotating_file_handler(
                    config.log_dir,
                    basename=config.log_file_basename,
                    max_bytes=config.max_bytes,
                    backup_count=config.backup_count,
                    level=config.level,
                )
            )
        except OSError:
            root.warning("Could not create log dir %s, skipping file handler", config.log_dir)

    root.propagate = False


def build_rotating_file_handler(
    log_dir: str,
    basename: str = "orderdesk",
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 5,
    level: str = "INFO",
) -> RotatingFileHandler:
    """Rotating file handler with the JSON formatter."""
    os.makedirs(log_dir, exist_ok=True)
    path = os.path.join(log_dir, f"{basename}.log")
    handler = RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler.setFormatter(JsonFormatter())
    return handler


def build_console_handler(
    level: str = "INFO",
    fmt: Optional[str] = None,
) -> logging.StreamHandler:
    """Console handler with the plain formatter."""
    handler = logging.StreamHandler()
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler.setFormatter(PlainConsoleFormatter(fmt=fmt))
    return handler
