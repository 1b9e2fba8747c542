"""
orderdesk logger: console + rotating JSON file.

Usage:
    from orderdesk.core.logger import configure, LoggerConfig

    configure(LoggerConfig(level="DEBUG", log_dir="/var/log/orderdesk"))
    configure()  # or from env: LOG_LEVEL, LOG_DIR, LOG_FILE_BASENAME, ...

Modules log through ``logging.getLogger(__name__)``; order context goes in
``extra=`` and lands in the JSON file:

    logger.info("Status changed", extra={"order_id": str(order.id), "status": "Review"})
"""
from orderdesk.core.logger.config import LoggerConfig
from orderdesk.core.logger.formatters import JsonFormatter, PlainConsoleFormatter
from orderdesk.core.logger.setup import (
    build_console_handler,
    build_rotating_file_handler,
    configure,
)

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "configure",
    "build_rotating_file_handler",
    "build_console_handler",
]
