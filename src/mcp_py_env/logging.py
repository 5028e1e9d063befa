"""Logging configuration and JSON log formatting."""

import json
import logging
import sys
from typing import Any, Dict, Optional

PACKAGE_LOGGER = "mcp_py_env"


class ColorCodes:
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    BOLD = "\033[1m"


LEVEL_COLORS = {
    "DEBUG": ColorCodes.BLUE,
    "INFO": ColorCodes.GREEN,
    "WARNING": ColorCodes.YELLOW,
    "ERROR": ColorCodes.RED + ColorCodes.BOLD,
    "CRITICAL": ColorCodes.MAGENTA + ColorCodes.BOLD,
}


class JsonFormatter(logging.Formatter):
    """Format log records as color-coded JSON.

    Records logged with a dict message (``logger.debug({"event": ...})``) are
    emitted with the dict under ``data`` and its ``event`` key as ``msg``.
    """

    def __init__(self, colors: bool = True):
        super().__init__()
        self.colors = colors

    def format(self, record: logging.LogRecord) -> str:
        output = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
        }

        if isinstance(record.msg, dict):
            output["msg"] = record.msg.get("event", "")
            output["data"] = {k: v for k, v in record.msg.items() if k != "event"}
        else:
            output["msg"] = record.getMessage()

        if hasattr(record, "data"):
            output["data"] = record.data

        if record.exc_info:
            output["exc"] = self.formatException(record.exc_info)

        json_str = json.dumps(output, default=str)
        if not self.colors:
            return json_str
        color = LEVEL_COLORS.get(record.levelname, "")
        return f"{color}{json_str}{ColorCodes.RESET}"


def configure_logging(level: str = "INFO") -> None:
    """Set up package logging with JSON formatting on stderr."""
    app_logger = logging.getLogger(PACKAGE_LOGGER)

    # Only configure if not already configured
    if not app_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter(colors=sys.stderr.isatty()))
        app_logger.addHandler(handler)
        app_logger.propagate = False

    app_logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance namespaced under the package logger."""
    if name == PACKAGE_LOGGER or name.startswith(f"{PACKAGE_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def log_with_data(
    logger: logging.Logger, level: int, msg: str, data: Optional[Dict[str, Any]] = None
) -> None:
    """Log a message with optional structured data."""
    if data:
        logger.log(level, msg, extra={"data": data})
    else:
        logger.log(level, msg)
