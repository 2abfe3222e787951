"""
Logging setup.

Environment variables:
- LOG_LEVEL: root level (default: INFO)
- LOG_FORMAT: structured | simple | json (default: structured)
- LOG_LEVEL_COORDINATOR, LOG_LEVEL_STREAM_PARSER, LOG_LEVEL_AI_CLIENTS,
  LOG_LEVEL_PERSISTENCE: per-module overrides

Structured output:
    2025-01-12 10:31:02 | INFO     | coordinator     | Submitted dQw4w9WgXcQ (generation 1)
"""

import json
import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vispark.config import Settings


# Settings field suffix -> logger name
MODULE_LOGGERS = {
    "coordinator": "vispark.services.coordinator",
    "stream_parser": "vispark.services.stream_parser",
    "ai_clients": "vispark.services.ai_clients",
    "persistence": "vispark.services.persistence",
}

# Longest prefix first
_SHORT_PREFIXES = (
    ("vispark.services.ai_clients.", "clients."),
    ("vispark.services.", ""),
    ("vispark.api.", "api."),
    ("vispark.", ""),
)

QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def short_logger_name(name: str) -> str:
    """Strip the package prefix from a logger name."""
    for prefix, replacement in _SHORT_PREFIXES:
        if name.startswith(prefix):
            return replacement + name[len(prefix):]
    return name


class StructuredFormatter(logging.Formatter):
    """
    Pipe-separated formatter: timestamp | level | logger | message
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        line = (
            f"{timestamp} | {record.levelname:8} | "
            f"{short_logger_name(record.name):15} | {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log collectors."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def build_formatter(log_format: str) -> logging.Formatter:
    """Formatter for a LOG_FORMAT value (unknown values fall back to simple)."""
    if log_format == "structured":
        return StructuredFormatter()
    if log_format == "json":
        return JsonFormatter()
    return logging.Formatter(SIMPLE_FORMAT)


def setup_logging(settings: "Settings") -> None:
    """
    Configure the root logger from settings.

    Replaces existing root handlers with a single stdout handler.

    Args:
        settings: Application settings with log configuration
    """
    root_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(settings.log_format))

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    _apply_module_levels(settings, root_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _apply_module_levels(settings: "Settings", default_level: int) -> None:
    for module_key, logger_name in MODULE_LOGGERS.items():
        level_name = getattr(settings, f"log_level_{module_key}", None)
        if level_name:
            level = getattr(logging, level_name.upper(), default_level)
            logging.getLogger(logger_name).setLevel(level)
