# phaseflow/logging_config.py
"""
Logging configuration.

The MCP server uses the stdio transport, so ALL of its logging must go to
stderr as JSON lines. The CLI logs human-readable lines to stderr so that
--json output on stdout stays machine-parseable.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

VERBOSITY_LEVELS = {
    "quiet": logging.ERROR,
    "normal": logging.WARNING,
    "verbose": logging.INFO,
}


class JsonFormatter(logging.Formatter):
    """Formats log records as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.exc_info:
            log_data["exc"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def configure_logging(level: int = logging.INFO) -> None:
    """
    Configure JSON logging to stderr only.

    MUST be called before any imports that might create loggers.
    Clears existing handlers to prevent stdout pollution.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for logger_name in ["uvicorn", "fastmcp"]:
        logger = logging.getLogger(logger_name)
        logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False  # Don't propagate to root to avoid double logging


def configure_cli_logging(verbosity: str = "normal") -> None:
    """Human-readable stderr logging for the CLI."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(VERBOSITY_LEVELS.get(verbosity, logging.WARNING))
