"""Logging for CadenceIQ.

Every module logs through a child of the "cadenceiq" logger and
attaches structured fields as extra={"context": {...}}. The file log
is one JSON object per line; the console shows the fields that
identify a contact first (contact_id, stage, day) so a
`cadenceiq --debug advance ...` run can be followed by eye.

Usage:
    from cadenceiq.core.logging import get_logger, setup_logging

    setup_logging(config)  # once, from the CLI
    logger = get_logger(__name__)

    logger.info("Stage advanced", extra={"context": {"contact_id": cid, "stage": stage}})
"""

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from cadenceiq.core.config import Config, get_config

ROOT_LOGGER_NAME = "cadenceiq"
LOG_FILE_NAME = "cadenceiq.log"

# Shown first on the console, in this order
CONSOLE_KEYS = ("contact_id", "stage", "day")
SHORT_ID_LENGTH = 8


def _context(record: logging.LogRecord) -> dict[str, Any]:
    context = getattr(record, "context", None)
    return dict(context) if isinstance(context, dict) else {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record for the rotating file log."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        context = _context(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Short single-line format for the terminal.

    Contact ids are cut to their first eight characters and the
    contact fields lead the bracketed context.
    """

    def format(self, record: logging.LogRecord) -> str:
        time = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        name = record.name
        if name.startswith(ROOT_LOGGER_NAME + "."):
            name = name[len(ROOT_LOGGER_NAME) + 1 :]

        context = _context(record)
        if "contact_id" in context:
            context["contact_id"] = str(context["contact_id"])[:SHORT_ID_LENGTH]
        ordered = [k for k in CONSOLE_KEYS if k in context]
        ordered += [k for k in context if k not in CONSOLE_KEYS]

        line = f"{time} {record.levelname:<7} {name}: {record.getMessage()}"
        if ordered:
            line += " [" + ", ".join(f"{k}={context[k]}" for k in ordered) + "]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


_handlers: list[logging.Handler] = []


def setup_logging(config: Optional[Config] = None, verbose: bool = False) -> None:
    """Install console and file handlers on the cadenceiq logger.

    Console shows warnings unless verbose or config.debug is set; the
    file under config.log_path keeps everything. Repeat calls are no-ops.

    Args:
        config: App config (defaults to the global config)
        verbose: Show debug output on the console
    """
    if _handlers:
        return

    config = config or get_config()
    config.log_path.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if (verbose or config.debug) else logging.WARNING)
    console.setFormatter(ConsoleFormatter())

    file_handler = RotatingFileHandler(
        config.log_path / LOG_FILE_NAME,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(JSONFormatter())

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    for handler in (console, file_handler):
        root.addHandler(handler)
        _handlers.append(handler)

    root.debug("Logging started", extra={"context": {"log_path": str(config.log_path)}})


def reset_logging() -> None:
    """Remove the handlers setup_logging installed."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    while _handlers:
        handler = _handlers.pop()
        root.removeHandler(handler)
        handler.close()


def get_logger(name: str) -> logging.Logger:
    """Logger under the cadenceiq namespace for a module name."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
