"""
Logging for the docstore engine.

Every module logs through ``get_logger(component)``, which returns a child of
the ``docstore`` logger and stamps each record with the component name.
``setup_logging`` sends records to stderr in a compact human format and,
when a log directory is given, to ``docstore.log`` as JSON Lines:

    {"timestamp": "2024-01-15T10:30:45.123Z", "level": "INFO",
     "component": "Store", "logger": "docstore.store",
     "message": "Connected to 'crm'", "context": {"collections": 3}}
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

ROOT_LOGGER = "docstore"
LOG_FILENAME = "docstore.log"
DEFAULT_COMPONENT = "Store"

# =============================================================================
# ANSI styling (off under NO_COLOR or when stdout is not a terminal)
# =============================================================================

_NO_COLOR = bool(os.environ.get("NO_COLOR")) or not sys.stdout.isatty()


def _ansi(code: str) -> str:
    return "" if _NO_COLOR else f"\033[{code}m"


class Colors:
    """Escape sequences for console output; empty strings when color is off."""

    RESET = _ansi("0")
    DIM = _ansi("2")

    STORE = _ansi("34")  # facade and backends
    ENGINE = _ansi("35")  # matcher, relations, aggregation, transactions


_LEVEL_COLORS: dict[int, str] = {
    logging.DEBUG: _ansi("36"),
    logging.WARNING: _ansi("33"),
    logging.ERROR: _ansi("31"),
    logging.CRITICAL: _ansi("1;31"),
}


# =============================================================================
# Formatters
# =============================================================================


def _utc_timestamp(record: logging.LogRecord) -> str:
    moment = datetime.fromtimestamp(record.created, timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _record_context(record: logging.LogRecord) -> dict[str, Any]:
    return dict(getattr(record, "context", None) or {})


class JSONLFormatter(logging.Formatter):
    """One JSON object per record; warnings and above also carry their call site."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _utc_timestamp(record),
            "level": record.levelname,
            "component": getattr(record, "component", DEFAULT_COMPONENT),
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = _record_context(record)
        if context:
            entry["context"] = context

        if record.levelno >= logging.WARNING:
            call_site = (
                ("file", record.pathname),
                ("line", record.lineno),
                ("function", record.funcName),
            )
            entry["source"] = {key: value for key, value in call_site if value and value != "<module>"}

        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            entry["exception"] = {"type": type(error).__name__, "message": str(error)}

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Single-line console output, e.g. ``12:30:45 [Tx] WARNING: message key=value``.

    The level is omitted for INFO records; structured context is appended as
    ``key=value`` pairs.
    """

    def format(self, record: logging.LogRecord) -> str:
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        component = getattr(record, "component", DEFAULT_COMPONENT)
        color = getattr(record, "component_color", Colors.ENGINE)

        parts = [f"{Colors.DIM}{clock}{Colors.RESET}", f"{color}[{component}]{Colors.RESET}"]
        if record.levelno != logging.INFO:
            level_color = _LEVEL_COLORS.get(record.levelno, "")
            parts.append(f"{level_color}{record.levelname}{Colors.RESET}:")
        parts.append(record.getMessage())
        parts.extend(f"{key}={value}" for key, value in _record_context(record).items())

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


# =============================================================================
# Setup
# =============================================================================


def _coerce_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | str = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure the ``docstore`` logger, replacing handlers from earlier calls.

    Args:
        log_dir: Directory for ``docstore.log`` (stderr only when None)
        level: Level number or name; unknown names mean INFO
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files to keep

    Returns:
        The ``docstore`` logger
    """
    numeric_level = _coerce_level(level)
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ConsoleFormatter())
    handlers: list[logging.Handler] = [console]

    if log_dir is not None:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        jsonl = RotatingFileHandler(
            directory / LOG_FILENAME,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        jsonl.setFormatter(JSONLFormatter())
        handlers.append(jsonl)

    for handler in handlers:
        handler.setLevel(numeric_level)
        root.addHandler(handler)
    return root


class _ComponentFilter(logging.Filter):
    """Stamps records with a component name and color unless already set."""

    def __init__(self, component: str, color: str):
        super().__init__()
        self.component = component
        self.color = color

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = self.component
        if not hasattr(record, "component_color"):
            record.component_color = self.color
        return True


_component_loggers: dict[str, logging.Logger] = {}


def get_logger(component: str, color: str = Colors.ENGINE) -> logging.Logger:
    """
    Logger for one engine component, named ``docstore.<component>``.

    The first call for a component fixes its console color.
    """
    logger = _component_loggers.get(component)
    if logger is None:
        suffix = component.lower().replace(" ", "_")
        logger = logging.getLogger(f"{ROOT_LOGGER}.{suffix}")
        logger.addFilter(_ComponentFilter(component, color))
        _component_loggers[component] = logger
    return logger


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    **kwargs: Any,
) -> None:
    """
    Log ``message`` with structured context.

    ``context`` and keyword arguments are merged (keywords win) and stored on
    the record as ``context``.
    """
    merged = {**(context or {}), **kwargs}
    logger.log(level, message, extra={"context": merged} if merged else None)
