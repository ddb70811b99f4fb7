# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structured JSON logger for modpack.

Every log entry is a single JSON line: timestamped, leveled, tagged with the
source module. The build runs unattended in CI as often as it runs in a
terminal, so the output has to be both greppable and machine-readable.

How this works:
  - We use Python's standard `logging` module under the hood, but replace the
    default formatter with JsonFormatter, which serializes every log record
    into a single JSON line.
  - One handler always writes to stdout, a second one optionally to a file.
  - `get_logger` is the only way to create loggers. `configure_logging` lets the
    CLI change level and file output after modules have already created theirs.

The JSON structure looks like:
  {"ts": "2026-...", "level": "INFO", "module": "modpack.packaging.archive", "msg": "Archive written", ...}
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

LOGGER_NAMESPACE = "modpack"


class JsonFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Each log entry contains four mandatory fields:
      ts     — ISO 8601 UTC timestamp
      level  — log level name
      module — the logger name (usually the Python module path)
      msg    — the formatted message string

    If the log call includes `extra` keyword args, those get merged into the
    JSON object as additional context fields. This is how the pipeline attaches
    structured data like architecture tokens, paths, and exit codes.
    """

    _STANDARD_ATTRS = frozenset(
        {
            "name",
            "msg",
            "args",
            "created",
            "relativeCreated",
            "exc_info",
            "exc_text",
            "stack_info",
            "lineno",
            "funcName",
            "pathname",
            "filename",
            "module",
            "levelno",
            "levelname",
            "processName",
            "process",
            "threadName",
            "thread",
            "message",
            "msecs",
            "taskName",
        }
    )

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "msg": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in self._STANDARD_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_default_level: str = "INFO"
_default_log_file: Optional[Path] = None


def _resolve_log_level(level_name: str) -> int:
    """Turn a level name string into the corresponding logging constant."""
    upper = level_name.upper()
    if upper not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level '{level_name}'. Must be one of: {', '.join(sorted(_VALID_LOG_LEVELS))}"
        )
    return getattr(logging, upper)


def _attach_file_handler(logger: logging.Logger, log_file: Path, level: int) -> None:
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_file.resolve():
            return
    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(JsonFormatter())
    logger.addHandler(file_handler)


def get_logger(
    name: str,
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Create a structured JSON logger.

    This is the only sanctioned way to get a logger in modpack. Every module
    should call this once at the top and use the returned logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL. Defaults to
                   whatever `configure_logging` last set (INFO initially).
        log_file: Optional path to a log file. If provided, logs go to both
                  stdout and the file.

    Returns:
        A configured logging.Logger that outputs structured JSON.
    """
    logger = logging.getLogger(name)
    level = _resolve_log_level(log_level or _default_level)
    logger.setLevel(level)

    log_file = log_file if log_file is not None else _default_log_file

    # Avoid stacking handlers if get_logger is called multiple times for the
    # same name (happens in tests).
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        if log_file is not None:
            _attach_file_handler(logger, log_file, level)
        return logger

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.setFormatter(JsonFormatter())
    logger.addHandler(stdout_handler)

    if log_file is not None:
        _attach_file_handler(logger, log_file, level)

    # Don't propagate to root logger — we handle all output ourselves.
    logger.propagate = False

    return logger


def configure_logging(log_level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """
    Apply a level (and optional log file) to every modpack logger.

    Module-level loggers are created at import time with the default level, so
    the CLI calls this once after parsing arguments. Loggers created afterwards
    pick the new defaults up through `get_logger`.
    """
    global _default_level, _default_log_file

    _resolve_log_level(log_level)
    _default_level = log_level.upper()
    _default_log_file = log_file

    for name in list(logging.Logger.manager.loggerDict):
        if name == LOGGER_NAMESPACE or name.startswith(LOGGER_NAMESPACE + "."):
            existing = logging.getLogger(name)
            if existing.handlers:
                get_logger(name, log_level=log_level, log_file=log_file)
