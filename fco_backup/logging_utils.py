from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

from .config import LoggingConfig


LOGGER_NAME = "fco_backup"

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger:
    """Configure the package logger with a Rich console and optional log file.

    Child loggers (``fco_backup.runner``, ``fco_backup.retry``...) propagate
    here, so one call covers the whole package.
    """
    level = _level_from_string(cfg.level)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers = []
    logger.propagate = False

    handlers: list[logging.Handler] = []
    if cfg.console:
        console = RichHandler(rich_tracebacks=True, show_time=True, show_path=False)
        console.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(console)

    if cfg.file:
        directory = log_dir if log_dir is not None else Path(cfg.directory)
        directory.mkdir(parents=True, exist_ok=True)
        log_file = logging.FileHandler(directory / cfg.filename, encoding="utf-8")
        log_file.setFormatter(JsonlFormatter() if cfg.format == "jsonl" else logging.Formatter(PLAIN_FORMAT))
        handlers.append(log_file)

    for handler in handlers:
        handler.setLevel(level)
        logger.addHandler(handler)
    return logger


def log_event(logger: logging.Logger | None, message: str, **fields: Any) -> None:
    """Log an INFO record whose fields end up as top-level JSONL keys."""
    if logger is None:
        return
    logger.info(message, extra=fields)


class JsonlFormatter(logging.Formatter):
    """One JSON object per record, carrying any ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_record_extras(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


# Attributes every LogRecord has; anything else came in through ``extra``.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS}


def _level_from_string(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)
