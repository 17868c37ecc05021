"""Logging setup: structlog events rendered as JSON through stdlib handlers.

Three sinks are configured once per process:

* the console (level follows ``--verbose``),
* ``logs/harvester.log`` for everything at INFO and above (rotated),
* ``logs/error.log`` for errors only.

Each news source additionally gets ``logs/sources/<source_id>.log`` so a
misbehaving site can be inspected in isolation.
"""

from __future__ import annotations

import logging
import logging.config
import os
import uuid
from collections import deque
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import structlog

LOGGER_NAME = "headline_harvester"
JSON_FORMATTER = "pythonjsonlogger.jsonlogger.JsonFormatter"
_MAX_LOG_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 3

_configured = False


def log_dir() -> Path:
    home = os.environ.get("HEADLINE_HARVESTER_HOME")
    if home:
        return Path(home).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def main_log_path() -> Path:
    return log_dir() / "harvester.log"


def source_log_path(source_id: str) -> Path:
    return log_dir() / "sources" / f"{source_id}.log"


def _logging_config(level: str, directory: Path) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": JSON_FORMATTER,
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "json",
            },
            "harvester_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "INFO",
                "filename": str(directory / "harvester.log"),
                "maxBytes": _MAX_LOG_BYTES,
                "backupCount": _BACKUP_COUNT,
                "encoding": "utf-8",
                "formatter": "json",
            },
            "error_file": {
                "class": "logging.FileHandler",
                "level": "ERROR",
                "filename": str(directory / "error.log"),
                "encoding": "utf-8",
                "formatter": "json",
            },
        },
        "loggers": {
            LOGGER_NAME: {
                "handlers": ["console", "harvester_file", "error_file"],
                "level": level,
                "propagate": False,
            },
            # chatty third-party loggers
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
            "apscheduler": {"level": "WARNING"},
        },
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Install handlers on first call and return the application logger."""

    global _configured
    directory = log_dir()
    (directory / "sources").mkdir(parents=True, exist_ok=True)

    if not _configured:
        logging.config.dictConfig(_logging_config("DEBUG" if verbose else "INFO", directory))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso", utc=True),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        _configured = True
    return structlog.get_logger(LOGGER_NAME)


def source_logger(source_id: str, verbose: bool = False) -> structlog.BoundLogger:
    """Logger bound to ``source_id`` that also writes to the source's own file."""

    configure_logging(verbose)
    path = source_log_path(source_id)
    path.parent.mkdir(parents=True, exist_ok=True)

    name = f"{LOGGER_NAME}.source.{source_id}"
    stdlib_logger = logging.getLogger(name)
    attached = {
        getattr(handler, "baseFilename", None) for handler in stdlib_logger.handlers
    }
    if str(path) not in attached:
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setLevel(logging.INFO)
        parent_handlers = logging.getLogger(LOGGER_NAME).handlers
        if parent_handlers:
            handler.setFormatter(parent_handlers[0].formatter)
        stdlib_logger.addHandler(handler)
    return structlog.get_logger(name).bind(source=source_id)


@contextmanager
def run_context(run_id: str | None = None) -> Iterator[str]:
    """Tag every event logged inside the block with a ``run_id``."""

    run_id = run_id or uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(run_id=run_id):
        yield run_id


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return list(deque(stream, maxlen=line_count))


def available_source_logs() -> list[Path]:
    directory = log_dir() / "sources"
    if not directory.is_dir():
        return []
    return sorted(directory.glob("*.log"))


__all__ = [
    "available_source_logs",
    "configure_logging",
    "log_dir",
    "main_log_path",
    "run_context",
    "source_log_path",
    "source_logger",
    "tail_log",
]
