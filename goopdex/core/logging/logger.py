"""
Goopdex Logging Subsystem

Purpose
-------
Structured, non-blocking logging for the progression engine:

- Every record carries the operation context bound with `LogContext`
  (player, component, operation, correlation id).
- Production output is one JSON object per line; development output is a
  readable console line, optionally coloured.
- Handlers run on a `QueueListener` thread so the event loop never blocks
  on I/O. A full queue drops records instead of stalling the caller.

Usage
-----
    from goopdex.core.logging.logger import LogContext, get_logger

    logger = get_logger(__name__)

    async with LogContext(operation="catch", component="progression"):
        logger.info("Caught", extra={"species_id": 4})

Dependencies
------------
- goopdex.core.config.config.Config (level, format, file output, logs dir)
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from goopdex.core.config.config import Config

CONTEXT_FIELDS = ("player_id", "component", "operation", "correlation_id")

CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s%(context_suffix)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"
LOG_FILE_NAME = "goopdex.jsonl"
QUEUE_SIZE = 10_000

_log_context: ContextVar[Mapping[str, Any]] = ContextVar("goopdex_log_context", default={})

# Attributes every LogRecord has; anything else on a record came from `extra`.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:12]


# ============================================================================
# Filters & Formatters
# ============================================================================


class LogContextFilter(logging.Filter):
    """Copy the bound context onto the record at emit time (producer side)."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get()
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, context.get(name))
        return True


class ConsoleFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: "\033[90m",
        logging.INFO: "\033[36m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, colorize: bool = False) -> None:
        super().__init__(fmt=CONSOLE_FORMAT, datefmt=CONSOLE_DATE_FORMAT)
        self.colorize = colorize

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        operation = getattr(record, "operation", None)
        correlation_id = getattr(record, "correlation_id", None)
        record.context_suffix = f" [{operation} {correlation_id}]" if operation else ""

        line = super().format(record)
        if self.colorize and record.levelno in self.LEVEL_COLORS:
            return f"{self.LEVEL_COLORS[record.levelno]}{line}{self.RESET}"
        return line


class JSONFormatter(logging.Formatter):
    """One JSON object per record: core fields, bound context, then `extra`."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        context = {
            name: getattr(record, name)
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        }
        if context:
            payload["context"] = context

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
            and key not in CONTEXT_FIELDS
            and key != "context_suffix"
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


# ============================================================================
# Queue plumbing
# ============================================================================


@dataclass
class _LoggingState:
    listener: Optional[QueueListener] = None
    queue: Optional["queue.Queue[logging.LogRecord]"] = None
    handlers: List[logging.Handler] = field(default_factory=list)
    dropped: int = 0


_state = _LoggingState()


class _DroppingQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _state.dropped += 1


def _level(value: Optional[str]) -> int:
    resolved = logging.getLevelName((value or Config.LOG_LEVEL or "INFO").upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _console_handler(json_output: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        colorize = bool(Config.LOG_COLORS) and sys.stdout.isatty()
        handler.setFormatter(ConsoleFormatter(colorize=colorize))
    return handler


def _file_handler(logs_dir: Path) -> logging.Handler:
    logs_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(logs_dir / LOG_FILE_NAME),
        when="midnight",
        backupCount=7,
        encoding="utf-8",
        utc=True,
    )
    handler.setFormatter(JSONFormatter())
    return handler


# ============================================================================
# Setup / teardown
# ============================================================================


def setup_logging(
    level: Optional[str] = None,
    json_output: Optional[bool] = None,
    log_to_file: Optional[bool] = None,
) -> None:
    """
    Route the root logger through a queue to console (and optionally file).

    Arguments default to `Config`; JSON output defaults to production only.
    Calling it again while active is a no-op.
    """
    if _state.listener is not None:
        return

    if json_output is None:
        json_output = Config.LOG_JSON if Config.LOG_JSON is not None else Config.is_production()
    if log_to_file is None:
        log_to_file = Config.LOG_TO_FILE

    handlers = [_console_handler(json_output)]
    if log_to_file:
        handlers.append(_file_handler(Path(Config.LOGS_DIR)))

    _state.queue = queue.Queue(QUEUE_SIZE)
    _state.handlers = handlers
    _state.dropped = 0
    _state.listener = QueueListener(_state.queue, *handlers, respect_handler_level=True)
    _state.listener.start()

    queue_handler = _DroppingQueueHandler(_state.queue)
    queue_handler.addFilter(LogContextFilter())

    root = logging.getLogger()
    root.setLevel(_level(level))
    root.addHandler(queue_handler)

    for noisy in ("sqlalchemy.engine", "aiosqlite", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    get_logger(__name__).info(
        "Logging initialized",
        extra={"level": logging.getLevelName(root.level), "json": json_output, "file": log_to_file},
    )


def shutdown_logging() -> None:
    """Flush queued records and detach every handler added by `setup_logging()`."""
    if _state.listener is None:
        return

    _state.listener.stop()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, _DroppingQueueHandler):
            root.removeHandler(handler)
    for handler in _state.handlers:
        handler.close()

    _state.listener = None
    _state.queue = None
    _state.handlers = []


def logging_status() -> Dict[str, Any]:
    return {
        "active": _state.listener is not None,
        "queued": _state.queue.qsize() if _state.queue is not None else 0,
        "dropped": _state.dropped,
    }


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Bind context fields to every record logged inside the block.

    Nested contexts inherit the enclosing fields (including the correlation
    id) and override only what they set.

    >>> async with LogContext(operation="evolve", player_id=1):
    ...     logger.info("Evolving")
    """

    def __init__(
        self,
        player_id: Optional[int] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **fields: Any,
    ) -> None:
        parent = _log_context.get()
        self.context: Dict[str, Any] = {**parent, **fields}
        for name, value in (
            ("player_id", player_id),
            ("component", component),
            ("operation", operation),
        ):
            if value is not None:
                self.context[name] = value
        self.context["correlation_id"] = (
            correlation_id or parent.get("correlation_id") or new_correlation_id()
        )
        self._token: Optional[Token[Mapping[str, Any]]] = None

    def __enter__(self) -> LogContext:
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


def bind_log_context(**fields: Any) -> None:
    """Merge `fields` into the current context without a scope (None values are skipped)."""
    merged = dict(_log_context.get())
    merged.update({key: value for key, value in fields.items() if value is not None})
    _log_context.set(merged)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def clear_log_context() -> None:
    _log_context.set({})
