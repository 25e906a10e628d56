"""Logging setup for the API and the scheduled jobs.

Console output goes through rich; when ``Settings.log_dir`` is set every record
is also appended to ``<log_dir>/<YYYY_MM_DD>.log``.  Handlers sit behind a
queue listener so request threads never block on disk or terminal writes.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from datetime import date, datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import SimpleQueue
from threading import RLock

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install as install_rich_traceback

from backoffice.core.config import Settings, get_settings

from .context import ContextFilter, log_context
from .progress import progress_manager
from .timing import timeit

__all__ = [
    "LoggingConfig",
    "init_logging",
    "get_logger",
    "shutdown_logging",
    "log_context",
    "progress_manager",
    "timeit",
]

DEFAULT_APP_NAME = "backoffice"
CONSOLE_FORMAT = "%(context)s%(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(context)s%(message)s"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


@dataclass(frozen=True)
class LoggingConfig:
    """Resolved logging options; equal configs make ``init_logging`` a no-op."""

    app_name: str = DEFAULT_APP_NAME
    level: int = logging.INFO
    log_dir: Path | None = None
    console: bool = True
    rich_tracebacks: bool = True
    queue: bool = True

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: object) -> "LoggingConfig":
        config = cls(level=_parse_level(settings.log_level), log_dir=settings.log_dir)
        unknown = set(overrides) - set(cls.__dataclass_fields__)
        if unknown:
            raise TypeError(f"Unknown logging options: {', '.join(sorted(unknown))}")
        if "level" in overrides:
            overrides["level"] = _parse_level(overrides["level"])  # type: ignore[arg-type]
        return replace(config, **overrides)


class DailyFileHandler(logging.FileHandler):
    """File handler that starts a new file when the record date changes."""

    def __init__(self, directory: Path, *, date_format: str = "%Y_%m_%d") -> None:
        directory.mkdir(parents=True, exist_ok=True)
        self.directory = directory
        self.date_format = date_format
        self.day: date = datetime.now().date()
        super().__init__(self.path_for(self.day), mode="a", encoding="utf-8")

    def path_for(self, day: date) -> Path:
        return self.directory / f"{day.strftime(self.date_format)}.log"

    def emit(self, record: logging.LogRecord) -> None:
        day = datetime.fromtimestamp(record.created).date()
        if day != self.day:
            self.day = day
            if self.stream:
                self.stream.close()
            self.baseFilename = os.fspath(self.path_for(day))
            self.stream = self._open()
        super().emit(record)


class _State:
    lock = RLock()
    config: LoggingConfig | None = None
    listener: QueueListener | None = None
    installed: list[logging.Handler] = []
    handlers: list[logging.Handler] = []
    context_filter = ContextFilter()


def _console_handler(config: LoggingConfig) -> logging.Handler:
    console = Console(stderr=True)
    progress_manager.use_console(console)
    handler = RichHandler(
        console=console,
        rich_tracebacks=config.rich_tracebacks,
        show_path=False,
        markup=False,
        log_time_format=TIME_FORMAT,
    )
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def _file_handler(config: LoggingConfig) -> logging.Handler:
    handler = DailyFileHandler(Path(config.log_dir))
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=TIME_FORMAT))
    return handler


def _handlers(config: LoggingConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if config.console:
        handlers.append(_console_handler(config))
    if config.log_dir:
        handlers.append(_file_handler(config))
    for handler in handlers:
        handler.setLevel(config.level)
        handler.addFilter(_State.context_filter)
    return handlers


def init_logging(settings: Settings | None = None, **overrides: object) -> LoggingConfig:
    """Configure the root logger from ``settings`` (``get_settings()`` by default).

    Keyword overrides such as ``app_name`` or ``log_dir`` take precedence over
    the settings.  Calling again with an equal configuration keeps the running
    handlers.
    """

    config = LoggingConfig.from_settings(settings or get_settings(), **overrides)
    with _State.lock:
        if _State.config == config:
            return config
        _teardown()

        if config.rich_tracebacks:
            install_rich_traceback(show_locals=False)
        handlers = _handlers(config)

        root = logging.getLogger()
        root.setLevel(logging.NOTSET)
        if config.queue and handlers:
            log_queue: SimpleQueue = SimpleQueue()
            entry = QueueHandler(log_queue)
            entry.setLevel(config.level)
            entry.addFilter(_State.context_filter)
            root.addHandler(entry)
            _State.installed = [entry]
            _State.listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
            _State.listener.start()
        else:
            for handler in handlers:
                root.addHandler(handler)
            _State.installed = list(handlers)
        _State.handlers = handlers
        _State.config = config

    logging.getLogger(config.app_name).debug(
        "Logging configured",
        extra={"level": logging.getLevelName(config.level), "log_dir": str(config.log_dir or "")},
    )
    return config


def _teardown() -> None:
    if _State.listener is not None:
        _State.listener.stop()
    _State.listener = None
    _State.config = None
    progress_manager.reset_console()
    root = logging.getLogger()
    for handler in _State.installed:
        root.removeHandler(handler)
    for handler in _State.handlers:
        handler.close()
    _State.installed = []
    _State.handlers = []


def shutdown_logging() -> None:
    """Flush and detach every handler installed by ``init_logging``."""

    with _State.lock:
        _teardown()


def get_logger(name: str | None = None) -> logging.Logger:
    with _State.lock:
        if _State.config is None:
            init_logging()
        app_name = _State.config.app_name if _State.config else DEFAULT_APP_NAME
    return logging.getLogger(name or app_name)
