"""Logging for the API server, the simulation ticks and the seed script.

Every process logs through one ``QueueHandler`` on the root logger; a
``QueueListener`` thread fans records out to a rich console handler and a
dated file under ``LOG_DIR``. Records pick up the ``log_context`` bindings of
the thread that produced them, so a settlement tick logs as
``task=settlement_processing ...`` even though the listener writes it later.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import SimpleQueue
from threading import RLock

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install as install_rich_traceback

from .context import ContextFilter, log_context
from .timing import timeit

__all__ = [
    "init_logging",
    "get_logger",
    "shutdown_logging",
    "log_context",
    "timeit",
]

_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(context)s%(message)s"
_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers capped at WARNING.
_QUIET_LOGGERS = ("faker", "uvicorn.access", "httpx")


@dataclass(frozen=True)
class _LogSetup:
    app_name: str
    level: int
    log_dir: Path | None
    console: bool


_lock = RLock()
_active: _LogSetup | None = None
_listener: QueueListener | None = None
_context_filter = ContextFilter()


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


class DatedFileHandler(logging.FileHandler):
    """Append to ``<app>_<YYYY_MM_DD>.log``, switching files at midnight."""

    def __init__(self, directory: Path, app_name: str) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        self.directory = directory
        self.app_name = app_name
        self._day = date.today()
        super().__init__(self._path_for(self._day), mode="a", encoding="utf-8")

    def _path_for(self, day: date) -> Path:
        return self.directory / f"{self.app_name}_{day:%Y_%m_%d}.log"

    def emit(self, record: logging.LogRecord) -> None:
        day = datetime.fromtimestamp(record.created).date()
        if day != self._day:
            self._day = day
            if self.stream:
                self.stream.close()
            self.baseFilename = os.fspath(self._path_for(day))
            self.stream = self._open()
        super().emit(record)


def _build_sinks(setup: _LogSetup) -> list[logging.Handler]:
    sinks: list[logging.Handler] = []
    if setup.console:
        install_rich_traceback(show_locals=False)
        console = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
            markup=False,
            log_time_format=_TIME_FORMAT,
        )
        console.setFormatter(logging.Formatter("%(context)s%(message)s"))
        sinks.append(console)
    if setup.log_dir is not None:
        dated = DatedFileHandler(setup.log_dir, setup.app_name)
        dated.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_TIME_FORMAT))
        sinks.append(dated)
    for sink in sinks:
        sink.setLevel(setup.level)
    return sinks


def init_logging(
    *,
    app_name: str = "amc_sim",
    level: str | int = "INFO",
    log_dir: Path | None = Path("logs"),
    console: bool = True,
) -> None:
    """Install the queue-backed handlers on the root logger.

    Calling again with the same options is a no-op; different options replace
    the running listener.
    """

    global _active, _listener

    setup = _LogSetup(
        app_name=app_name,
        level=_parse_level(level),
        log_dir=Path(log_dir) if log_dir is not None else None,
        console=console,
    )
    with _lock:
        if _active == setup:
            return
        _teardown_locked()

        root = logging.getLogger()
        root.setLevel(logging.NOTSET)
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        sinks = _build_sinks(setup)
        if sinks:
            queue_handler = QueueHandler(SimpleQueue())
            queue_handler.setLevel(setup.level)
            # Context is read on the producing thread.
            queue_handler.addFilter(_context_filter)
            root.addHandler(queue_handler)
            _listener = QueueListener(queue_handler.queue, *sinks, respect_handler_level=True)
            _listener.start()
        _active = setup


def _teardown_locked() -> None:
    global _active, _listener
    if _listener is not None:
        _listener.stop()
        for sink in _listener.handlers:
            sink.close()
    _listener = None
    _active = None
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)


def shutdown_logging() -> None:
    """Drain the queue and close the console and file sinks."""

    with _lock:
        _teardown_locked()


def get_logger(name: str | None = None) -> logging.Logger:
    with _lock:
        if _active is None:
            init_logging()
        app_name = _active.app_name if _active else "amc_sim"
    return logging.getLogger(name or app_name)
