"""Per-thread key/value bindings rendered in front of log messages."""
from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Iterator

_bindings: contextvars.ContextVar[dict[str, object]] = contextvars.ContextVar("amc_sim_log_bindings", default={})

# Rendered first, in this order, when bound.
_LEADING_KEYS = ("task", "job")


def _merged(values: dict[str, object]) -> dict[str, object]:
    merged = dict(_bindings.get())
    merged.update((key, value) for key, value in values.items() if value is not None)
    return merged


def render(bindings: dict[str, object]) -> str:
    """``{"task": "sip_execution", "sip": 7}`` -> ``"[task=sip_execution sip=7] "``."""

    if not bindings:
        return ""
    keys = [key for key in _LEADING_KEYS if key in bindings]
    keys += sorted(key for key in bindings if key not in _LEADING_KEYS)
    return "[" + " ".join(f"{key}={bindings[key]}" for key in keys) + "] "


class LogContext:
    """Bindings live in a context variable, so each scheduler worker and each
    request handler sees only its own."""

    def bind(self, **values: object) -> None:
        _bindings.set(_merged(values))

    @contextmanager
    def bound(self, **values: object) -> Iterator[None]:
        token = _bindings.set(_merged(values))
        try:
            yield
        finally:
            _bindings.reset(token)


class ContextFilter(logging.Filter):
    """Set ``record.context`` from the bindings of the emitting thread."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "context", None) is None:
            record.context = render(_bindings.get())
        return True


log_context = LogContext()
