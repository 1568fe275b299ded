"""Duration and throughput logging for bulk triggers and maintenance jobs."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Iterator, Optional


@dataclass
class Progress:
    label: str
    unit: str
    planned: Optional[int] = None
    done: int = 0
    started: float = field(default_factory=perf_counter)

    def add(self, amount: int = 1) -> None:
        self.done += amount

    @property
    def elapsed(self) -> float:
        return perf_counter() - self.started

    def _volume(self) -> str:
        if self.planned is not None:
            return f"{self.done:,}/{self.planned:,} {self.unit}"
        return f"{self.done:,} {self.unit}"

    def summary(self) -> str:
        elapsed = self.elapsed
        line = f"{self.label} completed in {elapsed:.2f}s"
        if not self.unit:
            return line
        line += f" ({self._volume()}"
        if self.done and elapsed > 0:
            line += f" @ {self.done / elapsed:,.1f} {self.unit}/s"
        return line + ")"

    def failure(self) -> str:
        line = f"{self.label} failed after {self.elapsed:.2f}s"
        return f"{line} ({self._volume()})" if self.unit else line


@contextmanager
def timeit(
    label: str,
    *,
    logger: Optional[logging.Logger] = None,
    unit: str = "",
    total: Optional[int] = None,
) -> Iterator[Progress]:
    """Log one line with the duration of the block.

    With ``unit`` set, the line also reports ``progress.add()`` counts against
    ``total`` and the throughput. A block that raises is logged as failed with
    the count reached so far.
    """

    log = logger or logging.getLogger("amc_sim.timing")
    progress = Progress(label=label, unit=unit, planned=total)
    try:
        yield progress
    except Exception:
        log.error(progress.failure())
        raise
    log.info(progress.summary())
