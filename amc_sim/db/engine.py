"""Database engine factories."""
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from amc_sim.core.config import get_settings
from amc_sim.core.log import get_logger

LOGGER = get_logger(__name__)


def create_sync_engine(url: str | None = None, **kwargs) -> Engine:
    """Create a synchronous SQLAlchemy engine using configured defaults."""

    settings = get_settings()
    resolved_url = url or settings.database.sqlalchemy_url

    options = dict(kwargs)
    options.setdefault("echo", settings.sqlalchemy_echo)
    if not resolved_url.startswith("sqlite"):
        options.setdefault("pool_pre_ping", True)
        options.setdefault("pool_size", settings.simulation.worker_threads + 4)

    masked = settings.database.masked_url if url is None else url.split("@")[-1]
    LOGGER.debug("Creating SQLAlchemy engine", extra={"url": masked, "options": options})
    return create_engine(resolved_url, **options)
