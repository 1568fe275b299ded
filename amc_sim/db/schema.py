"""Schema bootstrap for development databases."""
from __future__ import annotations

from sqlalchemy.engine import Engine

from amc_sim.core.log import get_logger
from amc_sim.models import Base

LOGGER = get_logger(__name__)


def create_schema(engine: Engine) -> None:
    """Create every missing table; existing tables are left untouched."""

    Base.metadata.create_all(engine)
    LOGGER.info("Database schema ready (%d tables)", len(Base.metadata.tables))


def drop_schema(engine: Engine) -> None:
    Base.metadata.drop_all(engine)
    LOGGER.warning("Dropped all simulation tables")
