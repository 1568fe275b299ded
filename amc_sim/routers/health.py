"""Liveness and database reachability."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from amc_sim.core.log import get_logger
from amc_sim.schemas import ok
from amc_sim.services import SimulationOrchestrator
from amc_sim.web.dependencies import get_db_session, get_orchestrator

router = APIRouter(prefix="/api", tags=["health"])
LOGGER = get_logger(__name__)


@router.get("/health")
def health(
    session: Session = Depends(get_db_session),
    orchestrator: SimulationOrchestrator = Depends(get_orchestrator),
) -> dict:
    database = "up"
    try:
        session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        LOGGER.warning("Health check could not reach the database", exc_info=True)
        database = "down"
    return ok({"status": "ok", "database": database, "simulation": orchestrator.state.value})
