"""Shared FastAPI dependency definitions."""
from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session, sessionmaker

from amc_sim.services import MaintenanceJobs, SimulationOrchestrator


def get_session_factory(request: Request) -> sessionmaker:
    return request.app.state.session_factory


def get_db_session(request: Request) -> Generator[Session, None, None]:
    """Yield a database session for the request lifecycle.

    Write endpoints commit explicitly; anything left uncommitted is discarded.
    """

    session = get_session_factory(request)()
    try:
        yield session
    finally:
        session.close()


def get_orchestrator(request: Request) -> SimulationOrchestrator:
    return request.app.state.orchestrator


def get_maintenance_jobs(request: Request) -> MaintenanceJobs:
    return request.app.state.maintenance
