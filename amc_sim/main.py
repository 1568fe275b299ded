"""FastAPI application instance and startup hooks."""
from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI
from sqlalchemy.orm import sessionmaker

from amc_sim import __version__
from amc_sim.core import Settings, get_logger, get_settings
from amc_sim.core.log import init_logging
from amc_sim.db import create_schema, get_sessionmaker
from amc_sim.routers import (
    customers_router,
    folios_router,
    health_router,
    maintenance_router,
    schemes_router,
    simulation_router,
    sips_router,
    transactions_router,
)
from amc_sim.services import MaintenanceJobs, SimulationOrchestrator
from amc_sim.web import register_exception_handlers

LOGGER = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    session_factory: sessionmaker | None = None,
    orchestrator: SimulationOrchestrator | None = None,
    maintenance: MaintenanceJobs | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The orchestrator and the maintenance calendar are built once here and
    hung off ``app.state``; routes reach them through dependencies.
    """

    settings = settings or get_settings()
    init_logging(
        level=settings.app.log_level,
        log_dir=Path(settings.app.log_dir) if settings.app.log_dir else None,
    )

    session_factory = session_factory or get_sessionmaker(settings.database.sqlalchemy_url)
    orchestrator = orchestrator or SimulationOrchestrator(session_factory, settings.simulation)
    maintenance = maintenance or MaintenanceJobs(session_factory, settings.maintenance)

    app = FastAPI(title="AMC Simulation", version=__version__)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.orchestrator = orchestrator
    app.state.maintenance = maintenance

    register_exception_handlers(app, production=settings.app.is_production)
    app.include_router(health_router)
    app.include_router(simulation_router)
    app.include_router(maintenance_router)
    app.include_router(schemes_router)
    app.include_router(customers_router)
    app.include_router(folios_router)
    app.include_router(transactions_router)
    app.include_router(sips_router)

    @app.on_event("startup")
    def bootstrap_simulation() -> None:
        LOGGER.info("Preparing simulation store at %s", settings.database.masked_url)
        try:
            if settings.app.create_schema:
                create_schema(session_factory.kw["bind"])
            seeded = orchestrator.ensure_baseline_schemes()
            if seeded:
                LOGGER.info("Seeded %d baseline schemes", seeded)
            if settings.maintenance.enabled:
                maintenance.start()
            if settings.simulation.auto_start:
                orchestrator.start()
        except Exception:  # pragma: no cover - fail fast on startup issues
            LOGGER.exception("Failed to bootstrap the simulation")
            raise

    @app.on_event("shutdown")
    def release_simulation() -> None:
        if orchestrator.is_running:
            orchestrator.stop()
        orchestrator.shutdown()
        maintenance.stop()
        LOGGER.info("Simulation shut down")

    LOGGER.info("FastAPI application initialised")
    return app


app = create_app()
