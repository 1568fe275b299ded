#!/usr/bin/env python3
"""Bulk seed the simulation store through the orchestrator's manual triggers."""
from __future__ import annotations

import argparse
import random
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from amc_sim.core import get_settings
from amc_sim.core.errors import NoCandidatesError
from amc_sim.core.log import get_logger, init_logging, log_context, shutdown_logging
from amc_sim.db import create_schema, create_sync_engine, drop_schema, get_sessionmaker
from amc_sim.generators import FakerIdentityGenerator
from amc_sim.services import SimulationOrchestrator

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--customers", type=int, default=100, help="Number of customers to create")
    parser.add_argument("--folios", type=int, default=150, help="Number of folios to open")
    parser.add_argument("--transactions", type=int, default=500, help="Number of transactions to submit")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")
    parser.add_argument("--settle", action="store_true", help="Run one settlement batch afterwards")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate every table first")
    parser.add_argument("--database-url", type=str, default=None, help="Override the configured database URL")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    engine = create_sync_engine(args.database_url)
    if args.reset:
        drop_schema(engine)
    create_schema(engine)

    rng = random.Random(args.seed)
    orchestrator = SimulationOrchestrator(
        get_sessionmaker(engine=engine),
        settings.simulation,
        identity=FakerIdentityGenerator(rng),
        rng=rng,
    )
    try:
        orchestrator.ensure_baseline_schemes()
        if args.customers:
            orchestrator.create_customers(args.customers)
        if args.folios:
            orchestrator.create_folios(args.folios)
        if args.transactions:
            orchestrator.create_transactions(args.transactions)
        if args.settle:
            orchestrator.process_settlements()
    except NoCandidatesError as exc:
        logger.error("Seeding stopped early: %s", exc)
        return 1
    finally:
        orchestrator.shutdown()

    stats = orchestrator.get_metrics()
    logger.info(
        "Seed complete: %d customers, %d folios, %d transactions, %d SIPs in store",
        stats.totals.customers,
        stats.totals.folios,
        stats.totals.transactions,
        stats.totals.sips,
    )
    return 0


if __name__ == "__main__":
    init_logging(app_name="seed-simulation")
    log_context.bind(job="seed_simulation")
    try:
        sys.exit(main())
    finally:
        shutdown_logging()
