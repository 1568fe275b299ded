"""Simulation orchestrator: recurring generators plus manual triggers."""
from __future__ import annotations

import random
import threading
from dataclasses import dataclass, fields, replace
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from amc_sim.core.config import SimulationSettings
from amc_sim.core.errors import (
    FolioLimitExceededError,
    NoCandidatesError,
    SimulationStateError,
    SipStateError,
)
from amc_sim.core.log import get_logger, timeit
from amc_sim.db.session import session_scope
from amc_sim.domain.settlement import OutcomeKind, SettlementOutcome, simulate_settlement_outcome
from amc_sim.generators import (
    FakerIdentityGenerator,
    IdentityGenerator,
    generate_customer,
    generate_folio,
    generate_sip,
    generate_transaction,
)
from amc_sim.generators.identifiers import settlement_reference, transaction_number
from amc_sim.models import Customer, Folio, Scheme, SettlementStatus, Transaction
from amc_sim.repositories import (
    CustomerRepository,
    FolioCandidate,
    FolioRepository,
    SchemeRepository,
    SipRepository,
    TransactionRepository,
)
from amc_sim.schemas.simulation import (
    PersistedTotals,
    SessionStatistics,
    SimulationMetrics,
    SimulationPerformance,
    SimulationStatus,
)

from .scheduler import TaskScheduler

LOGGER = get_logger(__name__)

TASK_CUSTOMER_CREATION = "customer_creation"
TASK_FOLIO_CREATION = "folio_creation"
TASK_TRANSACTION_SIMULATION = "transaction_simulation"
TASK_SETTLEMENT_PROCESSING = "settlement_processing"
TASK_SIP_EXECUTION = "sip_execution"
TASK_NAV_UPDATE = "nav_update"

NEW_CUSTOMER_FOLIO_PROBABILITY = 0.7
ADDITIONAL_FOLIO_PROBABILITY = 0.3
NEW_CUSTOMER_SIP_PROBABILITY = 0.6
MANUAL_SIP_PROBABILITY = 0.5
TRANSACTION_PROBABILITY = 0.7

INTERVAL_FIELDS = frozenset(
    f.name for f in fields(SimulationSettings) if f.name.endswith("_interval")
)


class SimulationState(str, Enum):
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"


class SessionStats:
    """Thread-safe counters for work done since the last reset."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts = SessionStatistics()

    def increment(self, name: str, amount: int = 1) -> None:
        if amount == 0:
            return
        with self._lock:
            setattr(self._counts, name, getattr(self._counts, name) + amount)

    def snapshot(self) -> SessionStatistics:
        with self._lock:
            return self._counts.model_copy()

    def reset(self) -> None:
        with self._lock:
            self._counts = SessionStatistics()


@dataclass
class SettlementReport:
    examined: int = 0
    processed: int = 0
    rejected: int = 0
    failed: int = 0
    errors: int = 0


@dataclass
class SipExecutionReport:
    due: int = 0
    executed: int = 0
    skipped: int = 0
    failed: int = 0


class SimulationOrchestrator:
    """Own the recurring generators and the counters describing their work.

    The orchestrator holds no entity state. Every tick opens its own session
    through ``session_factory`` and commits or rolls back on its own, so a
    failing tick leaves nothing half written and never stops its schedule.

    State: STOPPED -> RUNNING -> (PAUSED <-> RUNNING) -> STOPPED. Pausing
    cancels the timers but keeps the run logically alive; resuming registers
    them again with the current intervals.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        settings: SimulationSettings | None = None,
        *,
        identity: IdentityGenerator | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
        scheduler: TaskScheduler | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings or SimulationSettings()
        self._rng = rng or random.Random()
        self._identity = identity or FakerIdentityGenerator(self._rng)
        self._clock = clock or datetime.now
        self._scheduler = scheduler or TaskScheduler(
            max_workers=self._settings.worker_threads,
            skip_overlapping=self._settings.skip_overlapping_ticks,
        )
        self._stats = SessionStats()
        self._state_lock = threading.RLock()
        self._running = False
        self._paused = False
        self._started_at: datetime | None = None

    @property
    def settings(self) -> SimulationSettings:
        return self._settings

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def state(self) -> SimulationState:
        if not self._running:
            return SimulationState.STOPPED
        return SimulationState.PAUSED if self._paused else SimulationState.RUNNING

    @property
    def started_at(self) -> datetime | None:
        return self._started_at

    @property
    def active_tasks(self) -> list[str]:
        return self._scheduler.task_names

    def start(self) -> None:
        with self._state_lock:
            if self._running:
                LOGGER.warning("Simulation is already running")
                return
            self._running = True
            self._paused = False
            try:
                self.ensure_baseline_schemes()
            except Exception:
                self._running = False
                LOGGER.exception("Seeding baseline schemes failed; simulation not started")
                raise
            self._started_at = self._clock()
            self._register_tasks()
        LOGGER.info("Simulation started with tasks %s", ", ".join(self.active_tasks))

    def stop(self) -> None:
        with self._state_lock:
            if not self._running:
                LOGGER.warning("Simulation is not running")
                return
            cancelled = self._scheduler.cancel_all()
            self._running = False
            self._paused = False
        LOGGER.info("Simulation stopped; cancelled %d tasks", len(cancelled))

    def pause(self) -> None:
        with self._state_lock:
            if not self._running:
                raise SimulationStateError("Simulation is not running")
            if self._paused:
                LOGGER.warning("Simulation is already paused")
                return
            self._scheduler.cancel_all()
            self._paused = True
        LOGGER.info("Simulation paused")

    def resume(self) -> None:
        with self._state_lock:
            if not self._running:
                raise SimulationStateError("Simulation is not running")
            if not self._paused:
                LOGGER.warning("Simulation is not paused")
                return
            self._paused = False
            self._register_tasks()
        LOGGER.info("Simulation resumed")

    def reset(self) -> None:
        """Stop if needed and clear session bookkeeping; persisted rows stay."""

        with self._state_lock:
            if self._running:
                self.stop()
            self._stats.reset()
            self._started_at = None
        LOGGER.info("Simulation statistics reset")

    def shutdown(self) -> None:
        with self._state_lock:
            self._running = False
            self._paused = False
            self._scheduler.shutdown(wait=False)
        LOGGER.debug("Simulation worker pool released")

    def update_intervals(self, **intervals: float) -> SimulationSettings:
        """Change task cadences; live timers pick up the new values immediately."""

        unknown = set(intervals) - INTERVAL_FIELDS
        if unknown:
            raise ValueError(f"Unknown interval(s): {', '.join(sorted(unknown))}")
        changes = {name: float(value) for name, value in intervals.items() if value is not None}
        for name, value in changes.items():
            if value <= 0:
                raise ValueError(f"{name} must be positive")
        if not changes:
            return self._settings
        with self._state_lock:
            self._settings = replace(self._settings, **changes)
            if self._running and not self._paused:
                self._scheduler.cancel_all()
                self._register_tasks()
        LOGGER.info("Simulation intervals updated: %s", changes)
        return self._settings

    def intervals(self) -> dict[str, float]:
        return {name: getattr(self._settings, name) for name in sorted(INTERVAL_FIELDS)}

    def _task_plan(self) -> list[tuple[str, float, Callable[[], object]]]:
        s = self._settings
        return [
            (TASK_CUSTOMER_CREATION, s.customer_creation_interval, self._create_customer_tick),
            (TASK_FOLIO_CREATION, s.folio_creation_interval, self._create_folio_tick),
            (TASK_TRANSACTION_SIMULATION, s.transaction_simulation_interval, self._simulate_transactions_tick),
            (TASK_SETTLEMENT_PROCESSING, s.settlement_processing_interval, self.process_settlements),
            (TASK_SIP_EXECUTION, s.sip_execution_interval, self.execute_due_sips),
            (TASK_NAV_UPDATE, s.nav_update_interval, self.update_navs),
        ]

    def _register_tasks(self) -> None:
        for name, interval, callback in self._task_plan():
            self._scheduler.schedule(name, interval, callback)

    def ensure_baseline_schemes(self) -> int:
        with session_scope(self._session_factory) as session:
            created = SchemeRepository(session).ensure_defaults(
                self._clock().date(), amc_code=self._settings.amc_code
            )
        return len(created)

    def _insert_customer(self, session: Session) -> Customer:
        draft = generate_customer(self._identity, self._rng, self._clock().date())
        return CustomerRepository(session).create(draft)

    def _open_folio(
        self,
        session: Session,
        customer: Customer,
        scheme: Scheme,
        *,
        sip_probability: float,
    ) -> tuple[Folio, bool]:
        folio = FolioRepository(session).create(
            generate_folio(customer.id, scheme.id, self._identity, self._rng),
            max_active_per_customer=self._settings.max_folios_per_customer,
        )
        with_sip = self._rng.random() < sip_probability
        if with_sip:
            SipRepository(session).create(
                generate_sip(
                    customer_id=customer.id,
                    folio_id=folio.id,
                    scheme_id=scheme.id,
                    rng=self._rng,
                    today=self._clock().date(),
                )
            )
        return folio, with_sip

    def _record_folio(self, folio: Folio, with_sip: bool) -> None:
        self._stats.increment("folios_created")
        if with_sip:
            self._stats.increment("sips_created")
        LOGGER.debug("Opened folio %s (sip=%s)", folio.folio_number, with_sip)

    def _insert_transaction(self, session: Session, candidate: FolioCandidate) -> Transaction:
        draft = generate_transaction(
            folio_id=candidate.folio_id,
            scheme_id=candidate.scheme_id,
            customer_id=candidate.customer_id,
            nav=candidate.nav,
            rng=self._rng,
            now=self._clock(),
        )
        return TransactionRepository(session).create(draft)

    def create_customers(self, count: int) -> list[Customer]:
        created: list[Customer] = []
        with timeit("Customer creation", logger=LOGGER, unit="customers", total=count) as progress:
            for _ in range(count):
                with session_scope(self._session_factory) as session:
                    customer = self._insert_customer(session)
                self._stats.increment("customers_created")
                created.append(customer)
                progress.add()
        return created

    def create_folios(self, count: int) -> list[Folio]:
        created: list[Folio] = []
        with timeit("Folio creation", logger=LOGGER, unit="folios", total=count) as progress:
            for _ in range(count):
                with session_scope(self._session_factory) as session:
                    customers = CustomerRepository(session).find_eligible_for_new_folio(
                        self._settings.max_folios_per_customer, limit=50
                    )
                    if not customers:
                        raise NoCandidatesError("No customers available for folio creation")
                    schemes = SchemeRepository(session).list_active(limit=None)
                    if not schemes:
                        raise NoCandidatesError("No active schemes available for folio creation")
                    folio, with_sip = self._open_folio(
                        session,
                        self._rng.choice(customers),
                        self._rng.choice(schemes),
                        sip_probability=MANUAL_SIP_PROBABILITY,
                    )
                self._record_folio(folio, with_sip)
                created.append(folio)
                progress.add()
        return created

    def create_transactions(self, count: int) -> list[Transaction]:
        created: list[Transaction] = []
        with timeit("Transaction creation", logger=LOGGER, unit="transactions", total=count) as progress:
            for _ in range(count):
                with session_scope(self._session_factory) as session:
                    candidates = FolioRepository(session).find_random_for_transactions(limit=10)
                    if not candidates:
                        raise NoCandidatesError("No active folios available for transactions")
                    transaction = self._insert_transaction(session, self._rng.choice(candidates))
                self._stats.increment("transactions_created")
                created.append(transaction)
                progress.add()
        return created

    def _create_customer_tick(self) -> None:
        with session_scope(self._session_factory) as session:
            customer = self._insert_customer(session)
        self._stats.increment("customers_created")
        LOGGER.info("Created customer %s (%s)", customer.full_name, customer.pan_number)

    def _create_folio_tick(self) -> None:
        """Two independent draws; a failure on one path never skips the other."""

        if self._rng.random() < NEW_CUSTOMER_FOLIO_PROBABILITY:
            self._guarded_folio_path("recent customer", self._create_folio_for_recent_customer)
        if self._rng.random() < ADDITIONAL_FOLIO_PROBABILITY:
            self._guarded_folio_path("additional", self._create_additional_folio)

    def _guarded_folio_path(self, label: str, body: Callable[[], None]) -> None:
        try:
            body()
        except FolioLimitExceededError as exc:
            LOGGER.warning("Skipped %s folio: %s", label, exc)
        except Exception:
            LOGGER.exception("Creating %s folio failed", label)

    def _create_folio_for_recent_customer(self) -> None:
        with session_scope(self._session_factory) as session:
            customers = CustomerRepository(session).list_recent(limit=10)
            schemes = SchemeRepository(session).list_active(limit=None)
            if not customers or not schemes:
                LOGGER.debug("No customers or schemes yet; skipping folio creation")
                return
            folio, with_sip = self._open_folio(
                session,
                self._rng.choice(customers),
                self._rng.choice(schemes),
                sip_probability=NEW_CUSTOMER_SIP_PROBABILITY,
            )
        self._record_folio(folio, with_sip)

    def _create_additional_folio(self) -> None:
        with session_scope(self._session_factory) as session:
            customers = CustomerRepository(session).find_eligible_for_new_folio(
                self._settings.max_folios_per_customer, limit=10
            )
            schemes = SchemeRepository(session).list_active(limit=None)
            if not customers or not schemes:
                LOGGER.debug("No eligible customers for an additional folio")
                return
            folio, with_sip = self._open_folio(
                session,
                self._rng.choice(customers),
                self._rng.choice(schemes),
                sip_probability=0.0,
            )
        self._record_folio(folio, with_sip)

    def _simulate_transactions_tick(self) -> None:
        created = 0
        with session_scope(self._session_factory) as session:
            for candidate in FolioRepository(session).find_random_for_transactions(limit=5):
                if self._rng.random() < TRANSACTION_PROBABILITY:
                    self._insert_transaction(session, candidate)
                    created += 1
        self._stats.increment("transactions_created", created)
        if created:
            LOGGER.info("Simulated %d transactions", created)

    def process_settlements(self) -> SettlementReport:
        """Settle one batch of SUBMITTED transactions older than the delay.

        Each transaction is settled in its own database transaction, so one
        bad row cannot roll back the rest of the batch.
        """

        now = self._clock()
        cutoff = now - timedelta(seconds=self._settings.settlement_processing_delay)
        with session_scope(self._session_factory) as session:
            pending = TransactionRepository(session).find_pending_for_settlement(
                cutoff=cutoff, now=now, limit=self._settings.settlement_batch_size
            )
            pending_ids = [transaction.id for transaction in pending]

        report = SettlementReport(examined=len(pending_ids))
        for transaction_id in pending_ids:
            outcome = simulate_settlement_outcome(self._rng)
            try:
                with session_scope(self._session_factory) as session:
                    result = self._settle(session, transaction_id, outcome, now)
            except Exception:
                report.errors += 1
                LOGGER.exception("Settlement of transaction id=%s failed", transaction_id)
                continue
            if result is SettlementStatus.PROCESSED:
                report.processed += 1
            elif result is SettlementStatus.REJECTED:
                report.rejected += 1
            elif result is SettlementStatus.FAILED:
                report.failed += 1

        self._stats.increment("settlements_processed", report.processed)
        self._stats.increment("settlements_rejected", report.rejected)
        self._stats.increment("settlements_failed", report.failed)
        if report.examined:
            LOGGER.info(
                "Settlement batch: %d examined, %d settled, %d rejected, %d retrying, %d errors",
                report.examined,
                report.processed,
                report.rejected,
                report.failed,
                report.errors,
            )
        return report

    def _settle(
        self,
        session: Session,
        transaction_id: int,
        outcome: SettlementOutcome,
        now: datetime,
    ) -> SettlementStatus | None:
        transactions = TransactionRepository(session)
        transaction = transactions.get(transaction_id)
        if transaction is None:
            return None
        reference = settlement_reference(now, self._rng)

        if outcome.succeeded:
            if not transaction.is_processed():
                nav = transaction.nav
                if nav is None:
                    nav = SchemeRepository(session).get(transaction.scheme_id).nav
                transactions.process(transaction, Decimal(nav), now=now)
            if not transactions.mark_settled(transaction, reference, now=now):
                return None
            LOGGER.debug("Transaction %s settled ref=%s", transaction.transaction_number, reference)
            return SettlementStatus.PROCESSED

        if outcome.kind is OutcomeKind.REJECTED:
            if not transactions.reject(transaction, outcome.reason, reference, now=now):
                return None
            LOGGER.info("Transaction %s rejected: %s", transaction.transaction_number, outcome.reason)
            return SettlementStatus.REJECTED

        status = transactions.record_settlement_failure(
            transaction,
            outcome.reason,
            reference,
            now=now,
            max_attempts=self._settings.settlement_max_attempts,
            backoff_seconds=self._settings.settlement_retry_backoff,
        )
        LOGGER.warning(
            "Transaction %s technical failure; settlement now %s",
            transaction.transaction_number,
            status.value,
        )
        return status

    def execute_due_sips(self) -> SipExecutionReport:
        now = self._clock()
        with session_scope(self._session_factory) as session:
            due = SipRepository(session).find_due_for_execution(now.date())

        report = SipExecutionReport(due=len(due))
        for item in due:
            try:
                with session_scope(self._session_factory) as session:
                    sips = SipRepository(session)
                    sip = sips.get(item.sip_id)
                    if sip is None:
                        report.skipped += 1
                        continue
                    sips.execute(
                        sip,
                        item.nav,
                        transaction_number=transaction_number(now, self._rng),
                        now=now,
                    )
            except SipStateError as exc:
                report.skipped += 1
                LOGGER.warning("Skipped SIP %s: %s", item.sip_number, exc)
                continue
            except Exception:
                report.failed += 1
                LOGGER.exception("Execution of SIP %s failed", item.sip_number)
                continue
            report.executed += 1

        self._stats.increment("sips_executed", report.executed)
        self._stats.increment("transactions_created", report.executed)
        if report.due:
            LOGGER.info(
                "SIP run: %d due, %d executed, %d skipped, %d failed",
                report.due,
                report.executed,
                report.skipped,
                report.failed,
            )
        return report

    def update_navs(self) -> int:
        today = self._clock().date()
        with session_scope(self._session_factory) as session:
            schemes = SchemeRepository(session)
            active = schemes.list_active(limit=None)
            for scheme in active:
                schemes.update_nav(scheme, scheme.simulate_nav_movement(self._rng), today)
        self._stats.increment("nav_updates", len(active))
        LOGGER.info("Updated NAV for %d schemes", len(active))
        return len(active)

    def _persisted_totals(self) -> PersistedTotals:
        with session_scope(self._session_factory) as session:
            return PersistedTotals(
                customers=CustomerRepository(session).count(),
                folios=FolioRepository(session).count(),
                transactions=TransactionRepository(session).count(),
                sips=SipRepository(session).count(),
            )

    def _elapsed_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        return max(0.0, (self._clock() - self._started_at).total_seconds())

    def get_status(self) -> SimulationStatus:
        return SimulationStatus(
            state=self.state.value,
            is_running=self._running,
            is_paused=self._paused,
            started_at=self._started_at,
            uptime_seconds=self._elapsed_seconds() if self._running else 0.0,
            active_tasks=self.active_tasks,
            intervals=self.intervals(),
            totals=self._persisted_totals(),
            session_stats=self._stats.snapshot(),
        )

    def get_metrics(self) -> SimulationMetrics:
        elapsed = self._elapsed_seconds()
        hours = max(1.0, elapsed / 3600)
        stats = self._stats.snapshot()
        return SimulationMetrics(
            runtime_seconds=elapsed,
            totals=self._persisted_totals(),
            session_stats=stats,
            performance=SimulationPerformance(
                customers_per_hour=round(stats.customers_created / hours, 2),
                transactions_per_hour=round(stats.transactions_created / hours, 2),
            ),
        )
