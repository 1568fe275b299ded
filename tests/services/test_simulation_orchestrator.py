import itertools
import logging
import random
from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from amc_sim.core.config import SimulationSettings
from amc_sim.core.errors import NoCandidatesError, SimulationStateError
from amc_sim.db import session_scope
from amc_sim.models import KycStatus, SettlementStatus, SipStatus, TransactionStatus
from amc_sim.repositories import (
    CustomerRepository,
    FolioRepository,
    HoldingRepository,
    SchemeRepository,
    SipRepository,
    TransactionRepository,
)
from amc_sim.services.scheduler import TaskScheduler
from amc_sim.services.simulation import SimulationOrchestrator, SimulationState

START = datetime(2024, 1, 1, 10, 0)
ALL_TASKS = {
    "customer_creation",
    "folio_creation",
    "transaction_simulation",
    "settlement_processing",
    "sip_execution",
    "nav_update",
}


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FixedDraw(random.Random):
    """Seeded generator whose ``random()`` always returns ``value``."""

    def __init__(self, value: float, seed: int = 7) -> None:
        super().__init__(seed)
        self.value = value

    def random(self) -> float:
        return self.value


class DriftingDraw(random.Random):
    """Like ``FixedDraw``, but each call adds a billionth so generated numbers differ."""

    def __init__(self, value: float, seed: int = 7) -> None:
        super().__init__(seed)
        self.value = value
        self._calls = itertools.count()

    def random(self) -> float:
        return self.value + next(self._calls) * 1e-9


class SequentialIdentity:
    def __init__(self) -> None:
        self._numbers = itertools.count(1)
        self._current = 0

    def person_name(self) -> tuple[str, str]:
        self._current = next(self._numbers)
        return "Kavya", f"Iyer{self._current}"

    def pan_number(self) -> str:
        return f"PQRST{self._current:04d}Z"

    def email(self, first_name: str, last_name: str) -> str:
        return f"{first_name}.{last_name}@example.in".lower()

    def phone(self) -> str:
        return "9000000000"

    def address(self) -> str:
        return "Koramangala, Bengaluru"


def quiet_settings(**overrides) -> SimulationSettings:
    base = SimulationSettings(
        customer_creation_interval=3600,
        folio_creation_interval=3600,
        transaction_simulation_interval=3600,
        settlement_processing_interval=3600,
        sip_execution_interval=3600,
        nav_update_interval=3600,
    )
    return replace(base, **overrides)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture
def scheduler():
    scheduler = TaskScheduler(max_workers=1)
    yield scheduler
    scheduler.shutdown()


@pytest.fixture
def make_orchestrator(session_factory, clock, scheduler):
    def factory(rng: random.Random | None = None, **overrides) -> SimulationOrchestrator:
        return SimulationOrchestrator(
            session_factory,
            quiet_settings(**overrides),
            identity=SequentialIdentity(),
            rng=rng or random.Random(99),
            clock=clock,
            scheduler=scheduler,
        )

    return factory


def test_state_machine_round_trip(make_orchestrator, caplog) -> None:
    orchestrator = make_orchestrator()
    assert orchestrator.state is SimulationState.STOPPED

    orchestrator.start()
    assert orchestrator.state is SimulationState.RUNNING
    assert set(orchestrator.active_tasks) == ALL_TASKS
    assert orchestrator.started_at == START

    orchestrator.pause()
    assert orchestrator.state is SimulationState.PAUSED
    assert orchestrator.is_running and orchestrator.is_paused
    assert orchestrator.active_tasks == []

    orchestrator.resume()
    assert orchestrator.state is SimulationState.RUNNING
    assert set(orchestrator.active_tasks) == ALL_TASKS

    with caplog.at_level(logging.WARNING):
        orchestrator.start()
        orchestrator.resume()
    assert "Simulation is already running" in caplog.text
    assert "Simulation is not paused" in caplog.text

    orchestrator.stop()
    assert orchestrator.state is SimulationState.STOPPED
    assert orchestrator.active_tasks == []


def test_pause_and_resume_require_a_running_simulation(make_orchestrator) -> None:
    orchestrator = make_orchestrator()

    with pytest.raises(SimulationStateError, match="not running"):
        orchestrator.pause()
    with pytest.raises(SimulationStateError, match="not running"):
        orchestrator.resume()


def test_start_seeds_the_default_schemes(make_orchestrator, session_factory) -> None:
    orchestrator = make_orchestrator()

    orchestrator.start()

    with session_scope(session_factory) as session:
        assert SchemeRepository(session).count_active() == 10
    assert orchestrator.ensure_baseline_schemes() == 0


def test_failed_seed_leaves_the_simulation_stopped(make_orchestrator, monkeypatch) -> None:
    def broken(self, today, *, amc_code="SIMAMC"):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(SchemeRepository, "ensure_defaults", broken)
    orchestrator = make_orchestrator()

    with pytest.raises(RuntimeError, match="database unavailable"):
        orchestrator.start()
    assert orchestrator.state is SimulationState.STOPPED
    assert orchestrator.active_tasks == []


def test_update_intervals_reschedules_live_tasks(make_orchestrator, scheduler) -> None:
    orchestrator = make_orchestrator()
    orchestrator.start()

    settings = orchestrator.update_intervals(customer_creation_interval=7200)

    assert settings.customer_creation_interval == 7200
    assert scheduler.get("customer_creation").interval == 7200
    assert orchestrator.intervals()["customer_creation_interval"] == 7200


def test_update_intervals_rejects_bad_values(make_orchestrator) -> None:
    orchestrator = make_orchestrator()

    with pytest.raises(ValueError, match="Unknown interval"):
        orchestrator.update_intervals(coffee_interval=10)
    with pytest.raises(ValueError, match="must be positive"):
        orchestrator.update_intervals(nav_update_interval=0)


def test_paused_interval_change_applies_on_resume(make_orchestrator, scheduler) -> None:
    orchestrator = make_orchestrator()
    orchestrator.start()
    orchestrator.pause()

    orchestrator.update_intervals(nav_update_interval=600)
    assert scheduler.task_names == []

    orchestrator.resume()
    assert scheduler.get("nav_update").interval == 600


def test_manual_triggers_without_candidates_raise(make_orchestrator) -> None:
    orchestrator = make_orchestrator()
    orchestrator.ensure_baseline_schemes()

    with pytest.raises(NoCandidatesError):
        orchestrator.create_folios(1)
    with pytest.raises(NoCandidatesError):
        orchestrator.create_transactions(1)


def test_manual_triggers_create_rows_and_count_them(make_orchestrator, session_factory) -> None:
    orchestrator = make_orchestrator()
    orchestrator.ensure_baseline_schemes()

    customers = orchestrator.create_customers(4)
    folios = orchestrator.create_folios(3)

    assert len(customers) == 4
    assert len(folios) == 3
    stats = orchestrator.get_status().session_stats
    assert stats.customers_created == 4
    assert stats.folios_created == 3
    with session_scope(session_factory) as session:
        assert CustomerRepository(session).count() == 4
        assert FolioRepository(session).count() == 3
        assert SipRepository(session).count() == stats.sips_created


def test_settlement_round_trip_updates_holdings(
    make_orchestrator, session_factory, session, build, clock
) -> None:
    scheme = build.scheme(nav="10.0000")
    folio = build.folio(build.customer(), scheme)
    transaction = build.transaction(folio, amount="5000.00", when=START)
    session.commit()
    orchestrator = make_orchestrator(rng=FixedDraw(0.1))

    clock.advance(minutes=3)
    assert orchestrator.process_settlements().examined == 0

    clock.advance(minutes=7)
    report = orchestrator.process_settlements()

    assert (report.examined, report.processed, report.errors) == (1, 1, 0)
    with session_scope(session_factory) as check:
        settled = TransactionRepository(check).get(transaction.id)
        assert settled.status == TransactionStatus.PROCESSED.value
        assert settled.settlement_status == SettlementStatus.PROCESSED.value
        assert settled.settlement_reference.startswith("CAMS")
        assert settled.units == Decimal("500")
        holding = HoldingRepository(check).get(folio.id, scheme.id)
        assert holding.total_units == Decimal("500")
        assert holding.invested_amount == Decimal("5000")
        assert holding.current_value == Decimal("5000")
    assert orchestrator.get_status().session_stats.settlements_processed == 1


def test_settlement_rejection_and_technical_failure(
    make_orchestrator, session_factory, session, build, clock
) -> None:
    folio = build.folio(build.customer(), build.scheme())
    rejected = build.transaction(folio, when=START)
    session.commit()
    clock.advance(minutes=10)

    report = make_orchestrator(rng=FixedDraw(0.9)).process_settlements()
    assert report.rejected == 1

    failing = build.transaction(folio, when=START)
    session.commit()
    report = make_orchestrator(rng=FixedDraw(0.99)).process_settlements()
    assert report.failed == 1

    with session_scope(session_factory) as check:
        transactions = TransactionRepository(check)
        assert transactions.get(rejected.id).status == TransactionStatus.REJECTED.value
        retrying = transactions.get(failing.id)
        assert retrying.settlement_status == SettlementStatus.FAILED.value
        assert retrying.status == TransactionStatus.SUBMITTED.value
        assert retrying.next_settlement_attempt_at == clock.now + timedelta(seconds=60)


def test_due_sips_are_executed(make_orchestrator, session_factory, session, build, clock) -> None:
    folio = build.folio(build.customer(), build.scheme(nav="20.0000"))
    sip = build.sip(folio, amount="2000.00", start=date(2024, 1, 1))
    build.sip(folio, start=date(2024, 2, 1))
    session.commit()
    orchestrator = make_orchestrator()

    report = orchestrator.execute_due_sips()

    assert (report.due, report.executed, report.skipped, report.failed) == (1, 1, 0, 0)
    stats = orchestrator.get_status().session_stats
    assert stats.sips_executed == 1
    assert stats.transactions_created == 1
    with session_scope(session_factory) as check:
        executed = SipRepository(check).get(sip.id)
        assert executed.execution_count == 1
        assert executed.next_execution_date == date(2024, 2, 1)
        assert executed.status == SipStatus.ACTIVE.value
        assert HoldingRepository(check).get(folio.id, folio.scheme_id).total_units == Decimal("100")


def test_nav_update_touches_every_active_scheme(make_orchestrator, session_factory) -> None:
    orchestrator = make_orchestrator()
    orchestrator.ensure_baseline_schemes()

    assert orchestrator.update_navs() == 10
    assert orchestrator.get_status().session_stats.nav_updates == 10
    with session_scope(session_factory) as session:
        scheme = SchemeRepository(session).find_by_code("EQU001")
        history = SchemeRepository(session).nav_history(
            scheme.id, from_date=START.date(), to_date=START.date()
        )
        assert [point.nav for point in history] == [scheme.nav]


def test_reset_clears_counters_but_keeps_rows(make_orchestrator, session_factory) -> None:
    orchestrator = make_orchestrator()
    orchestrator.start()
    orchestrator.create_customers(2)

    orchestrator.reset()

    status = orchestrator.get_status()
    assert status.state == SimulationState.STOPPED.value
    assert status.session_stats.customers_created == 0
    assert status.started_at is None
    assert status.totals.customers == 2


def test_metrics_report_hourly_rates(make_orchestrator, clock) -> None:
    orchestrator = make_orchestrator()
    orchestrator.start()
    orchestrator.create_customers(3)

    clock.advance(hours=2)
    metrics = orchestrator.get_metrics()

    assert metrics.runtime_seconds == 7200
    assert metrics.performance.customers_per_hour == 1.5
    assert metrics.totals.customers == 3


def test_metrics_use_one_hour_floor(make_orchestrator, clock) -> None:
    orchestrator = make_orchestrator()
    orchestrator.start()
    orchestrator.create_customers(2)
    clock.advance(minutes=10)

    assert orchestrator.get_metrics().performance.customers_per_hour == 2.0


def test_customer_tick_creates_exactly_one_customer(make_orchestrator, session_factory) -> None:
    orchestrator = make_orchestrator(rng=FixedDraw(0.1))

    orchestrator._create_customer_tick()

    with session_scope(session_factory) as check:
        (customer,) = CustomerRepository(check).list_recent()
        assert customer.pan_number == "PQRST0001Z"
        assert customer.kyc_status == KycStatus.COMPLETED.value
    assert orchestrator.get_status().session_stats.customers_created == 1


@pytest.mark.parametrize(
    ("draw", "folios", "sips"),
    [
        (0.1, 2, 1),  # recent path with a SIP, then an additional folio without one
        (0.65, 1, 0),  # recent path only, SIP draw missed
        (0.95, 0, 0),  # neither path drawn
    ],
)
def test_folio_tick_draws(make_orchestrator, session_factory, session, build, draw, folios, sips) -> None:
    for _ in range(3):
        build.customer()
    session.commit()
    orchestrator = make_orchestrator(rng=DriftingDraw(draw))
    orchestrator.ensure_baseline_schemes()

    orchestrator._create_folio_tick()

    with session_scope(session_factory) as check:
        assert FolioRepository(check).count() == folios
        assert SipRepository(check).count() == sips
    stats = orchestrator.get_status().session_stats
    assert (stats.folios_created, stats.sips_created) == (folios, sips)


def test_capped_recent_customer_does_not_block_additional_folio(
    make_orchestrator, session_factory, session, build, caplog
) -> None:
    scheme = build.scheme()
    older = build.customer()
    newest = build.customer()
    build.folio(newest, scheme)
    session.commit()
    # 0.2 selects the first of the newest-first customers on the recent path.
    orchestrator = make_orchestrator(rng=FixedDraw(0.2), max_folios_per_customer=1)

    with caplog.at_level(logging.WARNING):
        orchestrator._create_folio_tick()

    assert "Skipped recent customer folio" in caplog.text
    with session_scope(session_factory) as check:
        folios = FolioRepository(check)
        assert folios.count_active_for_customer(newest.id) == 1
        assert folios.count_active_for_customer(older.id) == 1
    assert orchestrator.get_status().session_stats.folios_created == 1


def test_transaction_tick_only_uses_kyc_completed_folios(
    make_orchestrator, session_factory, session, build
) -> None:
    scheme = build.scheme()
    verified = build.customer()
    pending = build.customer(kyc_status=KycStatus.PENDING)
    verified_folios = [build.folio(verified, scheme), build.folio(verified, scheme)]
    pending_folio = build.folio(pending, scheme)
    session.commit()
    orchestrator = make_orchestrator(rng=DriftingDraw(0.5))

    orchestrator._simulate_transactions_tick()

    with session_scope(session_factory) as check:
        transactions = TransactionRepository(check)
        assert [len(transactions.list_for_folio(folio.id)) for folio in verified_folios] == [1, 1]
        assert transactions.list_for_folio(pending_folio.id) == []
    assert orchestrator.get_status().session_stats.transactions_created == 2


def test_transaction_tick_touches_at_most_five_folios(
    make_orchestrator, session_factory, session, build
) -> None:
    scheme = build.scheme()
    customer = build.customer()
    for _ in range(7):
        build.folio(customer, scheme)
    session.commit()

    make_orchestrator(rng=DriftingDraw(0.1))._simulate_transactions_tick()

    with session_scope(session_factory) as check:
        assert TransactionRepository(check).count() == 5


def test_transaction_tick_can_draw_nothing(make_orchestrator, session_factory, session, build) -> None:
    build.folio(build.customer(), build.scheme())
    session.commit()
    orchestrator = make_orchestrator(rng=FixedDraw(0.8))

    orchestrator._simulate_transactions_tick()

    with session_scope(session_factory) as check:
        assert TransactionRepository(check).count() == 0
    assert orchestrator.get_status().session_stats.transactions_created == 0
