"""Calendar scheduled housekeeping jobs, independent of the simulation timers."""
from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Callable
from zoneinfo import ZoneInfo

from sqlalchemy.orm import sessionmaker

from amc_sim.core.config import MaintenanceSettings
from amc_sim.core.errors import UnknownJobError
from amc_sim.core.log import get_logger, log_context, timeit
from amc_sim.db.session import session_scope
from amc_sim.domain.calendar import add_years
from amc_sim.repositories import (
    CustomerRepository,
    FolioRepository,
    HoldingDrift,
    HoldingRepository,
    ModeStatistics,
    NavMovement,
    PortfolioSummary,
    SchemeRepository,
    SipRepository,
    TransactionRepository,
)

LOGGER = get_logger(__name__)

_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass(frozen=True)
class CalendarSchedule:
    """A wall-clock trigger: a time of day, optionally limited to a weekday or a day of month.

    ``day_of_week`` follows :meth:`datetime.weekday` (Monday is 0).
    """

    hour: int
    minute: int = 0
    day_of_week: int | None = None
    day_of_month: int | None = None

    def matches(self, day: date) -> bool:
        if self.day_of_week is not None and day.weekday() != self.day_of_week:
            return False
        if self.day_of_month is not None and day.day != self.day_of_month:
            return False
        return True

    def next_after(self, moment: datetime) -> datetime:
        """First trigger strictly after ``moment``, in ``moment``'s timezone."""

        candidate = datetime.combine(moment.date(), time(self.hour, self.minute), tzinfo=moment.tzinfo)
        if candidate <= moment:
            candidate += timedelta(days=1)
        for _ in range(366):
            if self.matches(candidate.date()):
                return candidate
            candidate += timedelta(days=1)
        raise ValueError(f"Schedule {self.describe()} never fires")

    def describe(self) -> str:
        clock = f"{self.hour:02d}:{self.minute:02d}"
        if self.day_of_month is not None:
            return f"day {self.day_of_month} of each month at {clock}"
        if self.day_of_week is not None:
            return f"every {_WEEKDAYS[self.day_of_week]} at {clock}"
        return f"daily at {clock}"


@dataclass
class NavCleanupReport:
    cutoff: date
    deleted: int


@dataclass
class TransactionAuditReport:
    orphaned_transactions: int
    stale_transactions: int
    drifted_holdings: list[HoldingDrift] = field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.orphaned_transactions or self.stale_transactions or self.drifted_holdings)


@dataclass
class ReconciliationReport:
    rebuilt_holdings: int
    revalued_holdings: int
    summary: PortfolioSummary


@dataclass
class DailyStatisticsReport:
    day: date
    transactions_by_mode: list[ModeStatistics]
    sip_executions: int
    new_customers: int
    new_folios: int
    new_sips: int
    top_nav_movers: list[NavMovement]


@dataclass
class JobState:
    name: str
    schedule: CalendarSchedule
    runner: Callable[[], Any]
    last_run_at: datetime | None = None
    last_status: str | None = None
    last_error: str | None = None
    last_result: Any = None


class MaintenanceJobs:
    """Run the four housekeeping jobs on their calendar, or on demand by name.

    Every job body is isolated: a failure is logged and recorded on the job
    state, never raised to the timer or the caller.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        settings: MaintenanceSettings | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings or MaintenanceSettings()
        self._zone = ZoneInfo(self._settings.timezone)
        self._clock = clock or datetime.now
        self._jobs: dict[str, JobState] = {
            "nav_cleanup": JobState("nav_cleanup", CalendarSchedule(hour=2), self.cleanup_old_nav_history),
            "transaction_audit": JobState(
                "transaction_audit", CalendarSchedule(hour=3, day_of_week=6), self.perform_transaction_audit
            ),
            "portfolio_reconciliation": JobState(
                "portfolio_reconciliation",
                CalendarSchedule(hour=4, day_of_month=1),
                self.perform_portfolio_reconciliation,
            ),
            "daily_stats": JobState("daily_stats", CalendarSchedule(hour=23), self.generate_daily_statistics),
        }
        self._stop: threading.Event | None = None
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()

    @property
    def job_names(self) -> list[str]:
        return list(self._jobs)

    @property
    def is_running(self) -> bool:
        return bool(self._threads)

    def start(self) -> None:
        with self._lock:
            if self._threads:
                LOGGER.warning("Maintenance jobs already started")
                return
            # A fresh event per start; threads from an earlier start keep their own.
            stop = self._stop = threading.Event()
            for job in self._jobs.values():
                thread = threading.Thread(
                    target=self._loop, args=(job, stop), name=f"maintenance-{job.name}", daemon=True
                )
                self._threads.append(thread)
                thread.start()
        LOGGER.info("Maintenance jobs started (%s)", self._settings.timezone)

    def stop(self) -> None:
        with self._lock:
            if not self._threads or self._stop is None:
                return
            self._stop.set()
            self._stop = None
            self._threads = []
        LOGGER.info("Maintenance jobs stopped")

    def _loop(self, job: JobState, stop: threading.Event) -> None:
        while not stop.is_set():
            now = datetime.now(self._zone)
            delay = (job.schedule.next_after(now) - now).total_seconds()
            if stop.wait(delay):
                return
            self._execute(job)

    def _execute(self, job: JobState) -> JobState:
        job.last_run_at = self._clock()
        try:
            with log_context.bound(job=job.name):
                job.last_result = job.runner()
        except Exception as exc:
            job.last_result = None
            job.last_status = "failed"
            job.last_error = str(exc)
            LOGGER.exception("Maintenance job %s failed", job.name)
        else:
            job.last_status = "success"
            job.last_error = None
        return job

    def run_job(self, name: str) -> JobState:
        job = self._jobs.get(name)
        if job is None:
            raise UnknownJobError(name)
        LOGGER.info("Manually running maintenance job %s", name)
        return self._execute(job)

    def get_job_status(self) -> list[dict[str, Any]]:
        now = datetime.now(self._zone)
        running = self.is_running
        return [
            {
                "name": job.name,
                "schedule": job.schedule.describe(),
                "scheduled": running,
                "next_run": job.schedule.next_after(now) if running else None,
                "last_run": job.last_run_at,
                "last_status": job.last_status,
                "last_error": job.last_error,
            }
            for job in self._jobs.values()
        ]

    @staticmethod
    def describe_result(job: JobState) -> dict[str, Any] | None:
        if job.last_result is None:
            return None
        return asdict(job.last_result)

    def cleanup_old_nav_history(self) -> NavCleanupReport:
        cutoff = add_years(self._clock().date(), -self._settings.nav_retention_years)
        with timeit("NAV history cleanup", logger=LOGGER, unit="rows") as timer:
            with session_scope(self._session_factory) as session:
                deleted = SchemeRepository(session).prune_nav_history(cutoff)
            timer.add(deleted)
        LOGGER.info("NAV history older than %s removed: %d rows", cutoff, deleted)
        return NavCleanupReport(cutoff=cutoff, deleted=deleted)

    def perform_transaction_audit(self) -> TransactionAuditReport:
        """Count integrity problems. Nothing is corrected here."""

        stale_before = self._clock() - timedelta(hours=self._settings.stale_transaction_hours)
        with timeit("Transaction audit", logger=LOGGER):
            with session_scope(self._session_factory) as session:
                transactions = TransactionRepository(session)
                report = TransactionAuditReport(
                    orphaned_transactions=transactions.count_orphaned(),
                    stale_transactions=transactions.count_stale_submitted(stale_before),
                    drifted_holdings=HoldingRepository(session).find_drift(
                        Decimal(str(self._settings.drift_epsilon))
                    ),
                )
        if report.orphaned_transactions:
            LOGGER.warning("Found %d orphaned transactions", report.orphaned_transactions)
        if report.stale_transactions:
            LOGGER.warning("Found %d stale unprocessed transactions", report.stale_transactions)
        if report.drifted_holdings:
            LOGGER.warning("Found %d holdings inconsistencies", len(report.drifted_holdings))
        if not report.has_issues:
            LOGGER.info("Transaction audit found no issues")
        return report

    def perform_portfolio_reconciliation(self) -> ReconciliationReport:
        """Rebuild drifted holdings from their transactions, then mark everything to market."""

        epsilon = Decimal(str(self._settings.drift_epsilon))
        with timeit("Portfolio reconciliation", logger=LOGGER, unit="holdings") as timer:
            with session_scope(self._session_factory) as session:
                holdings = HoldingRepository(session)
                drifted = holdings.find_drift(epsilon)
                for drift in drifted:
                    holdings.rebuild(drift.folio_id, drift.scheme_id)
                revalued = holdings.revalue_all()
                summary = holdings.portfolio_summary()
            timer.add(revalued)
        LOGGER.info(
            "Portfolio reconciled: %d customers, %d folios, %d holdings, AUM %s, invested %s",
            summary.total_customers,
            summary.total_folios,
            summary.total_holdings,
            summary.total_aum,
            summary.total_invested,
        )
        return ReconciliationReport(rebuilt_holdings=len(drifted), revalued_holdings=revalued, summary=summary)

    def generate_daily_statistics(self) -> DailyStatisticsReport:
        today = self._clock().date()
        day = today - timedelta(days=1)
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)
        with session_scope(self._session_factory) as session:
            report = DailyStatisticsReport(
                day=day,
                transactions_by_mode=TransactionRepository(session).statistics_by_mode(start, end),
                sip_executions=SipRepository(session).count_executions_between(start, end),
                new_customers=CustomerRepository(session).count_created_between(start, end),
                new_folios=FolioRepository(session).count_created_between(start, end),
                new_sips=SipRepository(session).count_created_between(start, end),
                top_nav_movers=SchemeRepository(session).nav_movers(day, today, limit=5),
            )
        LOGGER.info(
            "Daily statistics for %s: %d transactions, %d SIP executions, %d new customers",
            day,
            sum(mode.count for mode in report.transactions_by_mode),
            report.sip_executions,
            report.new_customers,
        )
        return report
