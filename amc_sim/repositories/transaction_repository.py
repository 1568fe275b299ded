"""Data access and lifecycle transitions for transactions."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, or_, select, update

from amc_sim.core.log import get_logger
from amc_sim.domain.calendar import settlement_date_for
from amc_sim.domain.drafts import TransactionDraft
from amc_sim.domain.pricing import calculate_units
from amc_sim.domain.settlement import RETRIES_EXHAUSTED_REASON, retry_at
from amc_sim.models import Folio, SettlementStatus, Transaction, TransactionStatus

from .base import BaseRepository
from .holding_repository import HoldingRepository

LOGGER = get_logger(__name__)

_OPEN_SETTLEMENT = (SettlementStatus.PENDING.value, SettlementStatus.FAILED.value)


@dataclass(frozen=True)
class ModeStatistics:
    transaction_mode: str
    count: int
    total_amount: Decimal
    average_amount: Decimal


class TransactionRepository(BaseRepository):
    """Transactions plus the two independent state machines they carry.

    Lifecycle: SUBMITTED -> PROCESSED | REJECTED | CANCELLED.
    Settlement: PENDING -> PROCESSED | REJECTED, with FAILED as a retryable
    intermediate state. Each transition is a conditional UPDATE on the
    expected source state, so a lost race changes nothing.
    """

    def __init__(self, session, holdings: HoldingRepository | None = None) -> None:
        super().__init__(session)
        self._holdings = holdings or HoldingRepository(session)

    def create(self, draft: TransactionDraft) -> Transaction:
        transaction = Transaction(
            **draft.as_row(),
            status=TransactionStatus.SUBMITTED.value,
            settlement_status=SettlementStatus.PENDING.value,
        )
        self._session.add(transaction)
        self._session.flush()
        LOGGER.debug(
            "Transaction created %s %s/%s amount=%s",
            transaction.transaction_number,
            transaction.transaction_type,
            transaction.transaction_mode,
            transaction.amount,
        )
        return transaction

    def get(self, transaction_id: int) -> Transaction | None:
        return self._session.get(Transaction, transaction_id)

    def find_by_number(self, transaction_number: str) -> Transaction | None:
        return self._session.scalars(
            select(Transaction).where(Transaction.transaction_number == transaction_number)
        ).first()

    def list_for_folio(self, folio_id: int, *, limit: int = 50, offset: int = 0) -> list[Transaction]:
        statement = (
            select(Transaction)
            .where(Transaction.folio_id == folio_id)
            .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self._session.scalars(statement))

    def count(self) -> int:
        return self._scalar(select(func.count()).select_from(Transaction))

    def count_orphaned(self) -> int:
        """Transactions whose folio no longer exists."""

        return self._scalar(
            select(func.count(Transaction.id))
            .select_from(Transaction)
            .outerjoin(Folio, Folio.id == Transaction.folio_id)
            .where(Folio.id.is_(None))
        )

    def count_stale_submitted(self, before: datetime) -> int:
        return self._scalar(
            select(func.count())
            .select_from(Transaction)
            .where(
                Transaction.status == TransactionStatus.SUBMITTED.value,
                Transaction.transaction_date < before,
            )
        )

    def find_pending_for_settlement(self, *, cutoff: datetime, now: datetime, limit: int = 20) -> list[Transaction]:
        """SUBMITTED transactions awaiting clearing, oldest first.

        A transaction qualifies once it was submitted at or before ``cutoff``
        and is either PENDING or FAILED with its retry time reached.
        """

        due_retry = (Transaction.settlement_status == SettlementStatus.FAILED.value) & (
            Transaction.next_settlement_attempt_at <= now
        )
        statement = (
            select(Transaction)
            .where(
                Transaction.status == TransactionStatus.SUBMITTED.value,
                Transaction.transaction_date <= cutoff,
                or_(Transaction.settlement_status == SettlementStatus.PENDING.value, due_retry),
            )
            .order_by(Transaction.transaction_date.asc(), Transaction.id.asc())
            .limit(limit)
        )
        return list(self._session.scalars(statement))

    def process(self, transaction: Transaction, nav: Decimal, *, now: datetime) -> bool:
        """Price ``transaction`` at ``nav`` and fold it into its holding.

        Returns ``False`` without touching the holding when the transaction is
        no longer SUBMITTED, so repeated calls cannot double count units.
        """

        units = calculate_units(Decimal(transaction.amount), Decimal(nav))
        result = self._session.execute(
            update(Transaction)
            .where(
                Transaction.id == transaction.id,
                Transaction.status == TransactionStatus.SUBMITTED.value,
            )
            .values(
                units=units,
                nav=nav,
                process_date=now,
                settlement_date=settlement_date_for(transaction.transaction_type, now),
                status=TransactionStatus.PROCESSED.value,
                updated_at=now,
            )
        )
        if result.rowcount == 0:
            LOGGER.warning(
                "Transaction %s already left SUBMITTED; skipping processing",
                transaction.transaction_number,
            )
            return False
        self._session.refresh(transaction)
        self._holdings.apply(transaction)
        LOGGER.debug("Transaction %s processed units=%s nav=%s", transaction.transaction_number, units, nav)
        return True

    def mark_settled(self, transaction: Transaction, reference: str, *, now: datetime) -> bool:
        result = self._session.execute(
            update(Transaction)
            .where(Transaction.id == transaction.id, Transaction.settlement_status.in_(_OPEN_SETTLEMENT))
            .values(
                settlement_status=SettlementStatus.PROCESSED.value,
                settlement_reference=reference,
                settlement_processed_at=now,
                settlement_attempts=Transaction.settlement_attempts + 1,
                next_settlement_attempt_at=None,
                updated_at=now,
            )
        )
        return result.rowcount > 0

    def reject(self, transaction: Transaction, reason: str, reference: str, *, now: datetime) -> bool:
        """Reject at settlement; a still SUBMITTED transaction is rejected too."""

        result = self._session.execute(
            update(Transaction)
            .where(Transaction.id == transaction.id, Transaction.settlement_status.in_(_OPEN_SETTLEMENT))
            .values(
                settlement_status=SettlementStatus.REJECTED.value,
                settlement_reference=reference,
                settlement_processed_at=now,
                settlement_attempts=Transaction.settlement_attempts + 1,
                next_settlement_attempt_at=None,
                remarks=reason,
                updated_at=now,
            )
        )
        if result.rowcount == 0:
            return False
        self._session.execute(
            update(Transaction)
            .where(
                Transaction.id == transaction.id,
                Transaction.status == TransactionStatus.SUBMITTED.value,
            )
            .values(status=TransactionStatus.REJECTED.value)
        )
        return True

    def record_settlement_failure(
        self,
        transaction: Transaction,
        reason: str,
        reference: str,
        *,
        now: datetime,
        max_attempts: int,
        backoff_seconds: float,
    ) -> SettlementStatus:
        """Schedule a retry after a technical failure, or reject once attempts run out."""

        attempt = (transaction.settlement_attempts or 0) + 1
        if attempt >= max_attempts:
            self.reject(transaction, RETRIES_EXHAUSTED_REASON, reference, now=now)
            return SettlementStatus.REJECTED
        self._session.execute(
            update(Transaction)
            .where(Transaction.id == transaction.id, Transaction.settlement_status.in_(_OPEN_SETTLEMENT))
            .values(
                settlement_status=SettlementStatus.FAILED.value,
                settlement_attempts=attempt,
                next_settlement_attempt_at=retry_at(now, attempt, backoff_seconds),
                remarks=reason,
                updated_at=now,
            )
        )
        return SettlementStatus.FAILED

    def statistics_by_mode(self, start: datetime, end: datetime) -> list[ModeStatistics]:
        """Per-mode count, sum and mean amount of transactions in ``[start, end)``."""

        statement = (
            select(
                Transaction.transaction_mode,
                func.count(Transaction.id),
                func.coalesce(func.sum(Transaction.amount), 0),
                func.coalesce(func.avg(Transaction.amount), 0),
            )
            .where(Transaction.transaction_date >= start, Transaction.transaction_date < end)
            .group_by(Transaction.transaction_mode)
            .order_by(Transaction.transaction_mode)
        )
        return [
            ModeStatistics(
                transaction_mode=row[0],
                count=int(row[1]),
                total_amount=self._to_decimal(row[2]),
                average_amount=self._to_decimal(row[3]).quantize(Decimal("0.01")),
            )
            for row in self._session.execute(statement)
        ]
