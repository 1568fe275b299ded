"""Data access and execution of SIP registrations."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func, or_, select, update

from amc_sim.core.errors import NotFoundError, SipStateError
from amc_sim.core.log import get_logger
from amc_sim.domain.calendar import plan_sip_advance
from amc_sim.domain.drafts import SipDraft, SipUpdate, TransactionDraft
from amc_sim.models import (
    Scheme,
    SipRegistration,
    SipStatus,
    Transaction,
    TransactionMode,
    TransactionType,
)

from .base import BaseRepository
from .transaction_repository import TransactionRepository

LOGGER = get_logger(__name__)

# Allowed source states for each manual transition.
_TRANSITIONS: dict[SipStatus, tuple[SipStatus, ...]] = {
    SipStatus.PAUSED: (SipStatus.ACTIVE,),
    SipStatus.ACTIVE: (SipStatus.PAUSED,),
    SipStatus.CANCELLED: (SipStatus.ACTIVE, SipStatus.PAUSED),
}


@dataclass(frozen=True)
class DueSip:
    sip_id: int
    sip_number: str
    nav: Decimal


class SipRepository(BaseRepository):
    def __init__(self, session, transactions: TransactionRepository | None = None) -> None:
        super().__init__(session)
        self._transactions = transactions or TransactionRepository(session)

    def create(self, draft: SipDraft) -> SipRegistration:
        sip = SipRegistration(**draft.as_row(), status=SipStatus.ACTIVE.value, execution_count=0)
        self._session.add(sip)
        self._session.flush()
        LOGGER.debug("SIP registered %s %s amount=%s", sip.sip_number, sip.frequency, sip.amount)
        return sip

    def get(self, sip_id: int) -> SipRegistration | None:
        return self._session.get(SipRegistration, sip_id)

    def find_by_number(self, sip_number: str) -> SipRegistration | None:
        return self._session.scalars(
            select(SipRegistration).where(SipRegistration.sip_number == sip_number)
        ).first()

    def list_for_folio(self, folio_id: int) -> list[SipRegistration]:
        return list(
            self._session.scalars(
                select(SipRegistration)
                .where(SipRegistration.folio_id == folio_id)
                .order_by(SipRegistration.created_at.desc())
            )
        )

    def count(self) -> int:
        return self._scalar(select(func.count()).select_from(SipRegistration))

    def count_created_between(self, start: datetime, end: datetime) -> int:
        return self._scalar(
            select(func.count())
            .select_from(SipRegistration)
            .where(SipRegistration.created_at >= start, SipRegistration.created_at < end)
        )

    def count_executions_between(self, start: datetime, end: datetime) -> int:
        return self._scalar(
            select(func.count())
            .select_from(Transaction)
            .where(
                Transaction.transaction_mode == TransactionMode.SIP.value,
                Transaction.remarks.like("SIP execution%"),
                Transaction.transaction_date >= start,
                Transaction.transaction_date < end,
            )
        )

    def find_due_for_execution(self, today: date) -> list[DueSip]:
        """ACTIVE SIPs whose next date has arrived and whose limits are not reached."""

        statement = (
            select(SipRegistration.id, SipRegistration.sip_number, Scheme.nav)
            .join(Scheme, Scheme.id == SipRegistration.scheme_id)
            .where(
                SipRegistration.status == SipStatus.ACTIVE.value,
                SipRegistration.next_execution_date <= today,
                or_(SipRegistration.end_date.is_(None), SipRegistration.end_date >= today),
                or_(
                    SipRegistration.max_executions.is_(None),
                    SipRegistration.execution_count < SipRegistration.max_executions,
                ),
            )
            .order_by(SipRegistration.next_execution_date, SipRegistration.id)
        )
        return [
            DueSip(sip_id=row[0], sip_number=row[1], nav=self._to_decimal(row[2]))
            for row in self._session.execute(statement)
        ]

    def execute(
        self,
        sip: SipRegistration,
        nav: Decimal,
        *,
        transaction_number: str,
        now: datetime,
    ) -> Transaction:
        """Run one instalment: buy at ``nav``, process it and advance the schedule.

        The schedule advance is claimed first with a conditional UPDATE on the
        current execution count, so two concurrent executions of the same
        instalment cannot both succeed. Everything happens in the caller's
        transaction.
        """

        if sip.status != SipStatus.ACTIVE:
            raise SipStateError(f"SIP {sip.sip_number} is {sip.status}, not ACTIVE")

        advance = plan_sip_advance(
            frequency=sip.frequency,
            current_next_date=sip.next_execution_date or sip.start_date,
            execution_count=sip.execution_count,
            max_executions=sip.max_executions,
            end_date=sip.end_date,
        )
        claimed = self._session.execute(
            update(SipRegistration)
            .where(
                SipRegistration.id == sip.id,
                SipRegistration.status == SipStatus.ACTIVE.value,
                SipRegistration.execution_count == sip.execution_count,
            )
            .values(
                execution_count=advance.execution_count,
                next_execution_date=advance.next_execution_date,
                status=advance.status.value,
                updated_at=now,
            )
        )
        if claimed.rowcount == 0:
            raise SipStateError(f"SIP {sip.sip_number} was executed concurrently")

        transaction = self._transactions.create(
            TransactionDraft(
                transaction_number=transaction_number,
                folio_id=sip.folio_id,
                scheme_id=sip.scheme_id,
                customer_id=sip.customer_id,
                transaction_type=TransactionType.PURCHASE.value,
                transaction_mode=TransactionMode.SIP.value,
                amount=Decimal(sip.amount),
                transaction_date=now,
                nav=nav,
                remarks=f"SIP execution for SIP ID: {sip.sip_number}",
            )
        )
        self._transactions.process(transaction, nav, now=now)
        self._session.refresh(sip)
        if advance.completed:
            LOGGER.info("SIP %s completed after %d executions", sip.sip_number, advance.execution_count)
        return transaction

    def _transition(self, sip_id: int, target: SipStatus) -> SipRegistration:
        sip = self.get(sip_id)
        if sip is None:
            raise NotFoundError("SIP", sip_id)
        allowed = _TRANSITIONS[target]
        result = self._session.execute(
            update(SipRegistration)
            .where(
                SipRegistration.id == sip_id,
                SipRegistration.status.in_([status.value for status in allowed]),
            )
            .values(status=target.value, updated_at=datetime.now())
        )
        if result.rowcount == 0:
            raise SipStateError(f"Cannot move SIP {sip.sip_number} from {sip.status} to {target.value}")
        self._session.refresh(sip)
        LOGGER.info("SIP %s is now %s", sip.sip_number, target.value)
        return sip

    def pause(self, sip_id: int) -> SipRegistration:
        return self._transition(sip_id, SipStatus.PAUSED)

    def resume(self, sip_id: int) -> SipRegistration:
        return self._transition(sip_id, SipStatus.ACTIVE)

    def cancel(self, sip_id: int) -> SipRegistration:
        return self._transition(sip_id, SipStatus.CANCELLED)

    def update(self, sip_id: int, changes: SipUpdate) -> SipRegistration:
        sip = self.get(sip_id)
        if sip is None:
            raise NotFoundError("SIP", sip_id)
        if SipStatus(sip.status).is_terminal:
            raise SipStateError(f"SIP {sip.sip_number} is {sip.status} and can no longer change")
        for field_name, value in changes.changes().items():
            setattr(sip, field_name, value)
        self._session.flush()
        return sip
