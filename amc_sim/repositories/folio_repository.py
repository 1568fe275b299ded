"""Data access for folios."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import case, func, select

from amc_sim.core.errors import FolioLimitExceededError
from amc_sim.core.log import get_logger
from amc_sim.domain.drafts import FolioDraft
from amc_sim.models import (
    Customer,
    Folio,
    FolioStatus,
    KycStatus,
    Scheme,
    Transaction,
    TransactionMode,
    TransactionStatus,
)

from .base import BaseRepository

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class FolioCandidate:
    """An active folio eligible for a simulated transaction, with pricing context."""

    folio_id: int
    customer_id: int
    scheme_id: int
    nav: Decimal
    scheme_category: str
    risk_profile: str


@dataclass(frozen=True)
class FolioSummary:
    folio_number: str
    status: str
    transaction_count: int
    total_invested: Decimal
    total_redeemed: Decimal
    last_transaction_date: datetime | None


class FolioRepository(BaseRepository):
    def create(self, draft: FolioDraft, *, max_active_per_customer: int | None = None) -> Folio:
        """Open a folio, refusing customers already at ``max_active_per_customer``."""

        if max_active_per_customer is not None:
            active = self.count_active_for_customer(draft.customer_id)
            if active >= max_active_per_customer:
                raise FolioLimitExceededError(draft.customer_id, max_active_per_customer)
        folio = Folio(**draft.as_row(), status=FolioStatus.ACTIVE.value)
        self._session.add(folio)
        self._session.flush()
        LOGGER.debug("Folio created id=%s number=%s", folio.id, folio.folio_number)
        return folio

    def get(self, folio_id: int) -> Folio | None:
        return self._session.get(Folio, folio_id)

    def find_by_number(self, folio_number: str) -> Folio | None:
        return self._session.scalars(select(Folio).where(Folio.folio_number == folio_number)).first()

    def list_for_customer(self, customer_id: int) -> list[Folio]:
        return list(
            self._session.scalars(
                select(Folio).where(Folio.customer_id == customer_id).order_by(Folio.created_at.desc())
            )
        )

    def count(self) -> int:
        return self._scalar(select(func.count()).select_from(Folio))

    def count_created_between(self, start: datetime, end: datetime) -> int:
        return self._scalar(
            select(func.count()).select_from(Folio).where(Folio.created_at >= start, Folio.created_at < end)
        )

    def count_active_for_customer(self, customer_id: int) -> int:
        return self._scalar(
            select(func.count())
            .select_from(Folio)
            .where(Folio.customer_id == customer_id, Folio.status == FolioStatus.ACTIVE.value)
        )

    def close(self, folio_id: int) -> Folio | None:
        """Soft-close a folio. Closing an already closed folio is a no-op."""

        folio = self.get(folio_id)
        if folio is None:
            return None
        if folio.status != FolioStatus.CLOSED:
            folio.status = FolioStatus.CLOSED.value
            self._session.flush()
            LOGGER.info("Folio closed id=%s number=%s", folio.id, folio.folio_number)
        return folio

    def find_random_for_transactions(self, limit: int = 5) -> list[FolioCandidate]:
        """Random ACTIVE folios whose owner has completed KYC."""

        statement = (
            select(
                Folio.id,
                Folio.customer_id,
                Folio.scheme_id,
                Scheme.nav,
                Scheme.category,
                Customer.risk_profile,
            )
            .join(Customer, Customer.id == Folio.customer_id)
            .join(Scheme, Scheme.id == Folio.scheme_id)
            .where(
                Folio.status == FolioStatus.ACTIVE.value,
                Customer.kyc_status == KycStatus.COMPLETED.value,
            )
            .order_by(self._random_order())
            .limit(limit)
        )
        return [
            FolioCandidate(
                folio_id=row[0],
                customer_id=row[1],
                scheme_id=row[2],
                nav=self._to_decimal(row[3]),
                scheme_category=row[4],
                risk_profile=row[5],
            )
            for row in self._session.execute(statement)
        ]

    def summary(self, folio: Folio) -> FolioSummary:
        """Processed transaction totals for one folio."""

        redemption = Transaction.transaction_mode == TransactionMode.REDEMPTION.value
        statement = select(
            func.count(Transaction.id),
            func.coalesce(func.sum(case((redemption, 0), else_=Transaction.amount)), 0),
            func.coalesce(func.sum(case((redemption, Transaction.amount), else_=0)), 0),
            func.max(Transaction.transaction_date),
        ).where(
            Transaction.folio_id == folio.id,
            Transaction.status == TransactionStatus.PROCESSED.value,
        )
        count, invested, redeemed, last_date = self._session.execute(statement).one()
        return FolioSummary(
            folio_number=folio.folio_number,
            status=folio.status,
            transaction_count=int(count or 0),
            total_invested=self._to_decimal(invested),
            total_redeemed=self._to_decimal(redeemed),
            last_transaction_date=last_date,
        )

