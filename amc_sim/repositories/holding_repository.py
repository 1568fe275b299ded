"""Holdings aggregator: the single writer of the ``holdings`` table."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, case, func, select, update

from amc_sim.core.log import get_logger
from amc_sim.models import (
    Folio,
    FolioStatus,
    Holding,
    Scheme,
    Transaction,
    TransactionMode,
    TransactionStatus,
)

from .base import BaseRepository

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class HoldingDrift:
    holding_id: int
    folio_id: int
    scheme_id: int
    holding_units: Decimal
    transaction_units: Decimal

    @property
    def difference(self) -> Decimal:
        return self.holding_units - self.transaction_units


@dataclass(frozen=True)
class PortfolioSummary:
    total_customers: int
    total_folios: int
    total_holdings: int
    total_aum: Decimal
    total_invested: Decimal


class HoldingRepository(BaseRepository):
    """Maintain per folio and scheme unit totals from processed transactions.

    Totals change through one atomic upsert per transaction, so concurrent
    processing of the same position never loses an update. Valuation is a
    separate statement that always uses the scheme's latest NAV.
    """

    def apply(self, transaction: Transaction) -> None:
        """Fold a processed ``transaction`` into its holding and reprice it."""

        units = Decimal(transaction.units)
        amount = Decimal(transaction.amount)
        if transaction.is_redemption:
            units, amount = -units, -amount

        table = Holding.__table__
        self._upsert(
            table,
            {
                "folio_id": transaction.folio_id,
                "scheme_id": transaction.scheme_id,
                "customer_id": transaction.customer_id,
                "total_units": units,
                "invested_amount": amount,
                "current_value": Decimal("0"),
                "last_transaction_date": transaction.transaction_date,
                "created_at": datetime.now(),
                "updated_at": datetime.now(),
            },
            conflict_columns=("folio_id", "scheme_id"),
            updates=lambda incoming: {
                "total_units": table.c.total_units + incoming.total_units,
                "invested_amount": table.c.invested_amount + incoming.invested_amount,
                "last_transaction_date": incoming.last_transaction_date,
                "updated_at": incoming.updated_at,
            },
        )
        self.revalue(transaction.folio_id, transaction.scheme_id)
        LOGGER.debug(
            "Holding updated folio=%s scheme=%s units=%s amount=%s",
            transaction.folio_id,
            transaction.scheme_id,
            units,
            amount,
        )

    def _current_value_expression(self):
        latest_nav = select(Scheme.nav).where(Scheme.id == Holding.scheme_id).scalar_subquery()
        return Holding.total_units * latest_nav

    def revalue(self, folio_id: int, scheme_id: int) -> int:
        result = self._session.execute(
            update(Holding)
            .where(Holding.folio_id == folio_id, Holding.scheme_id == scheme_id)
            .values(current_value=self._current_value_expression(), updated_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def revalue_all(self) -> int:
        """Mark every holding to market at its scheme's current NAV."""

        result = self._session.execute(
            update(Holding)
            .values(current_value=self._current_value_expression(), updated_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def get(self, folio_id: int, scheme_id: int) -> Holding | None:
        return self._session.scalars(
            select(Holding)
            .where(Holding.folio_id == folio_id, Holding.scheme_id == scheme_id)
            .execution_options(populate_existing=True)
        ).first()

    def list_for_folio(self, folio_id: int) -> list[Holding]:
        return list(
            self._session.scalars(
                select(Holding)
                .where(Holding.folio_id == folio_id)
                .execution_options(populate_existing=True)
            )
        )

    def _signed_units_by_position(self):
        signed_units = case(
            (Transaction.transaction_mode == TransactionMode.REDEMPTION.value, -Transaction.units),
            else_=Transaction.units,
        )
        signed_amount = case(
            (Transaction.transaction_mode == TransactionMode.REDEMPTION.value, -Transaction.amount),
            else_=Transaction.amount,
        )
        return (
            select(
                Transaction.folio_id.label("folio_id"),
                Transaction.scheme_id.label("scheme_id"),
                func.sum(signed_units).label("units"),
                func.sum(signed_amount).label("amount"),
            )
            .where(Transaction.status == TransactionStatus.PROCESSED.value)
            .group_by(Transaction.folio_id, Transaction.scheme_id)
            .subquery()
        )

    def find_drift(self, epsilon: Decimal | float = Decimal("0.001")) -> list[HoldingDrift]:
        """Holdings whose units disagree with their processed transactions."""

        derived = self._signed_units_by_position()
        derived_units = func.coalesce(derived.c.units, 0)
        statement = (
            select(Holding.id, Holding.folio_id, Holding.scheme_id, Holding.total_units, derived_units)
            .outerjoin(
                derived,
                and_(derived.c.folio_id == Holding.folio_id, derived.c.scheme_id == Holding.scheme_id),
            )
            .where(func.abs(Holding.total_units - derived_units) > epsilon)
            .order_by(Holding.id)
        )
        return [
            HoldingDrift(
                holding_id=row[0],
                folio_id=row[1],
                scheme_id=row[2],
                holding_units=self._to_decimal(row[3]),
                transaction_units=self._to_decimal(row[4]),
            )
            for row in self._session.execute(statement)
        ]

    def rebuild(self, folio_id: int, scheme_id: int) -> None:
        """Recompute a holding's totals from its processed transactions."""

        derived = self._signed_units_by_position()
        row = self._session.execute(
            select(derived.c.units, derived.c.amount).where(
                derived.c.folio_id == folio_id, derived.c.scheme_id == scheme_id
            )
        ).first()
        units = self._to_decimal(row.units if row else None)
        amount = self._to_decimal(row.amount if row else None)
        self._session.execute(
            update(Holding)
            .where(Holding.folio_id == folio_id, Holding.scheme_id == scheme_id)
            .values(total_units=units, invested_amount=amount, updated_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        self.revalue(folio_id, scheme_id)
        LOGGER.info("Holding rebuilt folio=%s scheme=%s units=%s", folio_id, scheme_id, units)

    def portfolio_summary(self) -> PortfolioSummary:
        """Aggregate AUM over positive holdings in ACTIVE folios."""

        statement = (
            select(
                func.count(func.distinct(Holding.customer_id)),
                func.count(func.distinct(Holding.folio_id)),
                func.count(Holding.id),
                func.coalesce(func.sum(Holding.current_value), 0),
                func.coalesce(func.sum(Holding.invested_amount), 0),
            )
            .join(Folio, Folio.id == Holding.folio_id)
            .where(Folio.status == FolioStatus.ACTIVE.value, Holding.total_units > 0)
        )
        customers, folios, holdings, aum, invested = self._session.execute(statement).one()
        return PortfolioSummary(
            total_customers=int(customers or 0),
            total_folios=int(folios or 0),
            total_holdings=int(holdings or 0),
            total_aum=self._to_decimal(aum),
            total_invested=self._to_decimal(invested),
        )
