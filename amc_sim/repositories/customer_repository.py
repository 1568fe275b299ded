"""Data access for investors."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, func, select

from amc_sim.core.log import get_logger
from amc_sim.domain.drafts import CustomerDraft, CustomerUpdate
from amc_sim.models import Customer, Folio, FolioStatus

from .base import BaseRepository

LOGGER = get_logger(__name__)


class CustomerRepository(BaseRepository):
    """CRUD and selection queries for :class:`Customer` rows."""

    def create(self, draft: CustomerDraft) -> Customer:
        customer = Customer(**draft.as_row())
        self._session.add(customer)
        self._session.flush()
        LOGGER.debug("Customer created id=%s pan=%s", customer.id, customer.pan_number)
        return customer

    def get(self, customer_id: int) -> Customer | None:
        return self._session.get(Customer, customer_id)

    def find_by_pan(self, pan_number: str) -> Customer | None:
        return self._session.scalars(
            select(Customer).where(Customer.pan_number == pan_number.upper())
        ).first()

    def list_recent(self, *, limit: int = 50, offset: int = 0) -> list[Customer]:
        """Newest customers first."""

        statement = select(Customer).order_by(Customer.created_at.desc(), Customer.id.desc())
        return list(self._session.scalars(statement.limit(limit).offset(offset)))

    def count(self) -> int:
        return self._scalar(select(func.count()).select_from(Customer))

    def count_created_between(self, start: datetime, end: datetime) -> int:
        return self._scalar(
            select(func.count())
            .select_from(Customer)
            .where(Customer.created_at >= start, Customer.created_at < end)
        )

    def find_eligible_for_new_folio(self, max_folios: int, *, limit: int = 10) -> list[Customer]:
        """Random customers holding fewer than ``max_folios`` ACTIVE folios."""

        active_folios = func.count(Folio.id)
        statement = (
            select(Customer)
            .outerjoin(
                Folio,
                and_(Folio.customer_id == Customer.id, Folio.status == FolioStatus.ACTIVE.value),
            )
            .group_by(Customer.id)
            .having(active_folios < max_folios)
            .order_by(self._random_order())
            .limit(limit)
        )
        return list(self._session.scalars(statement))

    def update(self, customer_id: int, changes: CustomerUpdate) -> Customer | None:
        customer = self.get(customer_id)
        if customer is None:
            return None
        for field_name, value in changes.changes().items():
            setattr(customer, field_name, value)
        self._session.flush()
        return customer
