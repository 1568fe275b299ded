"""Systematic investment plan registrations."""
from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import ID_TYPE, Base, TimestampMixin
from .enums import SipStatus


class SipRegistration(TimestampMixin, Base):
    __tablename__ = "sip_registrations"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    sip_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    customer_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("customers.id"), nullable=False)
    folio_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("folios.id"), nullable=False, index=True)
    scheme_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("schemes.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    frequency: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date)
    next_execution_date: Mapped[date | None] = mapped_column(Date, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SipStatus.ACTIVE.value)
    execution_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_executions: Mapped[int | None] = mapped_column(Integer)

    @property
    def is_active(self) -> bool:
        return self.status == SipStatus.ACTIVE

    def remaining_executions(self) -> int | None:
        """Executions left before ``max_executions``; ``None`` when unbounded."""

        if self.max_executions is None:
            return None
        return max(0, self.max_executions - self.execution_count)

    def total_invested(self) -> Decimal:
        return Decimal(self.amount) * self.execution_count
