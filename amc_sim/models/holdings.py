"""Per folio and scheme position aggregate."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import ID_TYPE, Base, TimestampMixin


class Holding(TimestampMixin, Base):
    """Running unit and cost totals; only the holdings repository writes here."""

    __tablename__ = "holdings"
    __table_args__ = (UniqueConstraint("folio_id", "scheme_id", name="uq_holdings_folio_scheme"),)

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    folio_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("folios.id"), nullable=False)
    scheme_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("schemes.id"), nullable=False)
    customer_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("customers.id"), nullable=False)
    total_units: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False, default=Decimal("0"))
    invested_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    current_value: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    last_transaction_date: Mapped[datetime | None] = mapped_column(DateTime)
