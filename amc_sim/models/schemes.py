"""Fund schemes and their daily NAV series."""
from __future__ import annotations

import random
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from amc_sim.domain.pricing import simulate_nav_movement

from .base import ID_TYPE, Base, TimestampMixin


class Scheme(TimestampMixin, Base):
    """A mutual fund scheme offered by the AMC."""

    __tablename__ = "schemes"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    scheme_code: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    scheme_name: Mapped[str] = mapped_column(String(255), nullable=False)
    amc_code: Mapped[str] = mapped_column(String(10), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    sub_category: Mapped[str | None] = mapped_column(String(50))
    nav: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=Decimal("10.0000"))
    minimum_investment: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("1000.00")
    )
    minimum_sip: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("500.00"))
    exit_load: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))
    expense_ratio: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("1.50"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    launch_date: Mapped[date | None] = mapped_column(Date)

    def simulate_nav_movement(self, rng: random.Random | None = None) -> Decimal:
        """Return the next NAV of a random walk sized by category; never below 1."""

        return simulate_nav_movement(Decimal(self.nav), self.category, rng)


class NavHistory(Base):
    """One NAV observation per scheme and calendar day."""

    __tablename__ = "nav_history"
    __table_args__ = (UniqueConstraint("scheme_id", "nav_date", name="uq_nav_history_scheme_date"),)

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    scheme_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("schemes.id"), nullable=False)
    nav_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    nav: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
