"""Investor records."""
from __future__ import annotations

from datetime import date

from sqlalchemy import Date, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import ID_TYPE, Base, TimestampMixin
from .enums import KycStatus, RiskProfile


class Customer(TimestampMixin, Base):
    """An individual investor identified by PAN."""

    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    pan_number: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(15))
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    address: Mapped[str | None] = mapped_column(Text)
    kyc_status: Mapped[str] = mapped_column(String(20), nullable=False, default=KycStatus.PENDING.value)
    risk_profile: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RiskProfile.MODERATE.value
    )

    folios: Mapped[list["Folio"]] = relationship(back_populates="customer")  # noqa: F821

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
