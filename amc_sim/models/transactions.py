"""Transaction time series."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import ID_TYPE, Base, TimestampMixin
from .enums import SettlementStatus, TransactionMode, TransactionStatus


class Transaction(TimestampMixin, Base):
    """An investor instruction against a folio.

    Rows are append-only apart from the lifecycle ``status``, the settlement
    (CAMS) status and the settlement metadata columns.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_settlement_queue", "settlement_status", "status", "transaction_date"),
        Index("ix_transactions_folio_scheme", "folio_id", "scheme_id"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    transaction_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    folio_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("folios.id"), nullable=False)
    scheme_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("schemes.id"), nullable=False)
    customer_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("customers.id"), nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    transaction_mode: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    units: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False, default=Decimal("0"))
    nav: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    transaction_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    process_date: Mapped[datetime | None] = mapped_column(DateTime)
    settlement_date: Mapped[datetime | None] = mapped_column(DateTime)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TransactionStatus.SUBMITTED.value)
    settlement_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SettlementStatus.PENDING.value
    )
    settlement_processed_at: Mapped[datetime | None] = mapped_column(DateTime)
    settlement_reference: Mapped[str | None] = mapped_column(String(50))
    settlement_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_settlement_attempt_at: Mapped[datetime | None] = mapped_column(DateTime)
    source_scheme_id: Mapped[int | None] = mapped_column(ID_TYPE, ForeignKey("schemes.id"))
    remarks: Mapped[str | None] = mapped_column(Text)

    def is_processed(self) -> bool:
        return self.status == TransactionStatus.PROCESSED

    @property
    def is_redemption(self) -> bool:
        return self.transaction_mode == TransactionMode.REDEMPTION
