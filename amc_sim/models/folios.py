"""Folios link one investor to one scheme."""
from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import ID_TYPE, Base, TimestampMixin
from .customers import Customer
from .enums import FolioStatus
from .schemes import Scheme


class Folio(TimestampMixin, Base):
    __tablename__ = "folios"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    folio_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    customer_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("customers.id"), nullable=False, index=True)
    scheme_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("schemes.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=FolioStatus.ACTIVE.value)
    nomination_registered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    joint_holder_1: Mapped[str | None] = mapped_column(String(100))
    joint_holder_2: Mapped[str | None] = mapped_column(String(100))

    customer: Mapped[Customer] = relationship(back_populates="folios")
    scheme: Mapped[Scheme] = relationship()

    @property
    def is_active(self) -> bool:
        return self.status == FolioStatus.ACTIVE
