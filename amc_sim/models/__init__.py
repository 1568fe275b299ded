"""Database models for the AMC simulation."""
from __future__ import annotations

from .base import Base
from .customers import Customer
from .enums import (
    FolioStatus,
    KycStatus,
    RiskProfile,
    SchemeCategory,
    SettlementStatus,
    SipFrequency,
    SipStatus,
    TransactionMode,
    TransactionStatus,
    TransactionType,
)
from .folios import Folio
from .holdings import Holding
from .schemes import NavHistory, Scheme
from .sips import SipRegistration
from .transactions import Transaction

__all__ = [
    "Base",
    "Customer",
    "Folio",
    "FolioStatus",
    "Holding",
    "KycStatus",
    "NavHistory",
    "RiskProfile",
    "Scheme",
    "SchemeCategory",
    "SettlementStatus",
    "SipFrequency",
    "SipRegistration",
    "SipStatus",
    "Transaction",
    "TransactionMode",
    "TransactionStatus",
    "TransactionType",
]
