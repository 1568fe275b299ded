"""Status and classification codes stored as plain strings."""
from __future__ import annotations

from enum import Enum


class KycStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class RiskProfile(str, Enum):
    CONSERVATIVE = "CONSERVATIVE"
    MODERATE = "MODERATE"
    AGGRESSIVE = "AGGRESSIVE"


class SchemeCategory(str, Enum):
    EQUITY = "EQUITY"
    DEBT = "DEBT"
    HYBRID = "HYBRID"


class FolioStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class TransactionType(str, Enum):
    """Direction of money relative to the scheme."""

    PURCHASE = "PURCHASE"
    REDEMPTION = "REDEMPTION"
    SWITCH_IN = "SWITCH_IN"
    SWITCH_OUT = "SWITCH_OUT"
    DIVIDEND = "DIVIDEND"


class TransactionMode(str, Enum):
    """Channel through which a transaction was instructed."""

    SIP = "SIP"
    LUMPSUM = "LUMPSUM"
    STP = "STP"
    SWP = "SWP"
    REDEMPTION = "REDEMPTION"
    DIVIDEND = "DIVIDEND"


class TransactionStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    PROCESSED = "PROCESSED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class SettlementStatus(str, Enum):
    """External clearing (CAMS) state, independent of the lifecycle status."""

    PENDING = "PENDING"
    PROCESSED = "PROCESSED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"


class SipFrequency(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class SipStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    @property
    def is_terminal(self) -> bool:
        return self in (SipStatus.CANCELLED, SipStatus.COMPLETED)
