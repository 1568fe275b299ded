"""Entity repositories over a caller-owned SQLAlchemy session."""

from .customer_repository import CustomerRepository
from .folio_repository import FolioCandidate, FolioRepository, FolioSummary
from .holding_repository import HoldingDrift, HoldingRepository, PortfolioSummary
from .scheme_repository import NavMovement, SchemeRepository
from .sip_repository import DueSip, SipRepository
from .transaction_repository import ModeStatistics, TransactionRepository

__all__ = [
    "CustomerRepository",
    "DueSip",
    "FolioCandidate",
    "FolioRepository",
    "FolioSummary",
    "HoldingDrift",
    "HoldingRepository",
    "ModeStatistics",
    "NavMovement",
    "PortfolioSummary",
    "SchemeRepository",
    "SipRepository",
    "TransactionRepository",
]
