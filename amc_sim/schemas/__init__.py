"""Pydantic models for the HTTP API."""

from .common import ErrorBody, ok
from .entities import (
    CustomerCreate,
    CustomerOut,
    CustomerUpdateRequest,
    FolioDetail,
    FolioOut,
    FolioSummaryOut,
    HoldingOut,
    NavPointOut,
    SchemeOut,
    SipOut,
    SipUpdateRequest,
    TransactionOut,
)
from .maintenance import JobRunOut, JobStatusOut
from .simulation import (
    IntervalUpdate,
    PersistedTotals,
    SessionStatistics,
    SimulationMetrics,
    SimulationPerformance,
    SimulationStatus,
    TriggerRequest,
    TriggerResult,
)

__all__ = [
    "CustomerCreate",
    "CustomerOut",
    "CustomerUpdateRequest",
    "ErrorBody",
    "FolioDetail",
    "FolioOut",
    "FolioSummaryOut",
    "HoldingOut",
    "IntervalUpdate",
    "JobRunOut",
    "JobStatusOut",
    "NavPointOut",
    "PersistedTotals",
    "SchemeOut",
    "SessionStatistics",
    "SimulationMetrics",
    "SimulationPerformance",
    "SimulationStatus",
    "SipOut",
    "SipUpdateRequest",
    "TransactionOut",
    "TriggerRequest",
    "TriggerResult",
    "ok",
]
