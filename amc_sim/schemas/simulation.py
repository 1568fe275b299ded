"""Schemas describing orchestrator state and manual trigger payloads."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SessionStatistics(BaseModel):
    """Counters accumulated since the last reset, whatever triggered the work."""

    customers_created: int = 0
    folios_created: int = 0
    transactions_created: int = 0
    sips_created: int = 0
    sips_executed: int = 0
    settlements_processed: int = 0
    settlements_rejected: int = 0
    settlements_failed: int = 0
    nav_updates: int = 0


class PersistedTotals(BaseModel):
    customers: int
    folios: int
    transactions: int
    sips: int


class SimulationStatus(BaseModel):
    state: str
    is_running: bool
    is_paused: bool
    started_at: datetime | None = None
    uptime_seconds: float = 0.0
    active_tasks: list[str] = Field(default_factory=list)
    intervals: dict[str, float] = Field(default_factory=dict)
    totals: PersistedTotals
    session_stats: SessionStatistics


class SimulationPerformance(BaseModel):
    customers_per_hour: float
    transactions_per_hour: float


class SimulationMetrics(BaseModel):
    runtime_seconds: float
    totals: PersistedTotals
    session_stats: SessionStatistics
    performance: SimulationPerformance


class TriggerRequest(BaseModel):
    count: int = Field(default=1, ge=1, le=1000)


class TriggerResult(BaseModel):
    requested: int
    created: int
    ids: list[int] = Field(default_factory=list)


class IntervalUpdate(BaseModel):
    """Seconds between firings; omitted fields keep their current value."""

    customer_creation_interval: float | None = Field(default=None, gt=0, le=86400)
    folio_creation_interval: float | None = Field(default=None, gt=0, le=86400)
    transaction_simulation_interval: float | None = Field(default=None, gt=0, le=86400)
    settlement_processing_interval: float | None = Field(default=None, gt=0, le=86400)
    sip_execution_interval: float | None = Field(default=None, gt=0, le=86400)
    nav_update_interval: float | None = Field(default=None, gt=0, le=86400)
