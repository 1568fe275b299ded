"""Schemas for the maintenance job endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class JobStatusOut(BaseModel):
    name: str
    schedule: str
    scheduled: bool
    next_run: datetime | None = None
    last_run: datetime | None = None
    last_status: str | None = None
    last_error: str | None = None


class JobRunOut(BaseModel):
    name: str
    status: str | None
    ran_at: datetime | None
    error: str | None = None
    result: dict[str, Any] | None = None
