"""Date arithmetic for settlement and SIP schedules."""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TypeVar

from amc_sim.models.enums import SipFrequency, SipStatus

_D = TypeVar("_D", date, datetime)

_MONTH_STEPS = {
    SipFrequency.MONTHLY: 1,
    SipFrequency.QUARTERLY: 3,
    SipFrequency.YEARLY: 12,
}


def add_business_days(start: _D, days: int) -> _D:
    """Move ``days`` weekdays forward from ``start``; Saturdays and Sundays are skipped."""

    result = start
    added = 0
    while added < days:
        result += timedelta(days=1)
        if result.weekday() < 5:
            added += 1
    return result


def settlement_date_for(transaction_type: str, processed_at: datetime) -> datetime:
    """T+3 for redemptions, T+1 for everything else."""

    days = 3 if transaction_type == "REDEMPTION" else 1
    return add_business_days(processed_at, days)


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping the day to the end of the target month."""

    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def add_years(start: date, years: int) -> date:
    return add_months(start, 12 * years)


def next_execution_date(frequency: str, current: date) -> date:
    """Advance ``current`` by one SIP period; unknown frequencies are monthly."""

    try:
        step = _MONTH_STEPS[SipFrequency(frequency)]
    except ValueError:
        step = 1
    return add_months(current, step)


@dataclass(frozen=True)
class SipAdvance:
    """Bookkeeping of a SIP after one successful execution."""

    execution_count: int
    next_execution_date: date | None
    status: SipStatus

    @property
    def completed(self) -> bool:
        return self.status is SipStatus.COMPLETED


def plan_sip_advance(
    *,
    frequency: str,
    current_next_date: date,
    execution_count: int,
    max_executions: int | None,
    end_date: date | None,
) -> SipAdvance:
    """Compute the state a SIP moves to once its current instalment has run.

    The execution cap is checked before the end date. A completed SIP has no
    next execution date.
    """

    new_count = execution_count + 1
    upcoming = next_execution_date(frequency, current_next_date)

    if max_executions is not None and new_count >= max_executions:
        return SipAdvance(new_count, None, SipStatus.COMPLETED)
    if end_date is not None and upcoming > end_date:
        return SipAdvance(new_count, None, SipStatus.COMPLETED)
    return SipAdvance(new_count, upcoming, SipStatus.ACTIVE)
