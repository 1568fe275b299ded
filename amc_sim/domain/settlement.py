"""Simulated CAMS clearing outcomes."""
from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

SUCCESS_RATE = 0.85
REJECTION_RATE = 0.10

REJECTION_REASONS: tuple[str, ...] = (
    "Insufficient funds",
    "Invalid PAN",
    "KYC not completed",
    "Scheme not active",
    "Minimum investment not met",
)
TECHNICAL_FAILURE_REASON = "Technical failure - will retry"
RETRIES_EXHAUSTED_REASON = "Technical failure - retries exhausted"


class OutcomeKind(str, Enum):
    SUCCESS = "SUCCESS"
    REJECTED = "REJECTED"
    TECHNICAL_FAILURE = "TECHNICAL_FAILURE"


@dataclass(frozen=True)
class SettlementOutcome:
    kind: OutcomeKind
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


def simulate_settlement_outcome(rng: random.Random | None = None) -> SettlementOutcome:
    """Draw a clearing outcome: 85% success, 10% rejection, 5% technical failure."""

    source = rng or random
    draw = source.random()
    if draw < SUCCESS_RATE:
        return SettlementOutcome(OutcomeKind.SUCCESS)
    if draw < SUCCESS_RATE + REJECTION_RATE:
        return SettlementOutcome(OutcomeKind.REJECTED, source.choice(REJECTION_REASONS))
    return SettlementOutcome(OutcomeKind.TECHNICAL_FAILURE, TECHNICAL_FAILURE_REASON)


def retry_at(now: datetime, attempt: int, backoff_seconds: float) -> datetime:
    """Exponential backoff: ``backoff * 2**(attempt - 1)`` after ``now``."""

    return now + timedelta(seconds=backoff_seconds * (2 ** max(0, attempt - 1)))
