"""Random drafts for customers, folios, transactions and SIP registrations."""
from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Sequence

from amc_sim.domain.calendar import add_years
from amc_sim.domain.drafts import CustomerDraft, FolioDraft, SipDraft, TransactionDraft
from amc_sim.domain.pricing import AMOUNT_QUANTUM
from amc_sim.models.enums import (
    KycStatus,
    RiskProfile,
    SipFrequency,
    TransactionMode,
    TransactionType,
)

from .identifiers import folio_number, sip_number, transaction_number
from .identity import IdentityGenerator


@dataclass(frozen=True)
class TransactionKind:
    """How a simulated instruction maps onto type, mode and amount band."""

    label: str
    weight: int
    transaction_type: TransactionType
    transaction_mode: TransactionMode
    min_amount: int
    max_amount: int


TRANSACTION_KINDS: Sequence[TransactionKind] = (
    TransactionKind("SIP", 40, TransactionType.PURCHASE, TransactionMode.SIP, 500, 10_000),
    TransactionKind("LUMPSUM", 30, TransactionType.PURCHASE, TransactionMode.LUMPSUM, 1_000, 100_000),
    TransactionKind("STP", 20, TransactionType.PURCHASE, TransactionMode.STP, 1_000, 50_000),
    TransactionKind("REDEMPTION", 10, TransactionType.REDEMPTION, TransactionMode.REDEMPTION, 1_000, 25_000),
)

SIP_AMOUNTS: dict[SipFrequency, Sequence[int]] = {
    SipFrequency.MONTHLY: (500, 1000, 1500, 2000, 2500, 3000, 5000, 10000),
    SipFrequency.QUARTERLY: (1500, 3000, 4500, 6000, 7500, 9000, 15000, 30000),
}


def random_amount(rng: random.Random, low: float, high: float) -> Decimal:
    return Decimal(str(rng.uniform(low, high))).quantize(AMOUNT_QUANTUM)


def generate_customer(identity: IdentityGenerator, rng: random.Random, today: date) -> CustomerDraft:
    first_name, last_name = identity.person_name()
    age = rng.randint(18, 80)
    try:
        born = today.replace(year=today.year - age)
    except ValueError:  # 29 February
        born = today.replace(year=today.year - age, day=28)
    return CustomerDraft(
        pan_number=identity.pan_number(),
        first_name=first_name,
        last_name=last_name,
        email=identity.email(first_name, last_name),
        phone=identity.phone(),
        date_of_birth=born,
        address=identity.address(),
        kyc_status=(KycStatus.COMPLETED if rng.random() < 0.8 else KycStatus.PENDING).value,
        risk_profile=rng.choice(list(RiskProfile)).value,
    )


def generate_folio(
    customer_id: int,
    scheme_id: int,
    identity: IdentityGenerator,
    rng: random.Random,
) -> FolioDraft:
    def _maybe_holder(probability: float) -> str | None:
        if rng.random() >= probability:
            return None
        first, last = identity.person_name()
        return f"{first} {last}"

    return FolioDraft(
        folio_number=folio_number(customer_id, rng),
        customer_id=customer_id,
        scheme_id=scheme_id,
        nomination_registered=rng.random() < 0.3,
        joint_holder_1=_maybe_holder(0.2),
        joint_holder_2=_maybe_holder(0.1),
    )


def pick_transaction_kind(rng: random.Random) -> TransactionKind:
    weights = [kind.weight for kind in TRANSACTION_KINDS]
    return rng.choices(TRANSACTION_KINDS, weights=weights, k=1)[0]


def generate_transaction(
    *,
    folio_id: int,
    scheme_id: int,
    customer_id: int,
    nav: Decimal | None,
    rng: random.Random,
    now: datetime,
    kind: TransactionKind | None = None,
) -> TransactionDraft:
    """Draft a SUBMITTED transaction priced at the scheme's NAV at submission."""

    kind = kind or pick_transaction_kind(rng)
    return TransactionDraft(
        transaction_number=transaction_number(now, rng),
        folio_id=folio_id,
        scheme_id=scheme_id,
        customer_id=customer_id,
        transaction_type=kind.transaction_type.value,
        transaction_mode=kind.transaction_mode.value,
        amount=random_amount(rng, kind.min_amount, kind.max_amount),
        transaction_date=now,
        nav=nav,
        remarks=f"Simulated {kind.label} transaction",
    )


def generate_sip(
    *,
    customer_id: int,
    folio_id: int,
    scheme_id: int,
    rng: random.Random,
    today: date,
) -> SipDraft:
    frequency = rng.choice((SipFrequency.MONTHLY, SipFrequency.QUARTERLY))
    start = today + timedelta(days=rng.randint(0, 29))

    end_date = None
    max_executions = None
    if rng.random() < 0.6:
        if rng.random() < 0.5:
            end_date = add_years(start, rng.randint(1, 5))
        else:
            max_executions = rng.randint(12, 120)

    return SipDraft(
        sip_number=sip_number(today, rng),
        customer_id=customer_id,
        folio_id=folio_id,
        scheme_id=scheme_id,
        amount=Decimal(rng.choice(SIP_AMOUNTS[frequency])).quantize(AMOUNT_QUANTUM),
        frequency=frequency.value,
        start_date=start,
        end_date=end_date,
        max_executions=max_executions,
    )
