"""Human readable reference numbers."""
from __future__ import annotations

import random
from datetime import date, datetime


def folio_number(customer_id: int, rng: random.Random) -> str:
    """``########/NN``: eight random digits, then the customer id padded to two."""

    return f"{rng.randint(0, 99_999_999):08d}/{customer_id:02d}"


def transaction_number(now: datetime, rng: random.Random) -> str:
    return f"TXN{now:%Y%m%d}{rng.randint(0, 9_999_999_999):010d}"


def sip_number(today: date, rng: random.Random) -> str:
    return f"SIP{today:%Y%m%d}{rng.randint(0, 9_999_999):07d}"


def settlement_reference(now: datetime, rng: random.Random) -> str:
    return f"CAMS{int(now.timestamp() * 1000)}{rng.randint(0, 999):03d}"
