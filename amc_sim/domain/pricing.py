"""Unit and NAV arithmetic."""
from __future__ import annotations

import random
from decimal import ROUND_HALF_UP, Decimal

UNIT_QUANTUM = Decimal("0.000001")
NAV_QUANTUM = Decimal("0.0001")
AMOUNT_QUANTUM = Decimal("0.01")
NAV_FLOOR = Decimal("1.0000")

# Full width of the daily move, i.e. EQUITY moves within +/-2%.
_VOLATILITY = {
    "EQUITY": Decimal("0.04"),
    "DEBT": Decimal("0.004"),
    "HYBRID": Decimal("0.02"),
}
_DEFAULT_VOLATILITY = Decimal("0.02")


def calculate_units(amount: Decimal, nav: Decimal) -> Decimal:
    """Return ``amount / nav`` rounded to six decimal places."""

    if nav <= 0:
        raise ValueError(f"NAV must be positive, got {nav}")
    return (Decimal(amount) / Decimal(nav)).quantize(UNIT_QUANTUM, rounding=ROUND_HALF_UP)


def simulate_nav_movement(nav: Decimal, category: str, rng: random.Random | None = None) -> Decimal:
    """Apply one step of a category sized random walk to ``nav``.

    The draw is uniform in ``[-width/2, +width/2)``. The result is rounded to
    four places and floored at :data:`NAV_FLOOR`.
    """

    draw = (rng or random).random()
    width = _VOLATILITY.get(str(category).upper(), _DEFAULT_VOLATILITY)
    change = (Decimal(str(draw)) - Decimal("0.5")) * width
    moved = (Decimal(nav) * (1 + change)).quantize(NAV_QUANTUM, rounding=ROUND_HALF_UP)
    return max(moved, NAV_FLOOR)
