"""Money / rounding helpers.

Centralized so the validator, aggregator and planner share identical
rounding and tolerance semantics. Internal accumulation stays in full float
precision; `round2` is applied only when presenting results.
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP

from tripsplit.models.constants import TOLERANCE


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def is_settled_amount(value: float) -> bool:
    """True when `value` lies inside the [-TOLERANCE, TOLERANCE] dead-zone."""
    return abs(value) <= TOLERANCE
