from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_HALF_EVEN, Decimal
from typing import Optional

CENT = Decimal("0.01")
RATE_PLACES = Decimal("0.000001")


def to_minor(amount: Decimal) -> int:
    """Major units (e.g. ``Decimal("12.34")``) to integer cents."""
    return int((amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


def from_minor(amount: int) -> Decimal:
    return (Decimal(amount) / 100).quantize(CENT)


def convert_minor(amount: int, rate: Decimal) -> int:
    """Credited leg of a conversion, rounded up so no value is lost."""
    return int((Decimal(amount) * rate).quantize(Decimal(1), rounding=ROUND_CEILING))


def format_rate(rate: Optional[Decimal]) -> Optional[str]:
    if rate is None:
        return None
    return str(rate.quantize(RATE_PLACES, rounding=ROUND_HALF_EVEN))
