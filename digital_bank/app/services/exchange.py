from __future__ import annotations

from decimal import ROUND_CEILING, Decimal
from typing import Optional

from ..core.config import Settings
from ..core.money import RATE_PLACES
from ..models import Currency


class ExchangeRateService:
    """Quotes the rate that converts an amount in ``source`` into ``target``."""

    def __init__(self, settings: Settings) -> None:
        usd_pen = settings.usd_to_pen_rate
        # Rates round up at six places; together with rounding the credited
        # leg up, a conversion never credits less than the debited value.
        self._rates: dict[tuple[Currency, Currency], Decimal] = {
            (Currency.USD, Currency.PEN): usd_pen.quantize(RATE_PLACES, rounding=ROUND_CEILING),
            (Currency.PEN, Currency.USD): (Decimal(1) / usd_pen).quantize(
                RATE_PLACES, rounding=ROUND_CEILING
            ),
        }

    def rate(self, source: Currency, target: Currency) -> Optional[Decimal]:
        """Return ``None`` for same-currency pairs, which need no conversion."""
        if source == target:
            return None
        try:
            return self._rates[(source, target)]
        except KeyError as exc:
            raise ValueError(f"No exchange rate for {source.value}->{target.value}") from exc
