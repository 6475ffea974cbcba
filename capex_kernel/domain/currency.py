"""
Reference-currency normalization (``capex_kernel.domain.currency``).

Responsibility:
    Hold a snapshot of exchange rates as an explicit value object and use
    it to fill a request's reference-currency amounts.  Rates are
    consumed as given; fetching them is the caller's concern.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.  The cache is passed
    to whoever normalizes amounts; it is never a module-level singleton.

Invariants enforced:
    - ``rates[c]`` is units of currency ``c`` per one unit of the base
      currency, so ``rates[base] == 1``.
    - Rates must be positive.

Failure modes:
    - ExchangeRateNotFoundError when a currency has no rate.
    - ValueError on construction with a non-positive rate.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from capex_kernel.domain.request import InvestmentRequest
from capex_kernel.exceptions import ExchangeRateNotFoundError

REFERENCE_CURRENCY = "USD"
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class ExchangeRateCache:
    """Exchange rates fetched at a point in time."""

    rates: dict[str, Decimal]
    fetched_at: datetime
    base_currency: str = REFERENCE_CURRENCY
    source: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        for code, rate in self.rates.items():
            if rate <= 0:
                raise ValueError(f"Exchange rate for {code} must be positive, got {rate}")

    def is_stale(self, now: datetime, ttl: timedelta) -> bool:
        """True when the snapshot is older than ``ttl`` at ``now``."""
        return now - self.fetched_at >= ttl

    def rate_for(self, currency: str) -> Decimal:
        if currency == self.base_currency:
            return Decimal("1")
        rate = self.rates.get(currency)
        if rate is None:
            raise ExchangeRateNotFoundError(currency, self.base_currency)
        return rate

    def convert_to_base(self, amount: Decimal, currency: str) -> Decimal:
        """Convert ``amount`` in ``currency`` to the base currency (2dp)."""
        converted = amount / self.rate_for(currency)
        return converted.quantize(_CENT, rounding=ROUND_HALF_UP)

    def convert(self, amount: Decimal, from_currency: str, to_currency: str) -> Decimal:
        cross = self.rate_for(to_currency) / self.rate_for(from_currency)
        return (amount * cross).quantize(_CENT, rounding=ROUND_HALF_UP)


def normalize_request_amounts(
    request: InvestmentRequest,
    cache: ExchangeRateCache,
) -> InvestmentRequest:
    """Return ``request`` with base-currency CAPEX/OPEX filled from ``cache``."""
    return replace(
        request,
        base_currency_capex=cache.convert_to_base(request.capex, request.currency),
        base_currency_opex=cache.convert_to_base(request.opex, request.currency),
    )
