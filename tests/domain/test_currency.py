"""
Tests for reference-currency normalization.

Covers:
- Conversion to the base currency and cross rates
- Missing and invalid rates
- Staleness against a TTL
- Filling a request's base-currency amounts
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from capex_kernel.domain.currency import ExchangeRateCache, normalize_request_amounts
from capex_kernel.domain.request import InvestmentRequest
from capex_kernel.exceptions import ExchangeRateNotFoundError

FETCHED = datetime(2025, 6, 23, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def cache():
    return ExchangeRateCache(
        rates={"EUR": Decimal("0.85"), "GBP": Decimal("0.73"), "JPY": Decimal("150")},
        fetched_at=FETCHED,
    )


class TestConversion:

    def test_base_currency_converts_to_itself(self, cache):
        assert cache.convert_to_base(Decimal("123.45"), "USD") == Decimal("123.45")

    def test_convert_to_base(self, cache):
        assert cache.convert_to_base(Decimal("850"), "EUR") == Decimal("1000.00")

    def test_rounded_to_cents(self, cache):
        assert cache.convert_to_base(Decimal("100"), "JPY") == Decimal("0.67")

    def test_cross_rate(self, cache):
        assert cache.convert(Decimal("850"), "EUR", "GBP") == Decimal("730.00")

    def test_missing_rate_raises(self, cache):
        with pytest.raises(ExchangeRateNotFoundError) as exc_info:
            cache.convert_to_base(Decimal("1"), "CHF")

        assert exc_info.value.from_currency == "CHF"
        assert exc_info.value.code == "EXCHANGE_RATE_NOT_FOUND"

    @pytest.mark.parametrize("rate", ["0", "-1"])
    def test_non_positive_rate_rejected(self, rate):
        with pytest.raises(ValueError):
            ExchangeRateCache(rates={"EUR": Decimal(rate)}, fetched_at=FETCHED)


class TestStaleness:

    def test_fresh_within_ttl(self, cache):
        assert not cache.is_stale(FETCHED + timedelta(minutes=59), timedelta(hours=1))

    def test_stale_at_ttl(self, cache):
        assert cache.is_stale(FETCHED + timedelta(hours=1), timedelta(hours=1))


class TestNormalizeRequest:

    def test_fills_base_amounts(self, cache):
        request = InvestmentRequest.new(
            submitter_id=uuid4(),
            project_title="Plant expansion",
            department="Manufacturing",
            capex=Decimal("85000"),
            opex=Decimal("8500"),
            currency="EUR",
        )

        normalized = normalize_request_amounts(request, cache)

        assert normalized.base_currency_capex == Decimal("100000.00")
        assert normalized.base_currency_opex == Decimal("10000.00")
        assert normalized.total_amount == Decimal("110000.00")
        assert normalized.capex == Decimal("85000")
