"""
Financial domain types (``capex_kernel.domain.financial``).

Pure value objects consumed and produced by
``capex_engines.financial_metrics``.  All amounts are ``Decimal``; rates
are fractions (``Decimal("0.10")`` is 10%) except where a field name says
``percent``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class FinancialAssumptions:
    """Cash-flow assumptions for a project.

    ``yearly_opex`` maps a 1-based project year to additional operating
    outflow in that year.
    """

    initial_investment: Decimal
    discount_rate: Decimal
    project_duration_years: int
    annual_cash_inflow: Decimal
    annual_cash_outflow: Decimal = Decimal("0")
    yearly_opex: dict[int, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class CashFlow:
    """End-of-year cash flow for a single project year (1-based)."""

    year: int
    inflow: Decimal
    outflow: Decimal
    net_flow: Decimal


@dataclass(frozen=True)
class PaybackResult:
    """Payback period, or beyond-horizon when never recovered."""

    years: Decimal | None
    within_horizon: bool

    @classmethod
    def beyond_horizon(cls) -> PaybackResult:
        return cls(years=None, within_horizon=False)


@dataclass(frozen=True)
class FinancialMetrics:
    """Investment metrics.

    ``irr_percent`` is None when the root-finder could not determine it.
    """

    npv: Decimal
    irr_percent: Decimal | None
    payback: PaybackResult
    roi_percent: Decimal

    @property
    def irr_determined(self) -> bool:
        return self.irr_percent is not None


@dataclass(frozen=True)
class KPIRecord:
    """Persistable KPI snapshot for a request. One per request."""

    request_id: UUID
    npv: Decimal
    irr: Decimal | None
    payback_period: Decimal | None
    roi: Decimal
    basis_of_calculation: str
    calculated_at: datetime | None = None
