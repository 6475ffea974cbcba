"""
capex_engines.financial_metrics -- NPV, IRR, payback period and ROI.

Responsibility:
    Compute standard investment metrics from project cash-flow
    assumptions, and derive default assumptions (discount rate, annual
    inflow) from a request's business-case classification.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import capex_kernel/domain/ types.

Invariants enforced:
    - Decimal-only arithmetic; rates are fractions.
    - Cash flows occur at the end of each project year (t = 1..n); the
      initial outlay is tracked separately, never as flow[0].
    - Inputs are validated before any computation; no partial results.
    - IRR iteration has a hard ceiling; failure is a reportable
      ConvergenceError, never a silently wrong number.
    - Adjustment tables are keyed by ``BusinessCaseType`` and cover every
      member.

Failure modes:
    - ValidationError for non-positive investment or duration, or a
      negative discount rate.
    - ConvergenceError from ``calculate_irr`` when Newton-Raphson does not
      reach tolerance, its derivative vanishes, or a step leaves the
      admissible rate range.

Usage:
    from capex_engines.financial_metrics import calculate_financial_metrics
    from capex_kernel.domain.financial import FinancialAssumptions

    metrics = calculate_financial_metrics(FinancialAssumptions(
        initial_investment=Decimal("500000"),
        discount_rate=Decimal("0.10"),
        project_duration_years=10,
        annual_cash_inflow=Decimal("75000"),
    ))
    metrics.npv          # Decimal("-39157.46...")
    metrics.irr_percent  # Decimal("8.14...")
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from capex_engines.tracer import traced_engine
from capex_kernel.domain.financial import (
    CashFlow,
    FinancialAssumptions,
    FinancialMetrics,
    KPIRecord,
    PaybackResult,
)
from capex_kernel.domain.request import BusinessCaseType
from capex_kernel.exceptions import ConvergenceError, ValidationError
from capex_kernel.logging_config import get_logger

logger = get_logger("engines.financial_metrics")

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

IRR_INITIAL_GUESS = Decimal("0.10")
IRR_MAX_ITERATIONS = 100
IRR_TOLERANCE = Decimal("1e-6")
# Newton steps outside (-100%, 1000%] are treated as divergence.
IRR_MAX_RATE = Decimal("10")

BASE_DISCOUNT_RATE = Decimal("0.10")
MIN_DISCOUNT_RATE = Decimal("0.05")
MAX_DISCOUNT_RATE = Decimal("0.25")

DISCOUNT_RATE_ADJUSTMENTS: dict[BusinessCaseType, Decimal] = {
    BusinessCaseType.COMPLIANCE: Decimal("0"),
    BusinessCaseType.ESG: Decimal("0.02"),
    BusinessCaseType.COST_CONTROL: Decimal("-0.01"),
    BusinessCaseType.EXPANSION: Decimal("0"),
    BusinessCaseType.ASSET_CREATION: Decimal("0"),
    BusinessCaseType.IPO_PREP: Decimal("0.03"),
}

BASE_ANNUAL_RETURN = Decimal("0.15")

# First matching type wins, in this order.
ANNUAL_RETURN_OVERRIDES: tuple[tuple[BusinessCaseType, Decimal], ...] = (
    (BusinessCaseType.COST_CONTROL, Decimal("0.20")),
    (BusinessCaseType.ESG, Decimal("0.12")),
    (BusinessCaseType.IPO_PREP, Decimal("0.18")),
)

LONG_PROJECT_YEARS = 5
LONG_PROJECT_FACTOR = Decimal("0.9")

_CENT = Decimal("0.01")


# =========================================================================
# Validation
# =========================================================================


def validate_financial_inputs(assumptions: FinancialAssumptions) -> list[str]:
    """Return human-readable problems with ``assumptions`` (empty if valid)."""
    errors: list[str] = []
    if assumptions.initial_investment <= ZERO:
        errors.append("Initial investment must be positive")
    if assumptions.discount_rate < ZERO:
        errors.append("Discount rate cannot be negative")
    if assumptions.project_duration_years <= 0:
        errors.append("Project duration must be positive")
    if assumptions.annual_cash_inflow <= ZERO:
        errors.append("Annual cash inflow must be positive")
    return errors


def _require_positive_investment(initial_investment: Decimal) -> None:
    if initial_investment <= ZERO:
        raise ValidationError(
            "initial_investment", initial_investment, "must be greater than zero",
        )


def _require_valid_rate(rate: Decimal) -> None:
    if rate < ZERO:
        raise ValidationError("discount_rate", rate, "must not be negative")


def _require_valid_assumptions(assumptions: FinancialAssumptions) -> None:
    _require_positive_investment(assumptions.initial_investment)
    _require_valid_rate(assumptions.discount_rate)
    if assumptions.project_duration_years <= 0:
        raise ValidationError(
            "project_duration_years",
            assumptions.project_duration_years,
            "must be at least one year",
        )


# =========================================================================
# Cash flows and metrics
# =========================================================================


def generate_cash_flows(assumptions: FinancialAssumptions) -> tuple[CashFlow, ...]:
    """One end-of-year cash flow per project year.

    ``net_flow`` is the annual inflow less the annual outflow and any
    year-specific OPEX from ``yearly_opex``.
    """
    flows = []
    for year in range(1, assumptions.project_duration_years + 1):
        outflow = assumptions.annual_cash_outflow + assumptions.yearly_opex.get(year, ZERO)
        flows.append(CashFlow(
            year=year,
            inflow=assumptions.annual_cash_inflow,
            outflow=outflow,
            net_flow=assumptions.annual_cash_inflow - outflow,
        ))
    return tuple(flows)


def _npv_at(cash_flows: Sequence[CashFlow], rate: Decimal, initial_investment: Decimal) -> Decimal:
    base = ONE + rate
    npv = -initial_investment
    for flow in cash_flows:
        npv += flow.net_flow / base ** flow.year
    return npv


def _npv_derivative_at(cash_flows: Sequence[CashFlow], rate: Decimal) -> Decimal:
    base = ONE + rate
    derivative = ZERO
    for flow in cash_flows:
        derivative -= flow.year * flow.net_flow / base ** (flow.year + 1)
    return derivative


def calculate_npv(
    cash_flows: Sequence[CashFlow],
    rate: Decimal,
    initial_investment: Decimal,
) -> Decimal:
    """NPV = -I + sum(CF_t / (1 + rate)^t) for t = 1..n."""
    _require_positive_investment(initial_investment)
    _require_valid_rate(rate)
    return _npv_at(cash_flows, rate, initial_investment)


def calculate_irr(
    cash_flows: Sequence[CashFlow],
    initial_investment: Decimal,
    max_iterations: int = IRR_MAX_ITERATIONS,
    tolerance: Decimal = IRR_TOLERANCE,
    initial_guess: Decimal = IRR_INITIAL_GUESS,
) -> Decimal:
    """Rate (as a fraction) at which NPV is zero, by Newton-Raphson.

    Converged when ``|NPV| <= tolerance * initial_investment``.

    Raises:
        ValidationError: non-positive investment.
        ConvergenceError: no convergence within ``max_iterations``, a
            vanishing derivative, or a step to a rate <= -100% or > 1000%.
    """
    _require_positive_investment(initial_investment)
    threshold = tolerance * initial_investment

    rate = initial_guess
    for iteration in range(1, max_iterations + 1):
        npv = _npv_at(cash_flows, rate, initial_investment)
        if abs(npv) <= threshold:
            return rate

        derivative = _npv_derivative_at(cash_flows, rate)
        if derivative == ZERO:
            raise ConvergenceError(iteration, rate, "NPV derivative vanished")

        candidate = rate - npv / derivative
        if candidate <= -ONE or candidate > IRR_MAX_RATE:
            raise ConvergenceError(
                iteration, candidate, "Newton step left the admissible rate range",
            )
        rate = candidate

    raise ConvergenceError(max_iterations, rate, "iteration limit reached")


def calculate_payback_period(
    cash_flows: Sequence[CashFlow],
    initial_investment: Decimal,
) -> PaybackResult:
    """Years until cumulative net inflow recovers the investment.

    Whole years before recovery plus the fraction of the recovery year,
    by linear interpolation (remaining / that year's flow).
    """
    _require_positive_investment(initial_investment)

    cumulative = ZERO
    full_years = 0
    for flow in cash_flows:
        if flow.net_flow > ZERO and cumulative + flow.net_flow >= initial_investment:
            remaining = initial_investment - cumulative
            return PaybackResult(
                years=Decimal(full_years) + remaining / flow.net_flow,
                within_horizon=True,
            )
        cumulative += flow.net_flow
        full_years += 1

    return PaybackResult.beyond_horizon()


def calculate_roi(cash_flows: Sequence[CashFlow], initial_investment: Decimal) -> Decimal:
    """ROI percent = (total net inflow - I) / I * 100."""
    _require_positive_investment(initial_investment)
    total = sum((flow.net_flow for flow in cash_flows), ZERO)
    return (total - initial_investment) / initial_investment * HUNDRED


@traced_engine(
    "financial_metrics", "1.0",
    fingerprint_fields=("assumptions", "max_iterations", "tolerance"),
)
def calculate_financial_metrics(
    assumptions: FinancialAssumptions,
    max_iterations: int = IRR_MAX_ITERATIONS,
    tolerance: Decimal = IRR_TOLERANCE,
) -> FinancialMetrics:
    """Compute NPV, IRR, payback and ROI.

    An IRR that cannot be determined is reported as ``irr_percent=None``;
    every other failure propagates before any metric is returned.
    """
    _require_valid_assumptions(assumptions)
    cash_flows = generate_cash_flows(assumptions)
    investment = assumptions.initial_investment

    npv = calculate_npv(cash_flows, assumptions.discount_rate, investment)
    try:
        irr_percent: Decimal | None = (
            calculate_irr(cash_flows, investment, max_iterations, tolerance) * HUNDRED
        )
    except ConvergenceError as exc:
        logger.warning(
            "irr_undetermined",
            extra={
                "iterations": exc.iterations,
                "last_rate": exc.last_rate,
                "reason": exc.reason,
            },
        )
        irr_percent = None

    return FinancialMetrics(
        npv=npv,
        irr_percent=irr_percent,
        payback=calculate_payback_period(cash_flows, investment),
        roi_percent=calculate_roi(cash_flows, investment),
    )


# =========================================================================
# Default assumptions
# =========================================================================


def get_default_discount_rate(business_case_types: Collection[BusinessCaseType]) -> Decimal:
    """10% base plus the summed per-type adjustments, clamped to [5%, 25%]."""
    rate = BASE_DISCOUNT_RATE + sum(
        (DISCOUNT_RATE_ADJUSTMENTS[t] for t in set(business_case_types)), ZERO,
    )
    return max(MIN_DISCOUNT_RATE, min(MAX_DISCOUNT_RATE, rate))


def estimate_annual_cash_inflow(
    investment: Decimal,
    business_case_types: Collection[BusinessCaseType],
    duration_years: int,
) -> Decimal:
    """Expected annual inflow as a share of the investment.

    15% by default; Cost Control 20%, ESG 12%, IPO Prep 18% (first match
    in that order).  Projects longer than five years are scaled by 0.9.
    """
    annual_return = BASE_ANNUAL_RETURN
    for case_type, share in ANNUAL_RETURN_OVERRIDES:
        if case_type in business_case_types:
            annual_return = share
            break

    inflow = investment * annual_return
    if duration_years > LONG_PROJECT_YEARS:
        inflow *= LONG_PROJECT_FACTOR
    return max(ZERO, inflow)


def default_assumptions(
    investment: Decimal,
    business_case_types: Collection[BusinessCaseType],
    duration_years: int,
) -> FinancialAssumptions:
    """Assumptions derived entirely from the request classification."""
    return FinancialAssumptions(
        initial_investment=investment,
        discount_rate=get_default_discount_rate(business_case_types),
        project_duration_years=duration_years,
        annual_cash_inflow=estimate_annual_cash_inflow(
            investment, business_case_types, duration_years,
        ),
    )


# =========================================================================
# KPI record
# =========================================================================


def _round(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def describe_basis(assumptions: FinancialAssumptions) -> str:
    """Free-text record of the inputs a KPI record was computed from."""
    parts = [
        f"Initial investment: {assumptions.initial_investment}",
        f"Discount rate: {_round(assumptions.discount_rate * HUNDRED)}%",
        f"Project duration: {assumptions.project_duration_years} years",
        f"Annual cash inflow: {assumptions.annual_cash_inflow}",
    ]
    if assumptions.annual_cash_outflow:
        parts.append(f"Annual cash outflow: {assumptions.annual_cash_outflow}")
    if assumptions.yearly_opex:
        opex = ", ".join(
            f"Y{year}={amount}" for year, amount in sorted(assumptions.yearly_opex.items())
        )
        parts.append(f"Yearly OPEX: {opex}")
    parts.append("Cash flows at end of year; IRR by Newton-Raphson")
    return "; ".join(parts)


def build_kpi_record(
    request_id: UUID,
    assumptions: FinancialAssumptions,
    calculated_at: datetime | None = None,
    max_iterations: int = IRR_MAX_ITERATIONS,
    tolerance: Decimal = IRR_TOLERANCE,
) -> KPIRecord:
    """Compute metrics and package them as a KPI record (values to 2dp)."""
    metrics = calculate_financial_metrics(assumptions, max_iterations, tolerance)
    return KPIRecord(
        request_id=request_id,
        npv=_round(metrics.npv),
        irr=_round(metrics.irr_percent),
        payback_period=_round(metrics.payback.years),
        roi=_round(metrics.roi_percent),
        basis_of_calculation=describe_basis(assumptions),
        calculated_at=calculated_at,
    )
