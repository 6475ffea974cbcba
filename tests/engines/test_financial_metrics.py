"""
Tests for the financial metrics engine.

Tests cover:
- Input validation (list and raising forms)
- Cash flow generation with yearly OPEX
- NPV, IRR, payback and ROI on a reference project
- IRR failure modes reported as ConvergenceError / undetermined IRR
- Default discount rate and annual inflow estimation
- KPI record rounding and basis text
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from capex_engines.financial_metrics import (
    build_kpi_record,
    calculate_financial_metrics,
    calculate_irr,
    calculate_npv,
    calculate_payback_period,
    calculate_roi,
    default_assumptions,
    estimate_annual_cash_inflow,
    generate_cash_flows,
    get_default_discount_rate,
    validate_financial_inputs,
)
from capex_kernel.domain.financial import FinancialAssumptions
from capex_kernel.domain.request import BusinessCaseType
from capex_kernel.exceptions import ConvergenceError, ValidationError


def make_assumptions(
    investment: str = "500000",
    rate: str = "0.10",
    years: int = 10,
    inflow: str = "75000",
    outflow: str = "0",
    yearly_opex: dict[int, Decimal] | None = None,
) -> FinancialAssumptions:
    return FinancialAssumptions(
        initial_investment=Decimal(investment),
        discount_rate=Decimal(rate),
        project_duration_years=years,
        annual_cash_inflow=Decimal(inflow),
        annual_cash_outflow=Decimal(outflow),
        yearly_opex=yearly_opex or {},
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:

    def test_valid_assumptions_have_no_errors(self):
        assert validate_financial_inputs(make_assumptions()) == []

    def test_every_problem_is_reported(self):
        errors = validate_financial_inputs(
            make_assumptions(investment="0", rate="-0.01", years=0, inflow="0")
        )

        assert len(errors) == 4

    @pytest.mark.parametrize("investment", ["0", "-1"])
    def test_non_positive_investment_raises(self, investment):
        with pytest.raises(ValidationError) as exc_info:
            calculate_financial_metrics(make_assumptions(investment=investment))

        assert exc_info.value.field == "initial_investment"

    def test_negative_rate_raises(self):
        flows = generate_cash_flows(make_assumptions())

        with pytest.raises(ValidationError):
            calculate_npv(flows, Decimal("-0.05"), Decimal("500000"))

    def test_zero_duration_raises(self):
        with pytest.raises(ValidationError):
            calculate_financial_metrics(make_assumptions(years=0))


# ---------------------------------------------------------------------------
# Cash flows
# ---------------------------------------------------------------------------


class TestCashFlows:

    def test_one_flow_per_year(self):
        flows = generate_cash_flows(make_assumptions(years=3))

        assert [f.year for f in flows] == [1, 2, 3]
        assert all(f.net_flow == Decimal("75000") for f in flows)

    def test_yearly_opex_adds_to_outflow(self):
        flows = generate_cash_flows(make_assumptions(
            years=3, outflow="5000", yearly_opex={2: Decimal("10000")},
        ))

        assert flows[0].outflow == Decimal("5000")
        assert flows[1].outflow == Decimal("15000")
        assert flows[1].net_flow == Decimal("60000")


# ---------------------------------------------------------------------------
# Reference project: 500k outlay, 75k/yr for 10 years at 10%
# ---------------------------------------------------------------------------


class TestReferenceProject:

    @pytest.fixture
    def metrics(self):
        return calculate_financial_metrics(make_assumptions())

    def test_npv(self, metrics):
        assert abs(metrics.npv - Decimal("-39155")) < Decimal("100")

    def test_irr(self, metrics):
        assert metrics.irr_determined
        assert abs(metrics.irr_percent - Decimal("8.14")) < Decimal("0.05")

    def test_payback(self, metrics):
        assert metrics.payback.within_horizon
        assert abs(metrics.payback.years - Decimal("6.67")) < Decimal("0.01")

    def test_roi(self, metrics):
        assert metrics.roi_percent == Decimal("50")

    def test_npv_at_irr_is_zero(self):
        assumptions = make_assumptions()
        flows = generate_cash_flows(assumptions)
        irr = calculate_irr(flows, assumptions.initial_investment)

        npv = calculate_npv(flows, irr, assumptions.initial_investment)

        assert abs(npv) <= Decimal("0.5")

    def test_zero_rate_npv_is_undiscounted_sum(self):
        flows = generate_cash_flows(make_assumptions())

        assert calculate_npv(flows, Decimal("0"), Decimal("500000")) == Decimal("250000")


# ---------------------------------------------------------------------------
# IRR failure modes
# ---------------------------------------------------------------------------


class TestIRRFailures:

    def test_flat_npv_raises_convergence_error(self):
        flows = generate_cash_flows(make_assumptions(inflow="1000", outflow="1000"))

        with pytest.raises(ConvergenceError):
            calculate_irr(flows, Decimal("500000"))

    def test_iteration_limit_raises(self):
        flows = generate_cash_flows(make_assumptions())

        with pytest.raises(ConvergenceError) as exc_info:
            calculate_irr(flows, Decimal("500000"), max_iterations=1)

        assert exc_info.value.iterations == 1

    def test_undetermined_irr_reported_as_none(self, captured_logs):
        metrics = calculate_financial_metrics(make_assumptions(inflow="1000", outflow="1000"))

        assert metrics.irr_percent is None
        assert not metrics.irr_determined
        assert metrics.roi_percent == Decimal("-100")
        assert any(r["message"] == "irr_undetermined" for r in captured_logs())


# ---------------------------------------------------------------------------
# Payback and ROI
# ---------------------------------------------------------------------------


class TestPaybackAndROI:

    def test_exact_recovery_at_year_end(self):
        flows = generate_cash_flows(make_assumptions(investment="300000", inflow="100000"))

        result = calculate_payback_period(flows, Decimal("300000"))

        assert result.years == Decimal("3")

    def test_never_recovered(self):
        flows = generate_cash_flows(make_assumptions(years=3))

        result = calculate_payback_period(flows, Decimal("500000"))

        assert result.years is None
        assert not result.within_horizon

    def test_negative_roi(self):
        flows = generate_cash_flows(make_assumptions(years=4))

        assert calculate_roi(flows, Decimal("500000")) == Decimal("-40")


# ---------------------------------------------------------------------------
# Default assumptions
# ---------------------------------------------------------------------------


class TestDefaults:

    def test_base_discount_rate(self):
        assert get_default_discount_rate(()) == Decimal("0.10")

    def test_adjustments_sum(self):
        rate = get_default_discount_rate({BusinessCaseType.ESG, BusinessCaseType.IPO_PREP})

        assert rate == Decimal("0.15")

    def test_cost_control_lowers_rate(self):
        assert get_default_discount_rate({BusinessCaseType.COST_CONTROL}) == Decimal("0.09")

    def test_rate_never_exceeds_bounds(self):
        every_type = set(BusinessCaseType)

        rate = get_default_discount_rate(every_type)

        assert Decimal("0.05") <= rate <= Decimal("0.25")

    @pytest.mark.parametrize("types,expected", [
        ((), Decimal("15000")),
        ((BusinessCaseType.COST_CONTROL,), Decimal("20000")),
        ((BusinessCaseType.ESG,), Decimal("12000")),
        ((BusinessCaseType.IPO_PREP,), Decimal("18000")),
        ((BusinessCaseType.ESG, BusinessCaseType.COST_CONTROL), Decimal("20000")),
    ])
    def test_annual_inflow_by_type(self, types, expected):
        assert estimate_annual_cash_inflow(Decimal("100000"), types, 5) == expected

    def test_long_projects_scaled_down(self):
        inflow = estimate_annual_cash_inflow(Decimal("100000"), (), 6)

        assert inflow == Decimal("13500")

    def test_default_assumptions(self):
        assumptions = default_assumptions(Decimal("200000"), {BusinessCaseType.ESG}, 5)

        assert assumptions.discount_rate == Decimal("0.12")
        assert assumptions.annual_cash_inflow == Decimal("24000")
        assert assumptions.project_duration_years == 5


# ---------------------------------------------------------------------------
# KPI record
# ---------------------------------------------------------------------------


class TestKPIRecord:

    def test_values_rounded_to_cents(self):
        request_id = uuid4()
        at = datetime(2025, 7, 1, tzinfo=timezone.utc)

        record = build_kpi_record(request_id, make_assumptions(), calculated_at=at)

        assert record.request_id == request_id
        assert record.calculated_at == at
        assert record.roi == Decimal("50.00")
        assert record.payback_period == Decimal("6.67")
        assert record.npv.as_tuple().exponent == -2
        assert record.irr.as_tuple().exponent == -2

    def test_basis_describes_inputs(self):
        record = build_kpi_record(uuid4(), make_assumptions(yearly_opex={1: Decimal("500")}))

        assert "Discount rate: 10.00%" in record.basis_of_calculation
        assert "Y1=500" in record.basis_of_calculation

    def test_undetermined_irr_stored_as_none(self):
        record = build_kpi_record(uuid4(), make_assumptions(inflow="1000", outflow="1000"))

        assert record.irr is None
        assert record.payback_period is None
