"""
Tests for KPIService -- per-request KPI records.

Covers:
- compute_and_store() with explicit and derived assumptions
- Recompute replaces the single record for a request
- Undetermined IRR stored as NULL
- Unknown request
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from capex_kernel.domain.financial import FinancialAssumptions
from capex_kernel.domain.request import BusinessCaseType
from capex_kernel.exceptions import RequestNotFoundError
from capex_kernel.models.kpi import KPIRecordModel


def reference_assumptions() -> FinancialAssumptions:
    return FinancialAssumptions(
        initial_investment=Decimal("500000"),
        discount_rate=Decimal("0.10"),
        project_duration_years=10,
        annual_cash_inflow=Decimal("75000"),
    )


class TestComputeAndStore:

    def test_explicit_assumptions(self, kpi_service, submitted_request, deterministic_clock):
        request_id = submitted_request("500000")

        record = kpi_service.compute_and_store(request_id, reference_assumptions())

        assert record.roi == Decimal("50.00")
        assert record.payback_period == Decimal("6.67")
        assert record.calculated_at == deterministic_clock.now()

        stored = kpi_service.get(request_id)
        assert stored.roi == Decimal("50")
        assert stored.payback_period == Decimal("6.67")
        assert stored.basis_of_calculation == record.basis_of_calculation

    def test_assumptions_derived_from_request(self, kpi_service, submitted_request):
        request_id = submitted_request(
            "200000", business_case_types=(BusinessCaseType.COST_CONTROL,),
        )

        record = kpi_service.compute_and_store(request_id, duration_years=5)

        # 20% of the investment per year for five years
        assert record.roi == Decimal("0.00")
        assert record.payback_period == Decimal("5.00")
        assert "Discount rate: 9.00%" in record.basis_of_calculation

    def test_recompute_replaces_record(self, kpi_service, submitted_request, session, deterministic_clock):
        request_id = submitted_request("500000")
        kpi_service.compute_and_store(request_id, duration_years=5)
        deterministic_clock.advance(days=3)

        kpi_service.compute_and_store(request_id, reference_assumptions())

        count = session.execute(
            select(func.count()).select_from(KPIRecordModel)
            .where(KPIRecordModel.request_id == request_id)
        ).scalar_one()
        assert count == 1
        stored = kpi_service.get(request_id)
        assert stored.roi == Decimal("50")
        assert stored.calculated_at == deterministic_clock.now()

    def test_undetermined_irr_stored_as_null(self, kpi_service, submitted_request):
        request_id = submitted_request("500000")
        flat = FinancialAssumptions(
            initial_investment=Decimal("500000"),
            discount_rate=Decimal("0.10"),
            project_duration_years=5,
            annual_cash_inflow=Decimal("1000"),
            annual_cash_outflow=Decimal("1000"),
        )

        kpi_service.compute_and_store(request_id, flat)

        stored = kpi_service.get(request_id)
        assert stored.irr is None
        assert stored.payback_period is None

    def test_logged(self, kpi_service, submitted_request, captured_logs):
        request_id = submitted_request("500000")

        kpi_service.compute_and_store(request_id, reference_assumptions())

        records = [r for r in captured_logs() if r["message"] == "kpi_record_stored"]
        assert records[0]["request_id"] == str(request_id)
        assert records[0]["replaced"] is False


class TestLookup:

    def test_missing_record(self, kpi_service, submitted_request):
        assert kpi_service.get(submitted_request()) is None

    def test_unknown_request(self, kpi_service):
        with pytest.raises(RequestNotFoundError):
            kpi_service.compute_and_store(uuid4())
