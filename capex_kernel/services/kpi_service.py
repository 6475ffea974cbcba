"""
capex_kernel.services.kpi_service -- KPI record computation and storage.

Responsibility:
    Compute NPV/IRR/payback/ROI for a request via
    ``capex_engines.financial_metrics`` and persist the result as the
    request's single KPI record.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/ and the
    pure engines.

Invariants enforced:
    - One KPI record per request; recomputation replaces the stored values.
    - Validation happens in the engine before anything is written.

Failure modes:
    - RequestNotFoundError if the request does not exist.
    - ValidationError for invalid assumptions (nothing is stored).
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from capex_engines.financial_metrics import (
    IRR_MAX_ITERATIONS,
    IRR_TOLERANCE,
    build_kpi_record,
    default_assumptions,
)
from capex_kernel.domain.clock import Clock, SystemClock
from capex_kernel.domain.financial import FinancialAssumptions, KPIRecord
from capex_kernel.exceptions import RequestNotFoundError
from capex_kernel.logging_config import get_logger
from capex_kernel.models.kpi import KPIRecordModel
from capex_kernel.models.request import InvestmentRequestModel

logger = get_logger("services.kpi")

DEFAULT_PROJECT_YEARS = 5


class KPIService:
    """Computes and stores per-request KPI records."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        irr_max_iterations: int = IRR_MAX_ITERATIONS,
        irr_tolerance: Decimal = IRR_TOLERANCE,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self._irr_max_iterations = irr_max_iterations
        self._irr_tolerance = irr_tolerance

    def compute_and_store(
        self,
        request_id: UUID,
        assumptions: FinancialAssumptions | None = None,
        duration_years: int = DEFAULT_PROJECT_YEARS,
    ) -> KPIRecord:
        """Compute the KPI record for ``request_id`` and store it.

        Without explicit ``assumptions`` they are derived from the request:
        its reference-currency total as the investment, and the discount
        rate and annual inflow implied by its business-case types.
        """
        request = self._load_request(request_id)
        if assumptions is None:
            assumptions = default_assumptions(
                request.total_amount, request.business_case_types, duration_years,
            )

        record = build_kpi_record(
            request_id,
            assumptions,
            calculated_at=self._clock.now(),
            max_iterations=self._irr_max_iterations,
            tolerance=self._irr_tolerance,
        )

        existing = self._session.execute(
            select(KPIRecordModel).where(KPIRecordModel.request_id == request_id)
        ).scalar_one_or_none()
        if existing is None:
            self._session.add(KPIRecordModel.from_dto(record))
        else:
            existing.apply(record)
        self._session.flush()

        logger.info(
            "kpi_record_stored",
            extra={
                "request_id": str(request_id),
                "npv": record.npv,
                "irr": record.irr,
                "roi": record.roi,
                "replaced": existing is not None,
            },
        )
        return record

    def get(self, request_id: UUID) -> KPIRecord | None:
        model = self._session.execute(
            select(KPIRecordModel).where(KPIRecordModel.request_id == request_id)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def _load_request(self, request_id: UUID):
        model = self._session.execute(
            select(InvestmentRequestModel).where(
                InvestmentRequestModel.request_id == request_id,
            )
        ).scalar_one_or_none()
        if model is None:
            raise RequestNotFoundError(str(request_id))
        return model.to_dto()
