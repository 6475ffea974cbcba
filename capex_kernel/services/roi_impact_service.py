"""
capex_kernel.services.roi_impact_service -- ROI decay for stored requests.

Responsibility:
    Assemble the inputs of ``capex_engines.roi_impact`` from storage: the
    request, its approval log trail (for the final approval date) and the
    IRR of its KPI record (the original ROI), then compute the impact record or
    timeline on demand.  Nothing is persisted.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/ and the
    pure engines.

Invariants enforced:
    - The final approval date is the timestamp of the decision that made
      the request Approved; pending requests decay up to the clock's now.
    - The dynamic decay rate is used unless the caller supplies one.
    - Without a KPI record, or with an undetermined IRR, the original ROI
      falls back to ``default_original_roi`` (15% by default).

Failure modes:
    - RequestNotFoundError if the request does not exist.
    - ValidationError if the request was never submitted.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from capex_engines.roi_impact import (
    DEFAULT_DECAY_RATE,
    DEFAULT_MAX_WEEKS,
    DEFAULT_ORIGINAL_ROI,
    calculate_dynamic_decay_rate,
    calculate_roi_impact,
    calculate_summary_stats,
    generate_roi_timeline,
)
from capex_kernel.domain.clock import Clock, SystemClock
from capex_kernel.domain.request import InvestmentRequest
from capex_kernel.domain.roi_impact import (
    ROIImpactRecord,
    ROIImpactSummary,
    ROITimelinePoint,
)
from capex_kernel.exceptions import ValidationError
from capex_kernel.logging_config import get_logger
from capex_kernel.services.approval_service import ApprovalService
from capex_kernel.services.kpi_service import KPIService

logger = get_logger("services.roi_impact")


class ROIImpactService:
    """Computes ROI decay for persisted requests."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        max_weeks: int = DEFAULT_MAX_WEEKS,
        base_decay_rate: Decimal = DEFAULT_DECAY_RATE,
        default_original_roi: Decimal = DEFAULT_ORIGINAL_ROI,
    ) -> None:
        self._clock = clock or SystemClock()
        self._approvals = ApprovalService(session, self._clock)
        self._kpis = KPIService(session, self._clock)
        self._max_weeks = max_weeks
        self._base_decay_rate = base_decay_rate
        self._default_original_roi = default_original_roi

    def decay_rate_for(self, request: InvestmentRequest) -> Decimal:
        return calculate_dynamic_decay_rate(
            request.total_amount,
            request.business_case_types,
            request.department,
            request.priority,
            base_rate=self._base_decay_rate,
        )

    def original_roi_for(self, request_id: UUID) -> Decimal:
        """IRR from the KPI record, or the configured default."""
        kpi = self._kpis.get(request_id)
        if kpi is None or kpi.irr is None:
            logger.info(
                "roi_impact_default_roi",
                extra={
                    "request_id": str(request_id),
                    "has_kpi": kpi is not None,
                    "original_roi": self._default_original_roi,
                },
            )
            return self._default_original_roi
        return kpi.irr

    def impact_for(
        self,
        request_id: UUID,
        decay_rate: Decimal | None = None,
        original_roi: Decimal | None = None,
    ) -> ROIImpactRecord:
        """ROI impact record for one request, as of the clock's now."""
        request, roi, rate = self._inputs(request_id, decay_rate, original_roi)
        record = calculate_roi_impact(
            original_roi=roi,
            submission_date=request.submitted_date,
            final_approval_date=self._approvals.final_approval_date(request_id),
            investment_amount=request.total_amount,
            decay_rate=rate,
            as_of=self._clock.now(),
            request_id=request_id,
        )
        logger.info(
            "roi_impact_calculated",
            extra={
                "request_id": str(request_id),
                "delay_in_weeks": record.delay_in_weeks,
                "roi_loss": record.roi_loss,
                "severity": record.severity,
            },
        )
        return record

    def timeline_for(
        self,
        request_id: UUID,
        decay_rate: Decimal | None = None,
        original_roi: Decimal | None = None,
    ) -> tuple[ROITimelinePoint, ...]:
        request, roi, rate = self._inputs(request_id, decay_rate, original_roi)
        return generate_roi_timeline(
            roi,
            request.submitted_date,
            self._approvals.final_approval_date(request_id),
            rate,
            as_of=self._clock.now(),
            max_weeks=self._max_weeks,
        )

    def summary_for(self, request_ids: Iterable[UUID]) -> ROIImpactSummary:
        return calculate_summary_stats([self.impact_for(rid) for rid in request_ids])

    def _inputs(
        self,
        request_id: UUID,
        decay_rate: Decimal | None,
        original_roi: Decimal | None,
    ) -> tuple[InvestmentRequest, Decimal, Decimal]:
        request = self._approvals.get_request(request_id)
        if request.submitted_date is None:
            raise ValidationError(
                "submitted_date", None, f"request {request_id} has not been submitted",
            )

        if original_roi is None:
            original_roi = self.original_roi_for(request_id)

        rate = decay_rate if decay_rate is not None else self.decay_rate_for(request)
        return request, original_roi, rate
