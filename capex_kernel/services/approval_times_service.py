"""
capex_kernel.services.approval_times_service -- Approval-time analytics.

Responsibility:
    Feed stored requests and their approval logs into
    ``capex_engines.approval_times``: per-request level timelines,
    per-level statistics, and submission-to-outcome summaries with a
    per-department breakdown.  Nothing is persisted.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/ and the
    pure engines.

Failure modes:
    - RequestNotFoundError if a request does not exist.
    - ValidationError if a timeline is requested for an unsubmitted request.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from capex_engines.approval_times import (
    build_request_timeline,
    calculate_approval_time,
    calculate_level_stats,
    summarize_approval_times,
)
from capex_kernel.domain.approval_times import (
    ApprovalTime,
    ApprovalTimesSummary,
    LevelTimeStats,
    RequestTimeline,
)
from capex_kernel.domain.clock import Clock
from capex_kernel.logging_config import get_logger
from capex_kernel.services.approval_service import ApprovalService

logger = get_logger("services.approval_times")


class ApprovalTimesService:
    """Timing analytics over persisted requests and their logs."""

    def __init__(self, session: Session, clock: Clock | None = None) -> None:
        self._approvals = ApprovalService(session, clock)

    def timeline_for(self, request_id: UUID) -> RequestTimeline:
        request = self._approvals.get_request(request_id)
        return build_request_timeline(request, self._approvals.get_log(request_id))

    def level_stats_for(self, request_ids: Iterable[UUID]) -> tuple[LevelTimeStats, ...]:
        """Per-level statistics over the submitted requests among ``request_ids``."""
        timelines = []
        for request_id in request_ids:
            request = self._approvals.get_request(request_id)
            if request.submitted_date is None:
                continue
            timelines.append(build_request_timeline(request, self._approvals.get_log(request_id)))
        return calculate_level_stats(timelines)

    def approval_time_for(self, request_id: UUID) -> ApprovalTime | None:
        request = self._approvals.get_request(request_id)
        return calculate_approval_time(request, self._approvals.get_log(request_id))

    def summary_for(self, request_ids: Iterable[UUID]) -> ApprovalTimesSummary:
        """Summary over the completed requests among ``request_ids``."""
        times = [
            time for time in (self.approval_time_for(rid) for rid in request_ids)
            if time is not None
        ]
        summary = summarize_approval_times(times)
        logger.info(
            "approval_times_summarized",
            extra={
                "completed_requests": summary.total_requests,
                "average_days": summary.average_days,
                "approval_rate": summary.approval_rate,
            },
        )
        return summary
