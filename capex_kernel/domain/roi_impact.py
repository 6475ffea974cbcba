"""
ROI impact domain types (``capex_kernel.domain.roi_impact``).

Derived, non-persisted value objects produced by
``capex_engines.roi_impact``.  ROI figures are percentage points; decay
rates are percentage points per week.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ImpactStatus(str, Enum):
    """Whether the delay is still accruing."""

    PENDING = "pending"
    APPROVED = "approved"


class Severity(str, Enum):
    """Severity band of an ROI loss percentage."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def description(self) -> str:
        return _SEVERITY_DESCRIPTIONS[self]


_SEVERITY_DESCRIPTIONS = {
    Severity.LOW: "Minimal impact on returns",
    Severity.MEDIUM: "Moderate impact on returns",
    Severity.HIGH: "Significant impact on returns",
    Severity.CRITICAL: "Critical impact on returns",
}


@dataclass(frozen=True)
class ROIImpactRecord:
    """Decayed ROI and lost value for a single request."""

    original_roi: Decimal
    adjusted_roi: Decimal
    roi_loss: Decimal
    roi_loss_percentage: Decimal
    delay_in_weeks: Decimal
    decay_rate: Decimal
    projected_value: Decimal
    lost_value: Decimal
    status: ImpactStatus
    severity: Severity
    submission_date: datetime
    final_approval_date: datetime | None
    as_of: datetime
    request_id: UUID | None = None


@dataclass(frozen=True)
class ROITimelinePoint:
    """ROI at a whole week since submission."""

    date: date
    weeks_since_submission: int
    roi: Decimal
    cumulative_loss: Decimal


@dataclass(frozen=True)
class ROIImpactSummary:
    """Aggregate over many ROI impact records."""

    total_requests: int = 0
    average_delay: Decimal = Decimal("0")
    total_roi_loss: Decimal = Decimal("0")
    average_roi_loss: Decimal = Decimal("0")
    fastest_approval: Decimal = Decimal("0")
    slowest_approval: Decimal = Decimal("0")
    total_value_lost: Decimal = Decimal("0")
