"""
Approval time domain types (``capex_kernel.domain.approval_times``).

Derived, non-persisted value objects produced by
``capex_engines.approval_times`` from a request and its approval log.
All durations are whole days.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from capex_kernel.domain.approval import ApprovalDecision


class Pace(str, Enum):
    """Speed band of the time spent at one level."""

    FAST = "fast"
    AVERAGE = "average"
    SLOW = "slow"


@dataclass(frozen=True)
class LevelTime:
    """Days a request waited before the decision at ``level``."""

    level: int
    days: int
    pace: Pace
    bottleneck: bool = False


@dataclass(frozen=True)
class RequestTimeline:
    """Per-level waiting times for one request, in log order."""

    request_id: UUID
    department: str
    business_case_types: tuple[str, ...]
    total_days: int
    level_times: tuple[LevelTime, ...] = ()

    @property
    def bottlenecks(self) -> tuple[LevelTime, ...]:
        return tuple(lt for lt in self.level_times if lt.bottleneck)


@dataclass(frozen=True)
class LevelTimeStats:
    """Aggregate waiting time at one level for one business-case type."""

    level: int
    business_case_type: str
    average_days: Decimal
    request_count: int
    fast_count: int
    average_count: int
    slow_count: int
    bottleneck_score: int


@dataclass(frozen=True)
class ApprovalTime:
    """Submission-to-outcome time of a completed request."""

    request_id: UUID
    department: str
    decision: ApprovalDecision
    submitted_date: datetime
    decided_at: datetime
    days: int
    level: int


@dataclass(frozen=True)
class DepartmentApprovalStats:
    department: str
    total_requests: int
    average_days: int
    approval_rate: Decimal


@dataclass(frozen=True)
class ApprovalTimesSummary:
    """Aggregate over completed requests.  Empty input gives all zeros."""

    total_requests: int = 0
    approved_requests: int = 0
    rejected_requests: int = 0
    average_days: int = 0
    median_days: int = 0
    fastest_days: int = 0
    slowest_days: int = 0
    approval_rate: Decimal = Decimal("0")
    departments: tuple[DepartmentApprovalStats, ...] = field(default_factory=tuple)
