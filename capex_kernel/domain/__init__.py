"""
Pure domain layer.

This module contains immutable value objects with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (except the Clock abstraction itself)
- I/O
"""

from capex_kernel.domain.approval import (
    ACTION_DECISIONS,
    ALL_DEPARTMENTS,
    STATUS_TRANSITIONS,
    Actor,
    ActorRole,
    ApprovalAction,
    ApprovalDecision,
    ApprovalLogEntry,
    ApprovalMatrixRule,
    HoldPolicy,
    RoleKind,
    TransitionOutcome,
)
from capex_kernel.domain.approval_times import (
    ApprovalTime,
    ApprovalTimesSummary,
    DepartmentApprovalStats,
    LevelTime,
    LevelTimeStats,
    Pace,
    RequestTimeline,
)
from capex_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from capex_kernel.domain.currency import (
    REFERENCE_CURRENCY,
    ExchangeRateCache,
    normalize_request_amounts,
)
from capex_kernel.domain.financial import (
    CashFlow,
    FinancialAssumptions,
    FinancialMetrics,
    KPIRecord,
    PaybackResult,
)
from capex_kernel.domain.request import (
    APPROVED,
    DRAFT,
    ON_HOLD,
    REJECTED,
    SUBMITTED,
    TERMINAL_STATUS_KINDS,
    UNDER_REVIEW,
    BusinessCaseType,
    InvestmentRequest,
    Priority,
    RequestStatus,
    StatusKind,
)
from capex_kernel.domain.roi_impact import (
    ImpactStatus,
    ROIImpactRecord,
    ROIImpactSummary,
    ROITimelinePoint,
    Severity,
)

__all__ = [
    "ACTION_DECISIONS",
    "ALL_DEPARTMENTS",
    "APPROVED",
    "Actor",
    "ActorRole",
    "ApprovalAction",
    "ApprovalDecision",
    "ApprovalLogEntry",
    "ApprovalMatrixRule",
    "ApprovalTime",
    "ApprovalTimesSummary",
    "BusinessCaseType",
    "CashFlow",
    "Clock",
    "DRAFT",
    "DepartmentApprovalStats",
    "DeterministicClock",
    "ExchangeRateCache",
    "FinancialAssumptions",
    "FinancialMetrics",
    "HoldPolicy",
    "ImpactStatus",
    "InvestmentRequest",
    "KPIRecord",
    "LevelTime",
    "LevelTimeStats",
    "ON_HOLD",
    "Pace",
    "PaybackResult",
    "Priority",
    "REFERENCE_CURRENCY",
    "REJECTED",
    "ROIImpactRecord",
    "ROIImpactSummary",
    "ROITimelinePoint",
    "RequestStatus",
    "RequestTimeline",
    "RoleKind",
    "STATUS_TRANSITIONS",
    "SUBMITTED",
    "Severity",
    "StatusKind",
    "SystemClock",
    "TERMINAL_STATUS_KINDS",
    "TransitionOutcome",
    "UNDER_REVIEW",
    "normalize_request_amounts",
]
