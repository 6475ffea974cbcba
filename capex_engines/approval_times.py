"""
capex_engines.approval_times -- Approval-time analytics from the log trail.

Responsibility:
    Measure how long requests wait in the approval chain: days spent before
    each level's decision, fast/average/slow pacing, bottleneck levels, and
    submission-to-outcome times for completed requests with portfolio and
    per-department summaries.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import capex_kernel/domain/ types.

Invariants enforced:
    - Log entries are ordered by timestamp before any interval is taken.
    - A level's waiting time runs from the previous decision (or the
      submission) to its own decision, rounded half-up to whole days; a
      zero-day wait is not reported as a level time.
    - Submission-to-outcome time rounds up to whole days.
    - Only Approved or Rejected requests have an approval time.

Failure modes:
    - ValidationError if a timeline is requested for an unsubmitted request.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

from capex_engines.tracer import traced_engine
from capex_kernel.domain.approval import ApprovalDecision, ApprovalLogEntry
from capex_kernel.domain.approval_times import (
    ApprovalTime,
    ApprovalTimesSummary,
    DepartmentApprovalStats,
    LevelTime,
    LevelTimeStats,
    Pace,
    RequestTimeline,
)
from capex_kernel.domain.request import InvestmentRequest, StatusKind
from capex_kernel.exceptions import ValidationError

HUNDRED = Decimal("100")

FAST_MAX_DAYS = 2
SLOW_MIN_DAYS = 7
BOTTLENECK_MIN_DAYS = 5

# Weights of the bottleneck score: average days, and share of slow waits.
AVERAGE_DAYS_WEIGHT = Decimal("0.6")
SLOW_SHARE_WEIGHT = Decimal("40")

UNSPECIFIED_CASE_TYPE = "Unspecified"

_OUTCOME_DECISIONS = {
    StatusKind.APPROVED: ApprovalDecision.APPROVED,
    StatusKind.REJECTED: ApprovalDecision.REJECTED,
}

_DAY_MICROS = Decimal(86400 * 1_000_000)
_CENT = Decimal("0.01")
_TENTH = Decimal("0.1")


def _days_between(start: datetime, end: datetime) -> Decimal:
    elapsed = end - start
    micros = (elapsed.days * 86400 + elapsed.seconds) * 1_000_000 + elapsed.microseconds
    return Decimal(micros) / _DAY_MICROS


def _whole(value: Decimal, rounding: str = ROUND_HALF_UP) -> int:
    return int(value.to_integral_value(rounding=rounding))


def _ordered(entries: Sequence[ApprovalLogEntry]) -> list[ApprovalLogEntry]:
    return sorted(entries, key=lambda e: e.timestamp)


def classify_pace(days: int) -> Pace:
    """<=2 days fast, >=7 days slow, otherwise average."""
    if days <= FAST_MAX_DAYS:
        return Pace.FAST
    if days >= SLOW_MIN_DAYS:
        return Pace.SLOW
    return Pace.AVERAGE


@traced_engine(
    "approval_times", "1.0",
    fingerprint_fields=("submitted_date", "entries"),
)
def calculate_level_times(
    submitted_date: datetime,
    entries: Sequence[ApprovalLogEntry],
) -> tuple[LevelTime, ...]:
    """Waiting time before each decision, in log order.

    When more than one level was timed, the longest wait is flagged as a
    bottleneck if it lasted at least five days.
    """
    days_by_level: list[tuple[int, int]] = []
    previous = submitted_date
    for entry in _ordered(entries):
        days = _whole(_days_between(previous, entry.timestamp))
        if days > 0:
            days_by_level.append((entry.level, days))
        previous = entry.timestamp

    longest = max((days for _, days in days_by_level), default=0)
    flag = len(days_by_level) > 1 and longest >= BOTTLENECK_MIN_DAYS

    return tuple(
        LevelTime(
            level=level,
            days=days,
            pace=classify_pace(days),
            bottleneck=flag and days == longest,
        )
        for level, days in days_by_level
    )


def build_request_timeline(
    request: InvestmentRequest,
    entries: Sequence[ApprovalLogEntry],
) -> RequestTimeline:
    if request.submitted_date is None:
        raise ValidationError(
            "submitted_date", None, f"request {request.request_id} has not been submitted",
        )
    level_times = calculate_level_times(request.submitted_date, entries)
    return RequestTimeline(
        request_id=request.request_id,
        department=request.department,
        business_case_types=tuple(sorted(t.value for t in request.business_case_types)),
        total_days=sum(lt.days for lt in level_times),
        level_times=level_times,
    )


def calculate_level_stats(timelines: Sequence[RequestTimeline]) -> tuple[LevelTimeStats, ...]:
    """Waiting-time statistics per (business-case type, level).

    A request counts once under each of its business-case types, or under
    "Unspecified" when it has none.  Sorted by type, then level.
    """
    groups: dict[tuple[str, int], list[int]] = defaultdict(list)
    for timeline in timelines:
        case_types = timeline.business_case_types or (UNSPECIFIED_CASE_TYPE,)
        for case_type in case_types:
            for level_time in timeline.level_times:
                groups[(case_type, level_time.level)].append(level_time.days)

    stats = []
    for (case_type, level), days in sorted(groups.items()):
        count = len(days)
        average = Decimal(sum(days)) / count
        fast = sum(1 for d in days if classify_pace(d) == Pace.FAST)
        slow = sum(1 for d in days if classify_pace(d) == Pace.SLOW)
        score = average * AVERAGE_DAYS_WEIGHT + Decimal(slow) / count * SLOW_SHARE_WEIGHT
        stats.append(LevelTimeStats(
            level=level,
            business_case_type=case_type,
            average_days=average.quantize(_TENTH, rounding=ROUND_HALF_UP),
            request_count=count,
            fast_count=fast,
            average_count=count - fast - slow,
            slow_count=slow,
            bottleneck_score=_whole(score),
        ))
    return tuple(stats)


def calculate_approval_time(
    request: InvestmentRequest,
    entries: Sequence[ApprovalLogEntry],
) -> ApprovalTime | None:
    """Submission-to-outcome time, or None while the request is open.

    The outcome is the last log entry carrying the request's final
    decision.
    """
    decision = _OUTCOME_DECISIONS.get(request.status.kind)
    if decision is None or request.submitted_date is None:
        return None

    decisive = [e for e in _ordered(entries) if e.decision == decision]
    if not decisive:
        return None
    outcome = decisive[-1]

    return ApprovalTime(
        request_id=request.request_id,
        department=request.department,
        decision=decision,
        submitted_date=request.submitted_date,
        decided_at=outcome.timestamp,
        days=max(0, _whole(_days_between(request.submitted_date, outcome.timestamp), ROUND_CEILING)),
        level=outcome.level,
    )


def _approval_rate(approved: int, total: int) -> Decimal:
    return (Decimal(approved) / total * HUNDRED).quantize(_CENT, rounding=ROUND_HALF_UP)


def calculate_department_stats(
    times: Sequence[ApprovalTime],
) -> tuple[DepartmentApprovalStats, ...]:
    by_department: dict[str, list[ApprovalTime]] = defaultdict(list)
    for time in times:
        by_department[time.department].append(time)

    return tuple(
        DepartmentApprovalStats(
            department=department,
            total_requests=len(group),
            average_days=_whole(Decimal(sum(t.days for t in group)) / len(group)),
            approval_rate=_approval_rate(
                sum(1 for t in group if t.decision == ApprovalDecision.APPROVED), len(group),
            ),
        )
        for department, group in sorted(by_department.items())
    )


def summarize_approval_times(times: Sequence[ApprovalTime]) -> ApprovalTimesSummary:
    """Average, median (upper middle), extremes and approval rate."""
    if not times:
        return ApprovalTimesSummary()

    days = sorted(t.days for t in times)
    approved = sum(1 for t in times if t.decision == ApprovalDecision.APPROVED)

    return ApprovalTimesSummary(
        total_requests=len(times),
        approved_requests=approved,
        rejected_requests=len(times) - approved,
        average_days=_whole(Decimal(sum(days)) / len(days)),
        median_days=days[len(days) // 2],
        fastest_days=days[0],
        slowest_days=days[-1],
        approval_rate=_approval_rate(approved, len(times)),
        departments=calculate_department_stats(times),
    )
