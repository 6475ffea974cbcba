"""
capex_engines.roi_impact -- ROI decay under approval delay.

Responsibility:
    Model how elapsed approval time erodes a project's return: the linear
    decay ROI(d) = ROI0 - r * d (floored at zero), the value lost to that
    decay, a week-by-week timeline, portfolio summaries and severity bands.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import capex_kernel/domain/ types.
    "Now" is always supplied as ``as_of``; this module never reads a clock.

Invariants enforced:
    - Delay is never negative; adjusted ROI is never negative.
    - Values are computed at full precision and rounded only for
      reporting (ROI 2dp, delay 1dp, money 2dp).
    - Timelines are bounded by ``max_weeks``.
    - Decay rates from ``calculate_dynamic_decay_rate`` lie in [0.1, 2.0].

Failure modes:
    - ValidationError for a negative decay rate or investment amount.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import datetime, timedelta
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from uuid import UUID

from capex_engines.tracer import traced_engine
from capex_kernel.domain.request import BusinessCaseType, Priority
from capex_kernel.domain.roi_impact import (
    ImpactStatus,
    ROIImpactRecord,
    ROIImpactSummary,
    ROITimelinePoint,
    Severity,
)
from capex_kernel.exceptions import ValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")
WEEK = timedelta(weeks=1)

DEFAULT_DECAY_RATE = Decimal("0.75")
# Assumed undelayed ROI, in percent, when a request has no determined IRR.
DEFAULT_ORIGINAL_ROI = Decimal("15")
MIN_DECAY_RATE = Decimal("0.1")
MAX_DECAY_RATE = Decimal("2.0")
DEFAULT_MAX_WEEKS = 260

# (exclusive lower bound, increment), highest first.
AMOUNT_DECAY_TIERS: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal("1000000"), Decimal("0.3")),
    (Decimal("500000"), Decimal("0.2")),
    (Decimal("100000"), Decimal("0.1")),
)

CASE_TYPE_DECAY: dict[BusinessCaseType, Decimal] = {
    BusinessCaseType.COMPLIANCE: Decimal("0.3"),
    BusinessCaseType.ESG: Decimal("-0.1"),
    BusinessCaseType.COST_CONTROL: Decimal("0"),
    BusinessCaseType.EXPANSION: Decimal("0.2"),
    BusinessCaseType.ASSET_CREATION: Decimal("0"),
    BusinessCaseType.IPO_PREP: Decimal("0.5"),
}

DEPARTMENT_DECAY: dict[str, Decimal] = {
    "IT": Decimal("0.2"),
    "Manufacturing": Decimal("0.1"),
    "R&D": Decimal("-0.1"),
    "Finance": Decimal("0.15"),
    "Sales": Decimal("0.25"),
    "Marketing": Decimal("0.2"),
}

PRIORITY_DECAY: dict[Priority, Decimal] = {
    Priority.CRITICAL: Decimal("0.4"),
    Priority.HIGH: Decimal("0.2"),
    Priority.MEDIUM: Decimal("0"),
    Priority.LOW: Decimal("-0.1"),
}

# (exclusive upper bound on roi_loss_percentage, severity)
SEVERITY_BANDS: tuple[tuple[Decimal, Severity], ...] = (
    (Decimal("5"), Severity.LOW),
    (Decimal("15"), Severity.MEDIUM),
    (Decimal("30"), Severity.HIGH),
)

_CENT = Decimal("0.01")
_TENTH = Decimal("0.1")


def _q(value: Decimal, exponent: Decimal) -> Decimal:
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


def _weeks_between(start: datetime, end: datetime) -> Decimal:
    """Elapsed weeks as a Decimal, never negative."""
    elapsed = end - start
    micros = (elapsed.days * 86400 + elapsed.seconds) * 1_000_000 + elapsed.microseconds
    week_micros = 7 * 86400 * 1_000_000
    return max(ZERO, Decimal(micros) / Decimal(week_micros))


def _decayed(original_roi: Decimal, decay_rate: Decimal, weeks: Decimal) -> Decimal:
    return max(ZERO, original_roi - decay_rate * weeks)


def get_roi_impact_severity(roi_loss_percentage: Decimal) -> Severity:
    """Band a loss percentage: <5 low, <15 medium, <30 high, else critical."""
    for upper, severity in SEVERITY_BANDS:
        if roi_loss_percentage < upper:
            return severity
    return Severity.CRITICAL


@traced_engine(
    "roi_impact", "1.0",
    fingerprint_fields=(
        "original_roi", "submission_date", "final_approval_date",
        "investment_amount", "decay_rate", "as_of",
    ),
)
def calculate_roi_impact(
    original_roi: Decimal,
    submission_date: datetime,
    final_approval_date: datetime | None,
    investment_amount: Decimal,
    decay_rate: Decimal,
    as_of: datetime,
    request_id: UUID | None = None,
) -> ROIImpactRecord:
    """Decayed ROI and lost value for one request.

    Delay runs from submission to the final approval, or to ``as_of``
    while the request is still pending.

    Args:
        original_roi: Undelayed ROI, in percent.
        submission_date: When the request was submitted.
        final_approval_date: When the chain completed, or None if pending.
        investment_amount: Reference-currency total of the request.
        decay_rate: ROI points lost per week of delay.
        as_of: Current time, used when ``final_approval_date`` is None.
        request_id: Carried through onto the record.
    """
    if decay_rate < ZERO:
        raise ValidationError("decay_rate", decay_rate, "must not be negative")
    if investment_amount < ZERO:
        raise ValidationError("investment_amount", investment_amount, "must not be negative")

    end = final_approval_date if final_approval_date is not None else as_of
    delay = _weeks_between(submission_date, end)

    adjusted = _decayed(original_roi, decay_rate, delay)
    loss = original_roi - adjusted
    loss_percentage = loss / original_roi * HUNDRED if original_roi > ZERO else ZERO

    projected_value = investment_amount * original_roi / HUNDRED
    lost_value = investment_amount * loss / HUNDRED

    return ROIImpactRecord(
        request_id=request_id,
        original_roi=original_roi,
        adjusted_roi=_q(adjusted, _CENT),
        roi_loss=_q(loss, _CENT),
        roi_loss_percentage=_q(loss_percentage, _CENT),
        delay_in_weeks=_q(delay, _TENTH),
        decay_rate=decay_rate,
        projected_value=_q(projected_value, _CENT),
        lost_value=_q(lost_value, _CENT),
        status=ImpactStatus.PENDING if final_approval_date is None else ImpactStatus.APPROVED,
        severity=get_roi_impact_severity(loss_percentage),
        submission_date=submission_date,
        final_approval_date=final_approval_date,
        as_of=as_of,
    )


def calculate_dynamic_decay_rate(
    investment_amount: Decimal,
    business_case_types: Collection[BusinessCaseType],
    department: str,
    priority: Priority,
    base_rate: Decimal = DEFAULT_DECAY_RATE,
) -> Decimal:
    """Weekly decay rate derived from request characteristics.

    ``base_rate`` (0.75 by default), plus the amount tier, every
    business-case adjustment, the department adjustment (0 for unlisted
    departments) and the priority adjustment.  Clamped to [0.1, 2.0].
    """
    rate = base_rate

    for threshold, increment in AMOUNT_DECAY_TIERS:
        if investment_amount > threshold:
            rate += increment
            break

    for case_type in set(business_case_types):
        rate += CASE_TYPE_DECAY[case_type]

    rate += DEPARTMENT_DECAY.get(department, ZERO)
    rate += PRIORITY_DECAY[priority]

    return max(MIN_DECAY_RATE, min(MAX_DECAY_RATE, rate))


def generate_roi_timeline(
    original_roi: Decimal,
    submission_date: datetime,
    final_approval_date: datetime | None,
    decay_rate: Decimal,
    as_of: datetime,
    max_weeks: int = DEFAULT_MAX_WEEKS,
) -> tuple[ROITimelinePoint, ...]:
    """ROI at each whole week from submission to the end date.

    Produces ``floor(total_weeks) + 1`` points (week 0 included), capped
    at ``max_weeks + 1``.
    """
    if max_weeks < 0:
        raise ValidationError("max_weeks", max_weeks, "must not be negative")

    end = final_approval_date if final_approval_date is not None else as_of
    total_weeks = int(_weeks_between(submission_date, end).to_integral_value(rounding=ROUND_FLOOR))
    last_week = min(total_weeks, max_weeks)

    points = []
    for week in range(last_week + 1):
        roi = _decayed(original_roi, decay_rate, Decimal(week))
        points.append(ROITimelinePoint(
            date=(submission_date + week * WEEK).date(),
            weeks_since_submission=week,
            roi=_q(roi, _CENT),
            cumulative_loss=_q(original_roi - roi, _CENT),
        ))
    return tuple(points)


def calculate_summary_stats(impacts: Sequence[ROIImpactRecord]) -> ROIImpactSummary:
    """Aggregate a set of impact records.  Empty input gives all zeros."""
    if not impacts:
        return ROIImpactSummary()

    count = Decimal(len(impacts))
    total_delay = sum((i.delay_in_weeks for i in impacts), ZERO)
    total_loss = sum((i.roi_loss for i in impacts), ZERO)
    total_lost_value = sum((i.lost_value for i in impacts), ZERO)
    delays = [i.delay_in_weeks for i in impacts if i.delay_in_weeks > ZERO]

    return ROIImpactSummary(
        total_requests=len(impacts),
        average_delay=_q(total_delay / count, _TENTH),
        total_roi_loss=_q(total_loss, _CENT),
        average_roi_loss=_q(total_loss / count, _CENT),
        fastest_approval=min(delays) if delays else ZERO,
        slowest_approval=max(delays) if delays else ZERO,
        total_value_lost=_q(total_lost_value, _CENT),
    )
