"""
Property-based tests for the capex engines.

Uses Hypothesis to check, over generated inputs:
- Matrix eligibility fails closed outside every configured range
- Adjusted ROI is never negative and never increases with delay
- Severity bands are ordered
- Dynamic decay rates stay inside their clamp
- Timelines are bounded and monotone
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from hypothesis import given, settings
from hypothesis import strategies as st

from capex_engines.approval_matrix import can_approve
from capex_engines.roi_impact import (
    MAX_DECAY_RATE,
    MIN_DECAY_RATE,
    calculate_dynamic_decay_rate,
    calculate_roi_impact,
    generate_roi_timeline,
    get_roi_impact_severity,
)
from capex_kernel.domain.approval import Actor, ActorRole, ApprovalMatrixRule
from capex_kernel.domain.request import (
    SUBMITTED,
    BusinessCaseType,
    InvestmentRequest,
    Priority,
)

START = datetime(2025, 1, 6, tzinfo=timezone.utc)

amounts = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("10000000"), places=2,
    allow_nan=False, allow_infinity=False,
)
rois = st.decimals(
    min_value=Decimal("0.01"), max_value=Decimal("200"), places=2,
    allow_nan=False, allow_infinity=False,
)
rates = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("3"), places=2,
    allow_nan=False, allow_infinity=False,
)
delays = st.integers(min_value=0, max_value=400 * 24 * 60)


def _request(total: Decimal) -> InvestmentRequest:
    return InvestmentRequest.new(
        submitter_id=uuid4(),
        project_title="Generated",
        department="IT",
        capex=total,
        base_currency_capex=total,
        status=SUBMITTED,
    )


@given(
    amount=amounts,
    bounds=st.tuples(amounts, amounts).map(sorted),
)
def test_eligibility_matches_range(amount, bounds):
    low, high = bounds
    rule = ApprovalMatrixRule(
        level=1, role=ActorRole.approver(1), amount_min=low, amount_max=high,
    )
    actor = Actor(user_id=uuid4(), role=ActorRole.approver(1), department="IT")

    assert can_approve(_request(amount), actor, (rule,)) == (low <= amount <= high)


@given(roi=rois, rate=rates, minutes=delays, extra=delays)
@settings(max_examples=200)
def test_adjusted_roi_bounded_and_monotone(roi, rate, minutes, extra):
    def adjusted(total_minutes):
        end = START + timedelta(minutes=total_minutes)
        return calculate_roi_impact(
            roi, START, end, Decimal("1000"), rate, as_of=end,
        ).adjusted_roi

    earlier = adjusted(minutes)
    later = adjusted(minutes + extra)

    assert Decimal("0") <= later <= earlier <= roi


@given(
    a=st.decimals(min_value=0, max_value=100, places=2),
    b=st.decimals(min_value=0, max_value=100, places=2),
)
def test_severity_is_monotone(a, b):
    order = ["low", "medium", "high", "critical"]
    low, high = sorted((a, b))

    assert order.index(get_roi_impact_severity(low).value) <= \
        order.index(get_roi_impact_severity(high).value)


@given(
    amount=amounts,
    types=st.frozensets(st.sampled_from(list(BusinessCaseType))),
    department=st.sampled_from(["IT", "R&D", "Sales", "Legal", ""]),
    priority=st.sampled_from(list(Priority)),
)
def test_dynamic_decay_rate_clamped(amount, types, department, priority):
    rate = calculate_dynamic_decay_rate(amount, types, department, priority)

    assert MIN_DECAY_RATE <= rate <= MAX_DECAY_RATE


@given(
    roi=rois,
    rate=rates,
    weeks=st.integers(min_value=0, max_value=400),
    cap=st.integers(min_value=0, max_value=300),
)
def test_timeline_bounded_and_non_increasing(roi, rate, weeks, cap):
    end = START + timedelta(weeks=weeks)

    points = generate_roi_timeline(roi, START, end, rate, as_of=end, max_weeks=cap)

    assert len(points) == min(weeks, cap) + 1
    values = [p.roi for p in points]
    assert values == sorted(values, reverse=True)
    losses = [p.cumulative_loss for p in points]
    assert losses == sorted(losses)
