"""
Tests for ApprovalTimesService -- timing analytics over stored logs.

Covers:
- Level timeline of an approved request, with its bottleneck
- Submission-to-outcome time for approved and rejected requests
- Per-level statistics skip unsubmitted requests
- Summary over a mix of completed and open requests
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from capex_kernel.domain.approval import Actor, ActorRole, ApprovalAction, ApprovalDecision
from capex_kernel.domain.approval_times import Pace
from capex_kernel.exceptions import RequestNotFoundError


def _actor(label: str) -> Actor:
    return Actor(user_id=uuid4(), role=ActorRole.parse(label), department="IT")


@pytest.fixture
def approve_with_waits(approval_service, deterministic_clock):
    """Approve every level, waiting the given number of days before each."""

    def _approve(request_id, waits=(1, 3, 8, 1)):
        for level, days in enumerate(waits, start=1):
            deterministic_clock.advance(days=days)
            approval_service.decide(
                request_id, _actor(f"Approver_L{level}"), ApprovalAction.APPROVE,
            )

    return _approve


@pytest.fixture
def reject_after(approval_service, deterministic_clock):

    def _reject(request_id, days):
        deterministic_clock.advance(days=days)
        approval_service.decide(
            request_id, _actor("Approver_L1"), ApprovalAction.REJECT,
            comments="Duplicate of an existing project",
        )

    return _reject


class TestTimeline:

    def test_level_waits_from_log(
        self, approval_times_service, submitted_request, approve_with_waits,
    ):
        request_id = submitted_request("30000")
        approve_with_waits(request_id)

        timeline = approval_times_service.timeline_for(request_id)

        assert [(t.level, t.days) for t in timeline.level_times] == [
            (1, 1), (2, 3), (3, 8), (4, 1),
        ]
        assert timeline.total_days == 13
        assert [t.level for t in timeline.bottlenecks] == [3]
        assert timeline.level_times[2].pace == Pace.SLOW

    def test_unknown_request(self, approval_times_service):
        with pytest.raises(RequestNotFoundError):
            approval_times_service.timeline_for(uuid4())


class TestApprovalTime:

    def test_approved(self, approval_times_service, submitted_request, approve_with_waits):
        request_id = submitted_request("30000")
        approve_with_waits(request_id)

        result = approval_times_service.approval_time_for(request_id)

        assert result.days == 13
        assert result.level == 4
        assert result.decision == ApprovalDecision.APPROVED

    def test_rejected(self, approval_times_service, submitted_request, reject_after):
        request_id = submitted_request("30000")
        reject_after(request_id, 2)

        result = approval_times_service.approval_time_for(request_id)

        assert result.days == 2
        assert result.decision == ApprovalDecision.REJECTED

    def test_pending(self, approval_times_service, submitted_request):
        assert approval_times_service.approval_time_for(submitted_request("30000")) is None


class TestPortfolio:

    def test_level_stats_skip_drafts(
        self, approval_times_service, approval_service, submitted_request, approve_with_waits,
    ):
        approved = submitted_request("30000")
        approve_with_waits(approved)
        draft = approval_service.create_request(
            submitter_id=uuid4(),
            project_title="Not yet submitted",
            department="IT",
            capex=Decimal("1000"),
        )

        stats = approval_times_service.level_stats_for([approved, draft.request_id])

        assert [(s.business_case_type, s.level) for s in stats] == [
            ("Unspecified", 1), ("Unspecified", 2), ("Unspecified", 3), ("Unspecified", 4),
        ]
        assert stats[2].slow_count == 1

    def test_summary(
        self, approval_times_service, submitted_request, approve_with_waits, reject_after,
        captured_logs,
    ):
        approved = submitted_request("30000")
        rejected = submitted_request("30000", department="Finance")
        pending = submitted_request("30000")
        approve_with_waits(approved)
        reject_after(rejected, 2)

        summary = approval_times_service.summary_for([approved, rejected, pending])

        assert summary.total_requests == 2
        assert summary.approval_rate == Decimal("50.00")
        assert [d.department for d in summary.departments] == ["Finance", "IT"]
        assert any(r["message"] == "approval_times_summarized" for r in captured_logs())
