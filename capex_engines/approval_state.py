"""
capex_engines.approval_state -- Pure approval workflow state machine.

Responsibility:
    Given a request snapshot, an actor, an action and the approval matrix,
    compute the request's next status and the log entry that records the
    decision.  Also covers submission of drafts and explicit resumption
    of held requests.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import capex_kernel/domain/ types and sibling engines.
    The commit of a ``TransitionOutcome`` (log insert + status update as
    one transaction) is owned by ``capex_kernel.services.approval_service``.

Invariants enforced:
    - Terminal statuses (Approved, Rejected) accept no further actions.
    - A rejection carries non-empty comments.
    - One decision per (request, actor): ``prior_actor_ids`` is checked
      here; the storage unique constraint is the authoritative check.
    - Every resulting status is validated against ``STATUS_TRANSITIONS``.
    - Every successful ``decide`` yields exactly one ``ApprovalLogEntry``.

Failure modes:
    - InvalidTransitionError for actions against terminal or draft
      requests, or resume of a request that is not on hold.
    - MissingCommentsError for a rejection with blank comments.
    - AuthorizationError when the matrix does not allow the actor to act.
    - DuplicateActionError when the actor already acted on the request.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from datetime import datetime
from uuid import UUID

from capex_engines.approval_matrix import can_approve, effective_level, next_level
from capex_engines.tracer import traced_engine
from capex_kernel.domain.approval import (
    ACTION_DECISIONS,
    STATUS_TRANSITIONS,
    Actor,
    ApprovalAction,
    ApprovalLogEntry,
    ApprovalMatrixRule,
    HoldPolicy,
    TransitionOutcome,
)
from capex_kernel.domain.request import (
    APPROVED,
    ON_HOLD,
    REJECTED,
    SUBMITTED,
    InvestmentRequest,
    RequestStatus,
    StatusKind,
)
from capex_kernel.exceptions import (
    AuthorizationError,
    DuplicateActionError,
    InvalidTransitionError,
    MissingCommentsError,
)


def _check_transition(
    request: InvestmentRequest,
    new_status: RequestStatus,
    action: str,
) -> None:
    allowed = STATUS_TRANSITIONS.get(request.status.kind, frozenset())
    if new_status.kind not in allowed:
        raise InvalidTransitionError(
            str(request.request_id), request.status.label, action, new_status.label,
        )


def submit(request: InvestmentRequest, actor: Actor) -> TransitionOutcome:
    """Draft -> Submitted.  Only the submitter (or an Admin) may submit."""
    if request.status.kind != StatusKind.DRAFT:
        raise InvalidTransitionError(
            str(request.request_id), request.status.label, "submit", SUBMITTED.label,
        )
    if actor.user_id != request.submitter_id and not actor.role.is_admin:
        raise AuthorizationError(
            str(request.request_id), str(actor.user_id), "submit",
            "only the submitter may submit a draft",
        )
    return TransitionOutcome(previous_status=request.status, new_status=SUBMITTED)


def resolve_status(
    request: InvestmentRequest,
    actor: Actor,
    action: ApprovalAction,
    rules: Iterable[ApprovalMatrixRule],
) -> RequestStatus:
    """Map an action to the status it produces for this request."""
    if action == ApprovalAction.REJECT:
        return REJECTED
    if action == ApprovalAction.HOLD:
        return ON_HOLD

    following = next_level(effective_level(request, actor), rules)
    if following is None:
        return APPROVED
    return RequestStatus.pending(following)


@traced_engine("approval_state", "1.0", fingerprint_fields=("action",))
def decide(
    request: InvestmentRequest,
    actor: Actor,
    action: ApprovalAction,
    rules: Collection[ApprovalMatrixRule],
    as_of: datetime,
    comments: str = "",
    prior_actor_ids: Collection[UUID] = (),
) -> TransitionOutcome:
    """Apply an approve/reject/hold decision.

    Args:
        request: Current request snapshot.
        actor: Acting user profile.
        action: The decision to apply.
        rules: Approval matrix rules (active and inactive).
        as_of: Decision timestamp recorded on the log entry.
        comments: Free-text comments; required for rejections.
        prior_actor_ids: Users who already have a log entry for the request.

    Returns:
        TransitionOutcome with the new status and exactly one log entry.
    """
    request_id = str(request.request_id)
    actor_id = str(actor.user_id)

    if request.status.is_terminal or request.status.kind == StatusKind.DRAFT:
        raise InvalidTransitionError(request_id, request.status.label, action.value)

    if action == ApprovalAction.REJECT and not comments.strip():
        raise MissingCommentsError(request_id, actor_id)

    if not can_approve(request, actor, rules):
        raise AuthorizationError(
            request_id, actor_id, action.value,
            f"not eligible at status '{request.status.label}' "
            f"for amount {request.total_amount}",
        )

    if actor.user_id in prior_actor_ids:
        raise DuplicateActionError(request_id, actor_id, action.value)

    new_status = resolve_status(request, actor, action, rules)
    _check_transition(request, new_status, action.value)

    held_from = None
    if new_status.kind == StatusKind.ON_HOLD:
        held_from = request.status

    entry = ApprovalLogEntry(
        request_id=request.request_id,
        acting_user_id=actor.user_id,
        role=actor.role,
        level=effective_level(request, actor),
        decision=ACTION_DECISIONS[action],
        comments=comments.strip(),
        timestamp=as_of,
        acting_user_name=actor.display_name,
    )

    return TransitionOutcome(
        previous_status=request.status,
        new_status=new_status,
        log_entry=entry,
        held_from_status=held_from,
    )


def resume(
    request: InvestmentRequest,
    actor: Actor,
    hold_policy: HoldPolicy,
    holder_id: UUID | None = None,
) -> TransitionOutcome:
    """Return an OnHold request to the status it was held from.

    ``holder_id`` is the user whose decision put the request on hold.
    Falls back to ``Submitted`` when the held-from status is unknown.
    """
    request_id = str(request.request_id)
    if request.status.kind != StatusKind.ON_HOLD:
        raise InvalidTransitionError(request_id, request.status.label, "resume")

    if not hold_policy.allow_resume:
        raise AuthorizationError(
            request_id, str(actor.user_id), "resume", "resuming held requests is disabled",
        )

    is_holder = holder_id is not None and actor.user_id == holder_id
    if actor.role.kind not in hold_policy.resume_role_kinds and not (
        hold_policy.allow_holder_resume and is_holder
    ):
        raise AuthorizationError(
            request_id, str(actor.user_id), "resume",
            f"role '{actor.role.label}' may not resume held requests",
        )

    target = request.held_from_status or SUBMITTED
    _check_transition(request, target, "resume")
    return TransitionOutcome(previous_status=request.status, new_status=target)
