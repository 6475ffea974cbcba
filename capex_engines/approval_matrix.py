"""
capex_engines.approval_matrix -- Pure approval matrix resolver.

Responsibility:
    Answer "can this actor act on this request, and what happens next"
    from a configured set of approval matrix rules: which rules apply to
    an actor, whether the actor is eligible for a request in its current
    status, and which level the chain advances to.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import capex_kernel/domain/ types.

Invariants enforced:
    - Fail closed: no applicable rule covering the amount => not eligible.
    - Admin actors are always eligible.
    - Level numbering need not be contiguous; ``next_level`` searches the
      active rules rather than incrementing.
    - Purity: no clock access, no I/O, no database.

Failure modes:
    None -- every function returns a value for any input.
"""

from __future__ import annotations

from collections.abc import Iterable

from capex_kernel.domain.approval import (
    ALL_DEPARTMENTS,
    Actor,
    ActorRole,
    ApprovalMatrixRule,
    RoleKind,
)
from capex_kernel.domain.request import (
    SUBMITTED,
    InvestmentRequest,
    RequestStatus,
    StatusKind,
)


def applicable_rules(
    role: ActorRole,
    department: str,
    rules: Iterable[ApprovalMatrixRule],
) -> tuple[ApprovalMatrixRule, ...]:
    """Active rules for ``role`` in ``department`` (or the ``"All"`` wildcard).

    Order of ``rules`` is preserved so that the first match wins when
    intervals overlap.
    """
    return tuple(
        rule
        for rule in rules
        if rule.active
        and rule.role == role
        and (rule.department == ALL_DEPARTMENTS or rule.department == department)
    )


def matching_rule(
    request: InvestmentRequest,
    actor: Actor,
    rules: Iterable[ApprovalMatrixRule],
) -> ApprovalMatrixRule | None:
    """First applicable rule whose closed amount interval covers the request."""
    amount = request.total_amount
    for rule in applicable_rules(actor.role, actor.department, rules):
        if rule.covers(amount):
            return rule
    return None


def can_approve(
    request: InvestmentRequest,
    actor: Actor,
    rules: Iterable[ApprovalMatrixRule],
) -> bool:
    """Check whether ``actor`` may act on ``request`` right now.

    An Admin may always act.  Otherwise the actor must be an approver,
    the request must be waiting at the actor's level (or be freshly
    ``Submitted``), and an applicable rule must cover the request total.
    """
    if actor.role.is_admin:
        return True

    if actor.role.kind != RoleKind.APPROVER or actor.level is None:
        return False

    expected = RequestStatus.pending(actor.level)
    if request.status != expected and request.status != SUBMITTED:
        return False

    return matching_rule(request, actor, rules) is not None


def next_level(
    current_level: int,
    rules: Iterable[ApprovalMatrixRule],
) -> int | None:
    """Smallest active level strictly above ``current_level``.

    Returns None when no higher level exists, meaning an approval at
    ``current_level`` terminates the chain.
    """
    higher = [rule.level for rule in rules if rule.active and rule.level > current_level]
    return min(higher) if higher else None


def highest_level(rules: Iterable[ApprovalMatrixRule]) -> int | None:
    """Highest active level in the matrix, or None for an empty matrix."""
    levels = [rule.level for rule in rules if rule.active]
    return max(levels) if levels else None


def effective_level(request: InvestmentRequest, actor: Actor) -> int:
    """Level at which ``actor`` acts on ``request``.

    Approvers act at their own level.  Admins act at the level the request
    is waiting at: the pending level, the level held from for an OnHold
    request, or 0 (the entry point) otherwise.
    """
    if actor.role.kind == RoleKind.APPROVER and actor.level is not None:
        return actor.level

    status = request.status
    if status.kind == StatusKind.ON_HOLD and request.held_from_status is not None:
        status = request.held_from_status
    if status.kind == StatusKind.PENDING_LEVEL and status.level is not None:
        return status.level
    return 0
