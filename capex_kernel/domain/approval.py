"""
Approval domain types (``capex_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for approval routing: actor roles, matrix rules,
decision/log records, the workflow transition table, and the hold
re-entry policy.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  May import
only from ``domain/request``.

Invariants enforced
-------------------
* Roles are a tagged value (``ActorRole``) parsed once at the boundary;
  ``"Approver_L<n>"`` strings never reach business logic.
* ``STATUS_TRANSITIONS`` defines the only valid status changes.  Terminal
  statuses (Approved, Rejected) have no outgoing edges.
* ``ApprovalLogEntry`` is append-only; (request_id, acting_user_id) is
  unique (enforced by the storage layer, see ``models/approval``).
* Matrix rule amount ranges are closed intervals in the reference
  currency.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from capex_kernel.domain.request import RequestStatus, StatusKind

ALL_DEPARTMENTS = "All"


# =========================================================================
# Actor roles
# =========================================================================


class RoleKind(str, Enum):
    """Kinds of actor role."""

    ADMIN = "admin"
    APPROVER = "approver"
    SUBMITTER = "submitter"
    OTHER = "other"


_APPROVER_LABEL = re.compile(r"^Approver_L(\d+)$")


@dataclass(frozen=True)
class ActorRole:
    """Tagged actor role: Admin | Approver(level) | Submitter | Other(name)."""

    kind: RoleKind
    level: int | None = None
    name: str = ""

    @classmethod
    def admin(cls) -> ActorRole:
        return cls(RoleKind.ADMIN)

    @classmethod
    def approver(cls, level: int) -> ActorRole:
        if level < 1:
            raise ValueError(f"Approver level must be >= 1, got {level}")
        return cls(RoleKind.APPROVER, level=level)

    @classmethod
    def submitter(cls) -> ActorRole:
        return cls(RoleKind.SUBMITTER)

    @classmethod
    def parse(cls, label: str) -> ActorRole:
        """Parse a persisted role label (``"Admin"``, ``"Approver_L2"``, ...)."""
        label = label.strip()
        if label == "Admin":
            return cls.admin()
        if label == "Submitter":
            return cls.submitter()
        match = _APPROVER_LABEL.match(label)
        if match:
            return cls.approver(int(match.group(1)))
        return cls(RoleKind.OTHER, name=label)

    @property
    def label(self) -> str:
        if self.kind == RoleKind.ADMIN:
            return "Admin"
        if self.kind == RoleKind.SUBMITTER:
            return "Submitter"
        if self.kind == RoleKind.APPROVER:
            return f"Approver_L{self.level}"
        return self.name

    @property
    def is_admin(self) -> bool:
        return self.kind == RoleKind.ADMIN

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class Actor:
    """A user profile acting on requests."""

    user_id: UUID
    role: ActorRole
    department: str
    display_name: str = ""

    @property
    def level(self) -> int | None:
        return self.role.level


# =========================================================================
# Matrix rules
# =========================================================================


@dataclass(frozen=True)
class ApprovalMatrixRule:
    """A single row of the approval matrix.

    ``amount_min``/``amount_max`` form a closed interval in the reference
    currency.  ``department`` may be the wildcard ``"All"``.  Overlapping
    intervals are permitted; the resolver takes the first match.
    """

    level: int
    role: ActorRole
    department: str = ALL_DEPARTMENTS
    amount_min: Decimal = Decimal("0")
    amount_max: Decimal = Decimal("0")
    active: bool = True

    def covers(self, amount: Decimal) -> bool:
        return self.amount_min <= amount <= self.amount_max


# =========================================================================
# Actions, decisions and log entries
# =========================================================================


class ApprovalAction(str, Enum):
    """Actions an eligible actor can take on a request."""

    APPROVE = "approve"
    REJECT = "reject"
    HOLD = "hold"


class ApprovalDecision(str, Enum):
    """Decision recorded in the approval log."""

    APPROVED = "Approved"
    REJECTED = "Rejected"
    ON_HOLD = "On Hold"


ACTION_DECISIONS: dict[ApprovalAction, ApprovalDecision] = {
    ApprovalAction.APPROVE: ApprovalDecision.APPROVED,
    ApprovalAction.REJECT: ApprovalDecision.REJECTED,
    ApprovalAction.HOLD: ApprovalDecision.ON_HOLD,
}


@dataclass(frozen=True)
class ApprovalLogEntry:
    """Record of a single decision. Immutable."""

    request_id: UUID
    acting_user_id: UUID
    role: ActorRole
    level: int
    decision: ApprovalDecision
    timestamp: datetime
    comments: str = ""
    acting_user_name: str = ""
    entry_id: UUID = field(default_factory=uuid4)


# =========================================================================
# Transition table
# =========================================================================


STATUS_TRANSITIONS: dict[StatusKind, frozenset[StatusKind]] = {
    StatusKind.DRAFT: frozenset({StatusKind.SUBMITTED}),
    StatusKind.SUBMITTED: frozenset({
        StatusKind.PENDING_LEVEL,
        StatusKind.APPROVED,
        StatusKind.REJECTED,
        StatusKind.ON_HOLD,
    }),
    StatusKind.PENDING_LEVEL: frozenset({
        StatusKind.PENDING_LEVEL,
        StatusKind.APPROVED,
        StatusKind.REJECTED,
        StatusKind.ON_HOLD,
    }),
    StatusKind.UNDER_REVIEW: frozenset({
        StatusKind.PENDING_LEVEL,
        StatusKind.APPROVED,
        StatusKind.REJECTED,
        StatusKind.ON_HOLD,
    }),
    StatusKind.ON_HOLD: frozenset({
        StatusKind.SUBMITTED,
        StatusKind.UNDER_REVIEW,
        StatusKind.PENDING_LEVEL,
        StatusKind.APPROVED,
        StatusKind.REJECTED,
    }),
    StatusKind.APPROVED: frozenset(),
    StatusKind.REJECTED: frozenset(),
}


# =========================================================================
# Hold policy
# =========================================================================


@dataclass(frozen=True)
class HoldPolicy:
    """Who may resume an OnHold request back into its prior pending status.

    A resumed request returns to the status it held before the hold
    decision.  Resuming is not a decision and produces no log entry.
    """

    allow_resume: bool = True
    resume_role_kinds: frozenset[RoleKind] = frozenset({RoleKind.ADMIN})
    allow_holder_resume: bool = True


# =========================================================================
# Transition result
# =========================================================================


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of a state-machine step: the new status and its log entry."""

    previous_status: RequestStatus
    new_status: RequestStatus
    log_entry: ApprovalLogEntry | None = None
    held_from_status: RequestStatus | None = None
