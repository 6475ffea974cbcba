"""
Module: capex_kernel.models.approval
Responsibility: ORM persistence for the approval matrix and the approval log.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ (for DTO conversion only).

Invariants enforced:
    - One decision per user per request: UNIQUE(request_id, acting_user_id)
      on approval_log.  This constraint, not a prior SELECT, is the
      authoritative duplicate check.
    - The approval log is append-only: ORM listeners reject UPDATE and
      DELETE of log rows.
    - Roles are stored as labels ("Admin", "Approver_L2") and parsed into
      ``ActorRole`` exactly once, in ``to_dto``.

Failure modes:
    - IntegrityError on a duplicate (request_id, acting_user_id).
    - ImmutabilityViolationError on log UPDATE/DELETE.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from capex_kernel.db.base import Base, UUIDString
from capex_kernel.domain.approval import (
    ALL_DEPARTMENTS,
    ActorRole,
    ApprovalDecision,
    ApprovalLogEntry,
    ApprovalMatrixRule,
)
from capex_kernel.exceptions import ImmutabilityViolationError


class ApprovalMatrixRuleModel(Base):
    """Persistent approval matrix row.

    Rows are loaded in insertion order (``position``) so that the
    first-match rule for overlapping intervals is stable.
    """

    __tablename__ = "approval_matrix"

    __table_args__ = (
        Index("ix_approval_matrix_role_department", "role", "department"),
    )

    position: Mapped[int] = mapped_column(nullable=False, default=0)
    level: Mapped[int] = mapped_column(nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    department: Mapped[str] = mapped_column(
        String(100), nullable=False, default=ALL_DEPARTMENTS,
    )
    amount_min: Mapped[Decimal] = mapped_column(nullable=False)
    amount_max: Mapped[Decimal] = mapped_column(nullable=False)
    active: Mapped[bool] = mapped_column(nullable=False, default=True)

    def __repr__(self) -> str:
        return (
            f"<ApprovalMatrixRule L{self.level} {self.role} "
            f"{self.department} [{self.amount_min}, {self.amount_max}]>"
        )

    def to_dto(self) -> ApprovalMatrixRule:
        """Convert ORM model to frozen domain DTO."""
        return ApprovalMatrixRule(
            level=self.level,
            role=ActorRole.parse(self.role),
            department=self.department,
            amount_min=Decimal(self.amount_min),
            amount_max=Decimal(self.amount_max),
            active=self.active,
        )

    @classmethod
    def from_dto(cls, dto: ApprovalMatrixRule, position: int = 0) -> ApprovalMatrixRuleModel:
        """Create ORM model from domain DTO."""
        return cls(
            position=position,
            level=dto.level,
            role=dto.role.label,
            department=dto.department,
            amount_min=dto.amount_min,
            amount_max=dto.amount_max,
            active=dto.active,
        )


class ApprovalLogModel(Base):
    """Persistent approval log entry. Append-only.

    Guarantees:
        - UNIQUE(request_id, acting_user_id) prevents a second decision by
          the same user on the same request.
    """

    __tablename__ = "approval_log"

    __table_args__ = (
        Index("ix_approval_log_request_id", "request_id"),
        UniqueConstraint(
            "request_id", "acting_user_id",
            name="uq_approval_log_request_actor",
        ),
    )

    entry_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("investment_requests.request_id"),
        nullable=False,
    )
    acting_user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    acting_user_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    level: Mapped[int] = mapped_column(nullable=False)
    decision: Mapped[str] = mapped_column(String(20), nullable=False)
    comments: Mapped[str] = mapped_column(Text, default="", nullable=False)
    timestamp: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ApprovalLog {self.entry_id} "
            f"request={self.request_id} "
            f"decision={self.decision}>"
        )

    def to_dto(self) -> ApprovalLogEntry:
        """Convert ORM model to frozen domain DTO."""
        return ApprovalLogEntry(
            entry_id=self.entry_id,
            request_id=self.request_id,
            acting_user_id=self.acting_user_id,
            acting_user_name=self.acting_user_name,
            role=ActorRole.parse(self.role),
            level=self.level,
            decision=ApprovalDecision(self.decision),
            comments=self.comments,
            timestamp=self.timestamp,
        )

    @classmethod
    def from_dto(cls, dto: ApprovalLogEntry) -> ApprovalLogModel:
        """Create ORM model from domain DTO."""
        return cls(
            entry_id=dto.entry_id,
            request_id=dto.request_id,
            acting_user_id=dto.acting_user_id,
            acting_user_name=dto.acting_user_name,
            role=dto.role.label,
            level=dto.level,
            decision=dto.decision.value,
            comments=dto.comments,
            timestamp=dto.timestamp,
        )


# =============================================================================
# ORM-Level Immutability for the Approval Log (Append-Only)
# =============================================================================


@event.listens_for(ApprovalLogModel, "before_update")
def prevent_log_update(mapper, connection, target):
    """Prevent updates to approval log entries."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalLogEntry",
        entity_id=str(target.entry_id),
        reason="Approval log entries are immutable -- cannot modify",
    )


@event.listens_for(ApprovalLogModel, "before_delete")
def prevent_log_delete(mapper, connection, target):
    """Prevent deletion of approval log entries."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalLogEntry",
        entity_id=str(target.entry_id),
        reason="Approval log entries are immutable -- cannot delete",
    )
