"""
Module: capex_kernel.models.request
Responsibility: ORM persistence for investment requests.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ (for DTO conversion only).

Invariants enforced:
    - Status is stored as its display label ("Pending - Level 2", ...) and
      parsed back into a ``RequestStatus`` exactly once, in ``to_dto``.
    - Status changes go through conditional UPDATEs in
      ``capex_kernel.services.approval_service``; the ORM object is never
      mutated directly for a decision.
    - Business-case types are stored as a JSON list of enum values.

Failure modes:
    - IntegrityError on duplicate request_id.
    - ValueError from ``to_dto`` for an unparseable status label.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from capex_kernel.db.base import Base, UUIDString
from capex_kernel.domain.request import (
    BusinessCaseType,
    InvestmentRequest,
    Priority,
    RequestStatus,
)


class InvestmentRequestModel(Base):
    """Persistent investment request."""

    __tablename__ = "investment_requests"

    __table_args__ = (
        Index("ix_investment_requests_status", "status"),
        Index("ix_investment_requests_submitter", "submitter_id"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    submitter_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    project_title: Mapped[str] = mapped_column(String(200), nullable=False)
    department: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    capex: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    opex: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    base_currency_capex: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    base_currency_opex: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default=Priority.MEDIUM.value)
    business_case_types: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    held_from_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    submitted_date: Mapped[datetime | None] = mapped_column(nullable=True)
    last_updated: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<InvestmentRequest {self.request_id} status={self.status}>"

    def to_dto(self) -> InvestmentRequest:
        """Convert ORM model to frozen domain DTO."""
        return InvestmentRequest(
            request_id=self.request_id,
            submitter_id=self.submitter_id,
            project_title=self.project_title,
            department=self.department,
            category=self.category,
            capex=Decimal(self.capex),
            opex=Decimal(self.opex),
            currency=self.currency,
            base_currency_capex=Decimal(self.base_currency_capex),
            base_currency_opex=Decimal(self.base_currency_opex),
            priority=Priority(self.priority),
            business_case_types=BusinessCaseType.parse_many(self.business_case_types or ()),
            status=RequestStatus.parse(self.status),
            held_from_status=(
                RequestStatus.parse(self.held_from_status)
                if self.held_from_status else None
            ),
            submitted_date=self.submitted_date,
            last_updated=self.last_updated,
        )

    @classmethod
    def from_dto(cls, dto: InvestmentRequest) -> InvestmentRequestModel:
        """Create ORM model from domain DTO."""
        return cls(
            request_id=dto.request_id,
            submitter_id=dto.submitter_id,
            project_title=dto.project_title,
            department=dto.department,
            category=dto.category,
            capex=dto.capex,
            opex=dto.opex,
            currency=dto.currency,
            base_currency_capex=dto.base_currency_capex,
            base_currency_opex=dto.base_currency_opex,
            priority=dto.priority.value,
            business_case_types=sorted(t.value for t in dto.business_case_types),
            status=dto.status.label,
            held_from_status=dto.held_from_status.label if dto.held_from_status else None,
            submitted_date=dto.submitted_date,
            last_updated=dto.last_updated,
        )
