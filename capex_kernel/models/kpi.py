"""
Module: capex_kernel.models.kpi
Responsibility: ORM persistence for per-request KPI records (NPV, IRR,
    payback, ROI).

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ (for DTO conversion only).

Invariants enforced:
    - At most one KPI record per request: UNIQUE(request_id).
      Recomputation overwrites the existing row in place.
    - ``irr`` is NULL when IRR could not be determined; ``payback_period``
      is NULL when the investment is not recovered within the horizon.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from capex_kernel.db.base import Base, UUIDString
from capex_kernel.domain.financial import KPIRecord


def _decimal_or_none(value) -> Decimal | None:
    return Decimal(value) if value is not None else None


class KPIRecordModel(Base):
    """Persistent KPI record."""

    __tablename__ = "kpis"

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("investment_requests.request_id"),
        nullable=False,
        unique=True,
    )
    npv: Mapped[Decimal] = mapped_column(nullable=False)
    irr: Mapped[Decimal | None] = mapped_column(nullable=True)
    payback_period: Mapped[Decimal | None] = mapped_column(nullable=True)
    roi: Mapped[Decimal] = mapped_column(nullable=False)
    basis_of_calculation: Mapped[str] = mapped_column(Text, default="", nullable=False)
    calculated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<KPIRecord request={self.request_id} roi={self.roi}>"

    def to_dto(self) -> KPIRecord:
        """Convert ORM model to frozen domain DTO."""
        return KPIRecord(
            request_id=self.request_id,
            npv=Decimal(self.npv),
            irr=_decimal_or_none(self.irr),
            payback_period=_decimal_or_none(self.payback_period),
            roi=Decimal(self.roi),
            basis_of_calculation=self.basis_of_calculation,
            calculated_at=self.calculated_at,
        )

    def apply(self, dto: KPIRecord) -> None:
        """Overwrite this row's metrics with ``dto``."""
        self.npv = dto.npv
        self.irr = dto.irr
        self.payback_period = dto.payback_period
        self.roi = dto.roi
        self.basis_of_calculation = dto.basis_of_calculation
        self.calculated_at = dto.calculated_at

    @classmethod
    def from_dto(cls, dto: KPIRecord) -> KPIRecordModel:
        """Create ORM model from domain DTO."""
        model = cls(request_id=dto.request_id)
        model.apply(dto)
        return model
