"""
Config -> Kernel Bridges.

Functions that wire a loaded ``CapexConfig`` into kernel services.  These
live in capex_config (the producer) because the kernel must NEVER import
capex_config.

Usage:
    from capex_config import get_default_config
    from capex_config.bridges import build_approval_service, seed_approval_matrix

    config = get_default_config()
    with session_scope() as session:
        seed_approval_matrix(session, config)
        approvals = build_approval_service(session, config)
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from capex_config.schema import CapexConfig
from capex_kernel.domain.clock import Clock
from capex_kernel.services.approval_service import ApprovalService
from capex_kernel.services.kpi_service import KPIService
from capex_kernel.services.roi_impact_service import ROIImpactService


def build_approval_service(
    session: Session,
    config: CapexConfig,
    clock: Clock | None = None,
) -> ApprovalService:
    settings = config.settings
    return ApprovalService(
        session,
        clock,
        hold_policy=settings.hold_policy.to_policy(),
        exchange_rate_ttl=settings.exchange_rate_ttl,
        reference_currency=settings.reference_currency,
    )


def build_kpi_service(
    session: Session,
    config: CapexConfig,
    clock: Clock | None = None,
) -> KPIService:
    return KPIService(
        session,
        clock,
        irr_max_iterations=config.settings.irr_max_iterations,
        irr_tolerance=config.settings.irr_tolerance,
    )


def build_roi_impact_service(
    session: Session,
    config: CapexConfig,
    clock: Clock | None = None,
) -> ROIImpactService:
    return ROIImpactService(
        session,
        clock,
        max_weeks=config.settings.timeline_max_weeks,
        base_decay_rate=config.settings.default_decay_rate,
        default_original_roi=config.settings.default_original_roi,
    )


def seed_approval_matrix(session: Session, config: CapexConfig) -> int:
    """Store the configured matrix rows when the matrix table is empty.

    Returns the number of rows added (0 if a matrix already exists).
    """
    service = ApprovalService(session)
    if service.load_rules():
        return 0
    return service.seed_rules(config.approval_rules())
