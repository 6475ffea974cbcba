"""Services for the capex kernel (write side)."""

from capex_kernel.services.approval_service import ApprovalService
from capex_kernel.services.approval_times_service import ApprovalTimesService
from capex_kernel.services.kpi_service import KPIService
from capex_kernel.services.roi_impact_service import ROIImpactService

__all__ = [
    "ApprovalService",
    "ApprovalTimesService",
    "KPIService",
    "ROIImpactService",
]
