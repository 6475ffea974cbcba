"""ORM models for the capital investment approval kernel."""

from capex_kernel.models.approval import ApprovalLogModel, ApprovalMatrixRuleModel
from capex_kernel.models.kpi import KPIRecordModel
from capex_kernel.models.request import InvestmentRequestModel

__all__ = [
    "ApprovalLogModel",
    "ApprovalMatrixRuleModel",
    "InvestmentRequestModel",
    "KPIRecordModel",
]
