"""
Module: capex_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for the
    service layer (capex_kernel.services).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import capex_kernel/domain types (and sibling engine modules).
    MUST NOT import capex_kernel.services, capex_kernel.models or
    capex_config.

Invariants enforced:
    - Purity: engines never read the clock; "now" is passed in as
      ``as_of`` by the calling service.
    - Decimal-only arithmetic for amounts, rates and ROI figures.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine entry points are wrapped with ``@traced_engine`` (see
    ``capex_engines.tracer``), emitting CAPEX_ENGINE_TRACE records with
    engine name, version, input fingerprint and duration.

Usage:
    from capex_engines import can_approve, decide
    from capex_engines import calculate_financial_metrics
    from capex_engines import calculate_roi_impact, generate_roi_timeline
"""

from capex_engines.approval_matrix import (
    applicable_rules,
    can_approve,
    effective_level,
    highest_level,
    matching_rule,
    next_level,
)
from capex_engines.approval_state import decide, resolve_status, resume, submit
from capex_engines.approval_times import (
    build_request_timeline,
    calculate_approval_time,
    calculate_department_stats,
    calculate_level_stats,
    calculate_level_times,
    classify_pace,
    summarize_approval_times,
)
from capex_engines.financial_metrics import (
    build_kpi_record,
    calculate_financial_metrics,
    calculate_irr,
    calculate_npv,
    calculate_payback_period,
    calculate_roi,
    default_assumptions,
    estimate_annual_cash_inflow,
    generate_cash_flows,
    get_default_discount_rate,
    validate_financial_inputs,
)
from capex_engines.request_validation import (
    ValidationData,
    ValidationResult,
    rules_for_category,
    validate_investment_request,
)
from capex_engines.roi_impact import (
    calculate_dynamic_decay_rate,
    calculate_roi_impact,
    calculate_summary_stats,
    generate_roi_timeline,
    get_roi_impact_severity,
)
from capex_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "ValidationData",
    "ValidationResult",
    "applicable_rules",
    "build_kpi_record",
    "build_request_timeline",
    "calculate_approval_time",
    "calculate_department_stats",
    "calculate_dynamic_decay_rate",
    "calculate_financial_metrics",
    "calculate_irr",
    "calculate_level_stats",
    "calculate_level_times",
    "calculate_npv",
    "calculate_payback_period",
    "calculate_roi",
    "calculate_roi_impact",
    "calculate_summary_stats",
    "can_approve",
    "classify_pace",
    "compute_input_fingerprint",
    "decide",
    "default_assumptions",
    "effective_level",
    "estimate_annual_cash_inflow",
    "generate_cash_flows",
    "generate_roi_timeline",
    "get_default_discount_rate",
    "get_roi_impact_severity",
    "highest_level",
    "matching_rule",
    "next_level",
    "resolve_status",
    "resume",
    "rules_for_category",
    "submit",
    "summarize_approval_times",
    "traced_engine",
    "validate_financial_inputs",
    "validate_investment_request",
]
