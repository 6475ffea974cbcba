"""
Configuration schema (``capex_config.schema``).

Frozen dataclasses describing a capex configuration set: the approval
matrix rows and the engine settings.  These are the parsed form of the
YAML files in ``capex_config/defaults``; ``capex_config.loader`` builds
them and the ``to_*`` helpers bridge them into kernel domain types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

from capex_kernel.domain.approval import (
    ALL_DEPARTMENTS,
    ActorRole,
    ApprovalMatrixRule,
    HoldPolicy,
    RoleKind,
)


@dataclass(frozen=True)
class ApprovalMatrixDef:
    """One approval matrix row as configured."""

    level: int
    role: str  # "Admin", "Approver_L2", ...
    amount_min: Decimal
    amount_max: Decimal
    department: str = ALL_DEPARTMENTS
    active: bool = True

    def to_rule(self) -> ApprovalMatrixRule:
        return ApprovalMatrixRule(
            level=self.level,
            role=ActorRole.parse(self.role),
            department=self.department,
            amount_min=self.amount_min,
            amount_max=self.amount_max,
            active=self.active,
        )


@dataclass(frozen=True)
class HoldPolicyDef:
    """Who may resume held requests."""

    allow_resume: bool = True
    resume_roles: tuple[str, ...] = ("admin",)  # RoleKind values
    allow_holder_resume: bool = True

    def to_policy(self) -> HoldPolicy:
        return HoldPolicy(
            allow_resume=self.allow_resume,
            resume_role_kinds=frozenset(RoleKind(r) for r in self.resume_roles),
            allow_holder_resume=self.allow_holder_resume,
        )


@dataclass(frozen=True)
class EngineSettings:
    """Tunables for the engines and services."""

    reference_currency: str = "USD"
    default_decay_rate: Decimal = Decimal("0.75")
    default_original_roi: Decimal = Decimal("15")
    timeline_max_weeks: int = 260
    irr_max_iterations: int = 100
    irr_tolerance: Decimal = Decimal("1e-6")
    exchange_rate_ttl_seconds: int = 3600
    hold_policy: HoldPolicyDef = field(default_factory=HoldPolicyDef)

    @property
    def exchange_rate_ttl(self) -> timedelta:
        return timedelta(seconds=self.exchange_rate_ttl_seconds)


@dataclass(frozen=True)
class CapexConfig:
    """A complete configuration set."""

    config_id: str
    version: int
    approval_matrix: tuple[ApprovalMatrixDef, ...]
    settings: EngineSettings = field(default_factory=EngineSettings)
    description: str = ""
    checksum: str = ""

    def approval_rules(self) -> tuple[ApprovalMatrixRule, ...]:
        return tuple(row.to_rule() for row in self.approval_matrix)
