"""
Investment request domain types (``capex_kernel.domain.request``).

Responsibility
--------------
Pure value objects for a capital-investment request: its workflow status,
priority, business-case classification, and amounts.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/`` or outer layers.

Invariants enforced
-------------------
* ``RequestStatus`` is a tagged value: only ``PENDING_LEVEL`` carries a
  level, and that level is >= 1.  Status labels are parsed once at the
  boundary; business logic never pattern-matches strings.
* ``BusinessCaseType`` is a closed enum.  Adjustment tables elsewhere are
  keyed by its members.
* ``InvestmentRequest.total_amount`` is always expressed in the reference
  currency.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable
from uuid import UUID, uuid4


class BusinessCaseType(str, Enum):
    """Business-case classification of a request."""

    COMPLIANCE = "Compliance"
    ESG = "ESG"
    COST_CONTROL = "Cost Control"
    EXPANSION = "Expansion"
    ASSET_CREATION = "Asset Creation"
    IPO_PREP = "IPO Prep"

    @classmethod
    def parse_many(cls, values: Iterable[str | BusinessCaseType]) -> frozenset[BusinessCaseType]:
        """Parse labels into a set of members. Raises ValueError on unknown labels."""
        return frozenset(cls(v) for v in values)


class Priority(str, Enum):
    """Request priority."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


# =========================================================================
# Workflow status
# =========================================================================


class StatusKind(str, Enum):
    """Workflow status kinds. ``PENDING_LEVEL`` is parameterized by a level."""

    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    PENDING_LEVEL = "Pending"
    UNDER_REVIEW = "Under Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    ON_HOLD = "On Hold"


_PENDING_LABEL = re.compile(r"^Pending - Level (\d+)$")


@dataclass(frozen=True)
class RequestStatus:
    """Workflow status of a request.

    Persisted as a human-readable label (``"Pending - Level 2"``); use
    ``parse`` / ``label`` to cross the storage boundary.
    """

    kind: StatusKind
    level: int | None = None

    def __post_init__(self) -> None:
        if self.kind == StatusKind.PENDING_LEVEL:
            if self.level is None or self.level < 1:
                raise ValueError(f"Pending status requires a level >= 1, got {self.level!r}")
        elif self.level is not None:
            raise ValueError(f"Status {self.kind.value} does not carry a level")

    @classmethod
    def pending(cls, level: int) -> RequestStatus:
        return cls(StatusKind.PENDING_LEVEL, level)

    @classmethod
    def parse(cls, label: str) -> RequestStatus:
        """Parse a persisted status label."""
        match = _PENDING_LABEL.match(label.strip())
        if match:
            return cls.pending(int(match.group(1)))
        kind = StatusKind(label.strip())
        if kind == StatusKind.PENDING_LEVEL:
            raise ValueError(f"Pending status label must include a level: {label!r}")
        return cls(kind)

    @property
    def label(self) -> str:
        if self.kind == StatusKind.PENDING_LEVEL:
            return f"Pending - Level {self.level}"
        return self.kind.value

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_STATUS_KINDS

    def __str__(self) -> str:
        return self.label


TERMINAL_STATUS_KINDS: frozenset[StatusKind] = frozenset({
    StatusKind.APPROVED,
    StatusKind.REJECTED,
})

DRAFT = RequestStatus(StatusKind.DRAFT)
SUBMITTED = RequestStatus(StatusKind.SUBMITTED)
UNDER_REVIEW = RequestStatus(StatusKind.UNDER_REVIEW)
APPROVED = RequestStatus(StatusKind.APPROVED)
REJECTED = RequestStatus(StatusKind.REJECTED)
ON_HOLD = RequestStatus(StatusKind.ON_HOLD)


# =========================================================================
# Investment request
# =========================================================================


@dataclass(frozen=True)
class InvestmentRequest:
    """Immutable snapshot of an investment request.

    ``base_currency_capex`` / ``base_currency_opex`` are the amounts already
    normalized to the reference currency by the currency collaborator.
    """

    request_id: UUID
    submitter_id: UUID
    project_title: str
    department: str
    capex: Decimal = Decimal("0")
    opex: Decimal = Decimal("0")
    currency: str = "USD"
    base_currency_capex: Decimal = Decimal("0")
    base_currency_opex: Decimal = Decimal("0")
    priority: Priority = Priority.MEDIUM
    business_case_types: frozenset[BusinessCaseType] = field(default_factory=frozenset)
    category: str = ""
    status: RequestStatus = DRAFT
    submitted_date: datetime | None = None
    last_updated: datetime | None = None
    held_from_status: RequestStatus | None = None

    @property
    def total_amount(self) -> Decimal:
        """Total request amount in the reference currency."""
        return self.base_currency_capex + self.base_currency_opex

    @classmethod
    def new(
        cls,
        submitter_id: UUID,
        project_title: str,
        department: str,
        **kwargs,
    ) -> InvestmentRequest:
        """Create a Draft request with a fresh id."""
        return cls(
            request_id=uuid4(),
            submitter_id=submitter_id,
            project_title=project_title,
            department=department,
            **kwargs,
        )
