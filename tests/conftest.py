"""
Pytest fixtures for the capex kernel test suite.

Provides:
- Structured log capture
- A deterministic clock
- A fresh in-memory SQLite database per test
- Actor, rule and request factories
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from capex_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from capex_kernel.domain.approval import (
    Actor,
    ActorRole,
    ApprovalMatrixRule,
)
from capex_kernel.domain.clock import DeterministicClock
from capex_kernel.domain.request import (
    SUBMITTED,
    BusinessCaseType,
    InvestmentRequest,
    Priority,
    RequestStatus,
)
from capex_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from capex_kernel.services.approval_service import ApprovalService
from capex_kernel.services.approval_times_service import ApprovalTimesService
from capex_kernel.services.kpi_service import KPIService
from capex_kernel.services.roi_impact_service import ROIImpactService

SUBMISSION_TIME = datetime(2025, 6, 23, 9, 0, 0, tzinfo=timezone.utc)
UNLIMITED = Decimal("999999999999.99")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture capex_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, approval_service):
            approval_service.decide(...)
            logs = captured_logs()
            assert any(r["message"] == "approval_decision_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("capex_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Provide a deterministic clock starting at SUBMISSION_TIME."""
    return DeterministicClock(SUBMISSION_TIME)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """A session on a fresh in-memory SQLite database.

    Each test gets its own database, so tests may commit freely.
    """
    init_engine_from_url("sqlite://")
    create_tables()
    sess = get_session()
    yield sess
    sess.close()
    reset_engine()


# =============================================================================
# Factories
# =============================================================================


def make_actor(label: str = "Approver_L1", department: str = "IT", name: str = "") -> Actor:
    """Actor with a fresh user id and a role parsed from ``label``."""
    return Actor(
        user_id=uuid4(),
        role=ActorRole.parse(label),
        department=department,
        display_name=name or label,
    )


def make_rule(
    level: int,
    amount_max: Decimal | str = UNLIMITED,
    amount_min: Decimal | str = "0",
    department: str = "All",
    active: bool = True,
    role: ActorRole | None = None,
) -> ApprovalMatrixRule:
    return ApprovalMatrixRule(
        level=level,
        role=role or (ActorRole.approver(level) if level > 0 else ActorRole.admin()),
        department=department,
        amount_min=Decimal(amount_min),
        amount_max=Decimal(amount_max),
        active=active,
    )


def make_request(
    total: Decimal | str = "100000",
    status: RequestStatus = SUBMITTED,
    department: str = "IT",
    held_from_status: RequestStatus | None = None,
    **kwargs,
) -> InvestmentRequest:
    """In-memory request whose base-currency CAPEX is ``total``."""
    amount = Decimal(total)
    return InvestmentRequest.new(
        submitter_id=kwargs.pop("submitter_id", uuid4()),
        project_title=kwargs.pop("project_title", "Data centre refresh"),
        department=department,
        capex=amount,
        base_currency_capex=amount,
        status=status,
        held_from_status=held_from_status,
        submitted_date=kwargs.pop("submitted_date", SUBMISSION_TIME),
        **kwargs,
    )


@pytest.fixture
def standard_rules() -> tuple[ApprovalMatrixRule, ...]:
    """Four cumulative-ceiling levels plus an Admin row."""
    return (
        make_rule(1, "50000"),
        make_rule(2, "200000"),
        make_rule(3, "500000"),
        make_rule(4),
        make_rule(0),
    )


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def approval_service(session, deterministic_clock, standard_rules) -> ApprovalService:
    """ApprovalService over a database seeded with ``standard_rules``."""
    service = ApprovalService(session, deterministic_clock)
    service.seed_rules(standard_rules)
    session.commit()
    return service


@pytest.fixture
def kpi_service(session, deterministic_clock) -> KPIService:
    return KPIService(session, deterministic_clock)


@pytest.fixture
def approval_times_service(session, deterministic_clock) -> ApprovalTimesService:
    return ApprovalTimesService(session, deterministic_clock)


@pytest.fixture
def roi_impact_service(session, deterministic_clock) -> ROIImpactService:
    return ROIImpactService(session, deterministic_clock)


@pytest.fixture
def submitted_request(approval_service, session):
    """Factory: create, submit and commit a request; returns its id."""

    def _create(
        capex: Decimal | str = "100000",
        opex: Decimal | str = "0",
        department: str = "IT",
        priority: Priority = Priority.MEDIUM,
        business_case_types: tuple[BusinessCaseType, ...] = (),
    ):
        submitter = make_actor("Submitter", department)
        request = approval_service.create_request(
            submitter_id=submitter.user_id,
            project_title="Warehouse automation",
            department=department,
            capex=Decimal(capex),
            opex=Decimal(opex),
            priority=priority,
            business_case_types=business_case_types,
        )
        approval_service.submit(request.request_id, submitter)
        session.commit()
        return request.request_id

    return _create
