"""
capex_kernel.services.approval_service -- Investment request approval lifecycle.

Responsibility:
    Manages the lifecycle of investment requests: creation, submission,
    approve/reject/hold decisions, and resumption of held requests.
    Delegates eligibility and next-status rules to the pure engines in
    ``capex_engines.approval_matrix`` / ``capex_engines.approval_state``
    and owns the commit step.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/ and the
    pure engines.

Invariants enforced:
    - A decision's log insert and status update are one unit: both are
      flushed in the caller's transaction or neither is.
    - One decision per user per request: the approval_log unique
      constraint is authoritative.  A violation rolls back and surfaces
      as DuplicateActionError with the request unchanged.
    - Status changes are conditional UPDATEs guarded by the status the
      decision was computed from; a concurrent change rolls back and
      surfaces as ConcurrentDecisionError.
    - The service never commits; the caller's ``session_scope`` does.

Failure modes:
    - RequestNotFoundError if request_id is unknown.
    - InvalidTransitionError, MissingCommentsError, AuthorizationError,
      DuplicateActionError from the state machine.
    - DuplicateActionError from the unique constraint (concurrent duplicate).
    - ConcurrentDecisionError when the request moved under the decision.
    - ExchangeRateNotFoundError when a non-reference currency has no rate.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from capex_engines import approval_state
from capex_kernel.domain.approval import (
    Actor,
    ApprovalAction,
    ApprovalDecision,
    ApprovalLogEntry,
    ApprovalMatrixRule,
    HoldPolicy,
    TransitionOutcome,
)
from capex_kernel.domain.clock import Clock, SystemClock
from capex_kernel.domain.currency import (
    REFERENCE_CURRENCY,
    ExchangeRateCache,
    normalize_request_amounts,
)
from capex_kernel.domain.request import (
    BusinessCaseType,
    InvestmentRequest,
    Priority,
    StatusKind,
)
from capex_kernel.exceptions import (
    ConcurrentDecisionError,
    DuplicateActionError,
    RequestNotFoundError,
)
from capex_kernel.logging_config import LogContext, get_logger
from capex_kernel.models.approval import ApprovalLogModel, ApprovalMatrixRuleModel
from capex_kernel.models.request import InvestmentRequestModel

logger = get_logger("services.approval")

DEFAULT_RATE_TTL = timedelta(hours=1)


class ApprovalService:
    """Manages investment request submission and approval decisions."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        hold_policy: HoldPolicy | None = None,
        exchange_rate_ttl: timedelta = DEFAULT_RATE_TTL,
        reference_currency: str = REFERENCE_CURRENCY,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self._hold_policy = hold_policy or HoldPolicy()
        self._rate_ttl = exchange_rate_ttl
        self._reference_currency = reference_currency

    # ------------------------------------------------------------------
    # Matrix
    # ------------------------------------------------------------------

    def load_rules(self) -> tuple[ApprovalMatrixRule, ...]:
        """All matrix rules (active and inactive) in configured order."""
        rows = self._session.execute(
            select(ApprovalMatrixRuleModel).order_by(ApprovalMatrixRuleModel.position)
        ).scalars()
        return tuple(row.to_dto() for row in rows)

    def add_rule(self, rule: ApprovalMatrixRule) -> ApprovalMatrixRule:
        """Append a rule after every existing rule."""
        count = len(self._session.execute(select(ApprovalMatrixRuleModel.id)).all())
        self._session.add(ApprovalMatrixRuleModel.from_dto(rule, position=count))
        self._session.flush()
        return rule

    def seed_rules(self, rules: Iterable[ApprovalMatrixRule]) -> int:
        """Append ``rules`` in order.  Returns the number added."""
        added = 0
        for rule in rules:
            self.add_rule(rule)
            added += 1
        logger.info("approval_matrix_seeded", extra={"rule_count": added})
        return added

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def create_request(
        self,
        submitter_id: UUID,
        project_title: str,
        department: str,
        capex: Decimal = Decimal("0"),
        opex: Decimal = Decimal("0"),
        currency: str | None = None,
        priority: Priority = Priority.MEDIUM,
        business_case_types: Iterable[BusinessCaseType] = (),
        category: str = "",
        exchange_rates: ExchangeRateCache | None = None,
    ) -> InvestmentRequest:
        """Create a Draft request with base-currency amounts filled in.

        Requests in the reference currency (the default) need no rates.
        Otherwise ``exchange_rates`` must carry a rate for ``currency``.
        """
        now = self._clock.now()
        currency = currency or self._reference_currency
        request = InvestmentRequest.new(
            submitter_id=submitter_id,
            project_title=project_title,
            department=department,
            capex=capex,
            opex=opex,
            currency=currency,
            base_currency_capex=capex,
            base_currency_opex=opex,
            priority=priority,
            business_case_types=frozenset(business_case_types),
            category=category,
            last_updated=now,
        )
        if currency != self._reference_currency:
            rates = exchange_rates or ExchangeRateCache(
                rates={}, fetched_at=now, base_currency=self._reference_currency,
            )
            if exchange_rates is not None and rates.is_stale(now, self._rate_ttl):
                logger.warning(
                    "exchange_rates_stale",
                    extra={"fetched_at": rates.fetched_at, "currency": currency},
                )
            request = normalize_request_amounts(request, rates)

        self._session.add(InvestmentRequestModel.from_dto(request))
        self._session.flush()

        logger.info(
            "investment_request_created",
            extra={
                "request_id": str(request.request_id),
                "department": department,
                "currency": currency,
                "total_amount": request.total_amount,
            },
        )
        return request

    def get_request(self, request_id: UUID) -> InvestmentRequest:
        return self._load_request_model(request_id).to_dto()

    def get_log(self, request_id: UUID) -> tuple[ApprovalLogEntry, ...]:
        """Approval log entries for ``request_id``, oldest first."""
        rows = self._session.execute(
            select(ApprovalLogModel)
            .where(ApprovalLogModel.request_id == request_id)
            .order_by(ApprovalLogModel.timestamp)
        ).scalars()
        return tuple(row.to_dto() for row in rows)

    def final_approval_date(self, request_id: UUID) -> datetime | None:
        """Timestamp of the decision that made the request Approved, if any."""
        request = self.get_request(request_id)
        if request.status.kind != StatusKind.APPROVED:
            return None
        approvals = [
            entry.timestamp
            for entry in self.get_log(request_id)
            if entry.decision == ApprovalDecision.APPROVED
        ]
        return max(approvals) if approvals else None

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def submit(self, request_id: UUID, actor: Actor) -> TransitionOutcome:
        """Draft -> Submitted."""
        request = self.get_request(request_id)
        outcome = approval_state.submit(request, actor)
        now = self._clock.now()

        self._apply_status(
            request,
            outcome,
            action="submit",
            values={"submitted_date": now, "last_updated": now},
        )
        logger.info(
            "investment_request_submitted",
            extra={"request_id": str(request_id), "actor_id": str(actor.user_id)},
        )
        return outcome

    def decide(
        self,
        request_id: UUID,
        actor: Actor,
        action: ApprovalAction,
        comments: str = "",
    ) -> TransitionOutcome:
        """Record an approve/reject/hold decision and advance the request.

        The log entry and the status change are flushed together.  On a
        duplicate or concurrent decision the session is rolled back and
        the request keeps its previous status.
        """
        with LogContext.bind(request_id=str(request_id), actor_id=str(actor.user_id)):
            request = self.get_request(request_id)
            outcome = approval_state.decide(
                request,
                actor,
                action,
                self.load_rules(),
                as_of=self._clock.now(),
                comments=comments,
                prior_actor_ids=self._prior_actor_ids(request_id),
            )

            self._session.add(ApprovalLogModel.from_dto(outcome.log_entry))
            try:
                self._session.flush()
            except IntegrityError:
                # Another transaction recorded this user's decision first
                self._session.rollback()
                logger.warning(
                    "concurrent_duplicate_decision",
                    extra={"action": action.value},
                )
                raise DuplicateActionError(
                    str(request_id), str(actor.user_id), action.value,
                ) from None

            held_from = outcome.held_from_status
            self._apply_status(
                request,
                outcome,
                action=action.value,
                values={
                    "last_updated": outcome.log_entry.timestamp,
                    "held_from_status": held_from.label if held_from else None,
                },
            )

            logger.info(
                "approval_decision_recorded",
                extra={
                    "action": action.value,
                    "role": actor.role.label,
                    "level": outcome.log_entry.level,
                    "from_status": outcome.previous_status.label,
                    "to_status": outcome.new_status.label,
                },
            )
            return outcome

    def resume(self, request_id: UUID, actor: Actor) -> TransitionOutcome:
        """Return an OnHold request to the status it was held from."""
        request = self.get_request(request_id)
        outcome = approval_state.resume(
            request, actor, self._hold_policy, holder_id=self._holder_id(request_id),
        )
        self._apply_status(
            request,
            outcome,
            action="resume",
            values={"last_updated": self._clock.now(), "held_from_status": None},
        )
        logger.info(
            "investment_request_resumed",
            extra={
                "request_id": str(request_id),
                "actor_id": str(actor.user_id),
                "to_status": outcome.new_status.label,
            },
        )
        return outcome

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_request_model(self, request_id: UUID) -> InvestmentRequestModel:
        """Load request model by request_id, raise if not found."""
        model = self._session.execute(
            select(InvestmentRequestModel).where(
                InvestmentRequestModel.request_id == request_id,
            )
        ).scalar_one_or_none()
        if model is None:
            raise RequestNotFoundError(str(request_id))
        return model

    def _prior_actor_ids(self, request_id: UUID) -> frozenset[UUID]:
        return frozenset(self._session.execute(
            select(ApprovalLogModel.acting_user_id).where(
                ApprovalLogModel.request_id == request_id,
            )
        ).scalars())

    def _holder_id(self, request_id: UUID) -> UUID | None:
        """User whose most recent decision put the request on hold."""
        holds = [
            entry for entry in self.get_log(request_id)
            if entry.decision == ApprovalDecision.ON_HOLD
        ]
        return holds[-1].acting_user_id if holds else None

    def _apply_status(
        self,
        request: InvestmentRequest,
        outcome: TransitionOutcome,
        action: str,
        values: dict,
    ) -> None:
        """Conditionally move the request from the status the outcome was
        computed from to the new status.  Rolls back if it moved meanwhile.
        """
        result = self._session.execute(
            update(InvestmentRequestModel)
            .where(
                InvestmentRequestModel.request_id == request.request_id,
                InvestmentRequestModel.status == outcome.previous_status.label,
            )
            .values(status=outcome.new_status.label, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self._session.rollback()
            logger.warning(
                "concurrent_status_change",
                extra={
                    "request_id": str(request.request_id),
                    "expected_status": outcome.previous_status.label,
                    "action": action,
                },
            )
            raise ConcurrentDecisionError(
                str(request.request_id), outcome.previous_status.label, action,
            )
        self._session.expire_all()
