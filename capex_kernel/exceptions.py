"""
Typed Exception Hierarchy for the Capex Approval Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Approval and financial errors are surfaced to a user interface, a log, or an
API response.  Callers must be able to react to them precisely:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (request id, actor, attempted action)

Example - WRONG way to handle errors:
    try:
        service.decide(request_id, actor, ApprovalAction.APPROVE)
    except Exception as e:
        if "already acted" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way:
    try:
        service.decide(request_id, actor, ApprovalAction.APPROVE)
    except DuplicateActionError as e:
        api_response(code=e.code, request=e.request_id, actor=e.actor_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from CapexKernelError:

    CapexKernelError (base)
    |
    +-- ValidationError
    |   +-- MissingCommentsError
    |
    +-- ConvergenceError
    |
    +-- ApprovalError
    |   +-- AuthorizationError
    |   +-- DuplicateActionError
    |   +-- InvalidTransitionError
    |   +-- RequestNotFoundError
    |
    +-- ConcurrencyError
    |   +-- ConcurrentDecisionError
    |
    +-- CurrencyError
    |   +-- ExchangeRateNotFoundError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Non-positive investment, negative rate
                | MISSING_COMMENTS            | Reject decision without comments
----------------|-----------------------------|-----------------------------------------
Financial       | IRR_NOT_CONVERGED           | Root-finder exhausted its budget
----------------|-----------------------------|-----------------------------------------
Approval        | NOT_AUTHORIZED              | Actor not eligible per matrix/state
                | DUPLICATE_ACTION            | Actor already acted on this request
                | INVALID_TRANSITION          | Action against a terminal/draft state
                | REQUEST_NOT_FOUND           | Request ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONCURRENT_DECISION         | Status changed under a pending decision
----------------|-----------------------------|-----------------------------------------
Currency        | EXCHANGE_RATE_NOT_FOUND     | No rate for currency in the cache
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Modifying an approval log entry
----------------|-----------------------------|-----------------------------------------
Config          | CONFIGURATION_ERROR         | Malformed matrix or settings YAML

===============================================================================
HANDLING PATTERNS
===============================================================================

1. IRR IS ALLOWED TO BE UNDETERMINED:

    try:
        irr = calculate_irr(flows, investment)
    except ConvergenceError as e:
        irr = None  # report "undetermined", never a wrong number

2. CONCURRENCY ERRORS ARE RETRYABLE:

    except ConcurrentDecisionError:
        # reload the request and re-evaluate eligibility
        ...

===============================================================================
"""

from __future__ import annotations


class CapexKernelError(Exception):
    """
    Base exception for all capex kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "CAPEX_KERNEL_ERROR"


# Validation-related exceptions


class ValidationError(CapexKernelError):
    """Input rejected before any computation or state change."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


class MissingCommentsError(ValidationError):
    """A rejection was attempted without comments."""

    code: str = "MISSING_COMMENTS"

    def __init__(self, request_id: str, actor_id: str):
        self.request_id = request_id
        self.actor_id = actor_id
        super().__init__("comments", "", "comments are required when rejecting")


# Financial computation exceptions


class ConvergenceError(CapexKernelError):
    """IRR root-finder did not converge within its iteration/tolerance budget."""

    code: str = "IRR_NOT_CONVERGED"

    def __init__(self, iterations: int, last_rate: object, reason: str):
        self.iterations = iterations
        self.last_rate = last_rate
        self.reason = reason
        super().__init__(
            f"IRR did not converge after {iterations} iterations "
            f"(last rate {last_rate}): {reason}"
        )


# Approval-related exceptions


class ApprovalError(CapexKernelError):
    """Base exception for approval routing errors."""

    code: str = "APPROVAL_ERROR"


class AuthorizationError(ApprovalError):
    """Actor is not eligible to act on the request in its current state."""

    code: str = "NOT_AUTHORIZED"

    def __init__(self, request_id: str, actor_id: str, action: str, reason: str):
        self.request_id = request_id
        self.actor_id = actor_id
        self.action = action
        self.reason = reason
        super().__init__(
            f"Actor {actor_id} may not {action} request {request_id}: {reason}"
        )


class DuplicateActionError(ApprovalError):
    """Actor already has a log entry for this request."""

    code: str = "DUPLICATE_ACTION"

    def __init__(self, request_id: str, actor_id: str, action: str = ""):
        self.request_id = request_id
        self.actor_id = actor_id
        self.action = action
        super().__init__(
            f"Actor {actor_id} has already acted on request {request_id}"
        )


class InvalidTransitionError(ApprovalError):
    """Action attempted against a state that does not allow it."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        request_id: str,
        from_status: str,
        action: str,
        to_status: str | None = None,
    ):
        self.request_id = request_id
        self.from_status = from_status
        self.action = action
        self.to_status = to_status
        target = f" -> '{to_status}'" if to_status else ""
        super().__init__(
            f"Cannot {action} request {request_id} in status '{from_status}'{target}"
        )


class RequestNotFoundError(ApprovalError):
    """Investment request with given ID was not found."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Investment request not found: {request_id}")


# Concurrency-related exceptions


class ConcurrencyError(CapexKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrentDecisionError(ConcurrencyError):
    """Request status no longer matches the status the decision was based on."""

    code: str = "CONCURRENT_DECISION"

    def __init__(self, request_id: str, expected_status: str, action: str):
        self.request_id = request_id
        self.expected_status = expected_status
        self.action = action
        super().__init__(
            f"Request {request_id} left status '{expected_status}' before "
            f"{action} could be committed"
        )


# Currency-related exceptions


class CurrencyError(CapexKernelError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class ExchangeRateNotFoundError(CurrencyError):
    """No exchange rate available for the currency."""

    code: str = "EXCHANGE_RATE_NOT_FOUND"

    def __init__(self, from_currency: str, to_currency: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(
            f"No exchange rate found for {from_currency} -> {to_currency}"
        )


# Immutability-related exceptions


class ImmutabilityError(CapexKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Configuration exceptions


class ConfigurationError(CapexKernelError):
    """Configuration file could not be parsed into a valid definition."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration in {source}: {reason}")
