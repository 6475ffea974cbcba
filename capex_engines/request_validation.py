"""
Investment Request Validation (``capex_engines.request_validation``).

Responsibility
--------------
Pure business-rule checks on a request's CAPEX/OPEX split before it is
submitted:

* category rules -- Infrastructure needs CAPEX, R&D needs OPEX,
  Maintenance is OPEX-only
* size rules -- large projects need CAPEX, small projects are OPEX-only,
  using per-currency thresholds
* sanity rules -- total in (0, 1B), neither component above the total

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO database,
ZERO clock reads.

Invariants enforced
-------------------
* Every rule is evaluated; a request reports all of its problems at once.
* Unknown currencies fall back to the USD thresholds.

Failure modes
-------------
* Returns a ``ValidationResult`` (not exceptions) for rule violations.
* Raises ``ValueError`` only for an unknown rule id.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal

ZERO = Decimal("0")
MAX_TOTAL_COST = Decimal("1000000000")
OPEX_ONLY_WARNING_TOTAL = Decimal("1000000")


@dataclass(frozen=True)
class CurrencyThresholds:
    """Size thresholds for one currency."""

    high: Decimal
    small: Decimal


CURRENCY_THRESHOLDS: dict[str, CurrencyThresholds] = {
    "USD": CurrencyThresholds(high=Decimal("10000000"), small=Decimal("500000")),
    "EUR": CurrencyThresholds(high=Decimal("8500000"), small=Decimal("425000")),
    "GBP": CurrencyThresholds(high=Decimal("7300000"), small=Decimal("365000")),
    "JPY": CurrencyThresholds(high=Decimal("1500000000"), small=Decimal("75000000")),
    "CAD": CurrencyThresholds(high=Decimal("12500000"), small=Decimal("625000")),
    "AUD": CurrencyThresholds(high=Decimal("13500000"), small=Decimal("675000")),
}

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "C$",
    "AUD": "A$",
}


def get_thresholds(currency: str) -> CurrencyThresholds:
    return CURRENCY_THRESHOLDS.get(currency, CURRENCY_THRESHOLDS["USD"])


def _money(amount: Decimal, currency: str) -> str:
    return f"{CURRENCY_SYMBOLS.get(currency, '$')}{amount:,}"


@dataclass(frozen=True)
class ValidationData:
    """Amounts under validation, all in the request currency."""

    capex: Decimal
    opex: Decimal
    total_cost: Decimal
    category: str = ""
    currency: str = "USD"

    @classmethod
    def from_amounts(
        cls, capex: Decimal, opex: Decimal, category: str = "", currency: str = "USD",
    ) -> ValidationData:
        return cls(capex=capex, opex=opex, total_cost=capex + opex,
                   category=category, currency=currency)


@dataclass(frozen=True)
class ValidationRule:
    """A named rule.  ``category`` limits it to one project category."""

    rule_id: str
    description: str
    check: Callable[[ValidationData], bool]
    message: Callable[[ValidationData], str]
    category: str | None = None

    def applies_to(self, category: str) -> bool:
        return self.category is None or self.category == category


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


VALIDATION_RULES: tuple[ValidationRule, ...] = (
    ValidationRule(
        rule_id="infrastructure_capex",
        description="Infrastructure projects require CAPEX",
        check=lambda d: d.capex > ZERO,
        message=lambda d: (
            "Infrastructure projects should include CAPEX for assets and facilities."
        ),
        category="Infrastructure",
    ),
    ValidationRule(
        rule_id="rd_opex_focus",
        description="R&D projects focus on operational costs",
        check=lambda d: d.opex > ZERO,
        message=lambda d: (
            "R&D projects should include operational expenditure for research activities."
        ),
        category="R&D",
    ),
    ValidationRule(
        rule_id="maintenance_opex_only",
        description="Maintenance projects should be OPEX-only",
        check=lambda d: d.capex == ZERO,
        message=lambda d: "Maintenance projects should be OPEX-only. Remove the CAPEX allocation.",
        category="Maintenance",
    ),
    ValidationRule(
        rule_id="large_project_capex",
        description="Large projects require CAPEX",
        check=lambda d: d.total_cost <= get_thresholds(d.currency).high or d.capex > ZERO,
        message=lambda d: (
            f"Projects over {_money(get_thresholds(d.currency).high, d.currency)} "
            f"typically require CAPEX for initial setup."
        ),
    ),
    ValidationRule(
        rule_id="small_project_opex_only",
        description="Small projects should be OPEX-only",
        check=lambda d: d.total_cost >= get_thresholds(d.currency).small or d.capex == ZERO,
        message=lambda d: (
            f"Projects under {_money(get_thresholds(d.currency).small, d.currency)} "
            f"should be OPEX-only."
        ),
    ),
    ValidationRule(
        rule_id="reasonable_total_cost",
        description="Total cost should be reasonable",
        check=lambda d: ZERO < d.total_cost < MAX_TOTAL_COST,
        message=lambda d: (
            f"Total cost should be greater than 0 and less than "
            f"{_money(MAX_TOTAL_COST, d.currency)}."
        ),
    ),
    ValidationRule(
        rule_id="capex_not_exceed_total",
        description="CAPEX should not exceed total cost",
        check=lambda d: d.capex <= d.total_cost,
        message=lambda d: (
            f"CAPEX ({_money(d.capex, d.currency)}) cannot exceed total cost "
            f"({_money(d.total_cost, d.currency)})."
        ),
    ),
    ValidationRule(
        rule_id="opex_not_exceed_total",
        description="OPEX should not exceed total cost",
        check=lambda d: d.opex <= d.total_cost,
        message=lambda d: (
            f"OPEX ({_money(d.opex, d.currency)}) cannot exceed total cost "
            f"({_money(d.total_cost, d.currency)})."
        ),
    ),
)


def rules_for_category(category: str) -> tuple[ValidationRule, ...]:
    """Category-specific rules for ``category`` plus every general rule."""
    return tuple(rule for rule in VALIDATION_RULES if rule.applies_to(category))


def validate_rule(rule_id: str, data: ValidationData) -> bool:
    for rule in VALIDATION_RULES:
        if rule.rule_id == rule_id:
            return rule.check(data)
    raise ValueError(f"Unknown validation rule: {rule_id}")


def validate_investment_request(data: ValidationData) -> ValidationResult:
    """Run every applicable rule and collect errors and advisory warnings.

    Args:
        data: Amounts, category and currency of the request.

    Returns:
        ValidationResult; ``is_valid`` is False if any rule failed.
        Warnings never affect validity.
    """
    errors = [
        rule.message(data)
        for rule in rules_for_category(data.category)
        if not rule.check(data)
    ]

    warnings = []
    if data.capex > ZERO and data.opex == ZERO:
        warnings.append("Consider including OPEX for ongoing operational costs.")
    if data.opex > ZERO and data.capex == ZERO and data.total_cost > OPEX_ONLY_WARNING_TOTAL:
        warnings.append(
            f"Projects above {_money(OPEX_ONLY_WARNING_TOTAL, data.currency)} "
            f"typically require some CAPEX for initial setup."
        )

    return ValidationResult(
        is_valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )
