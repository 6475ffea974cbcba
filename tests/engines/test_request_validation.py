"""
Tests for investment request validation rules.

Covers:
- Category rules (Infrastructure, R&D, Maintenance)
- Size rules with per-currency thresholds
- Sanity rules on the total
- Advisory warnings
"""

from decimal import Decimal

import pytest

from capex_engines.request_validation import (
    VALIDATION_RULES,
    ValidationData,
    get_thresholds,
    rules_for_category,
    validate_investment_request,
    validate_rule,
)


def _data(capex: str = "0", opex: str = "0", category: str = "", currency: str = "USD"):
    return ValidationData.from_amounts(Decimal(capex), Decimal(opex), category, currency)


class TestCategoryRules:

    def test_infrastructure_without_capex_fails(self):
        result = validate_investment_request(_data(opex="200000", category="Infrastructure"))

        assert not result.is_valid
        assert any("Infrastructure" in e for e in result.errors)

    def test_rd_without_opex_fails(self):
        result = validate_investment_request(_data(capex="800000", category="R&D"))

        assert any("R&D" in e for e in result.errors)

    def test_maintenance_with_capex_fails(self):
        assert not validate_rule("maintenance_opex_only", _data(capex="10", opex="5"))

    def test_category_rules_only_apply_to_their_category(self):
        ids = {rule.rule_id for rule in rules_for_category("Maintenance")}

        assert "maintenance_opex_only" in ids
        assert "infrastructure_capex" not in ids
        assert "reasonable_total_cost" in ids

    def test_general_rules_always_apply(self):
        general = [r for r in VALIDATION_RULES if r.category is None]

        assert len(rules_for_category("")) == len(general)


class TestSizeRules:

    def test_small_project_with_capex_fails(self):
        result = validate_investment_request(_data(capex="100000"))

        assert not result.is_valid
        assert any("OPEX-only" in e for e in result.errors)

    def test_small_opex_only_project_is_valid(self):
        result = validate_investment_request(_data(opex="100000"))

        assert result.is_valid
        assert result.errors == ()

    def test_large_project_needs_capex(self):
        assert not validate_rule("large_project_capex", _data(opex="12000000"))
        assert validate_rule("large_project_capex", _data(capex="1", opex="12000000"))

    def test_thresholds_follow_currency(self):
        # Under the USD small threshold but over the GBP one
        data = _data(capex="400000", currency="GBP")

        assert validate_rule("small_project_opex_only", data)
        assert not validate_rule("small_project_opex_only", _data(capex="400000"))

    def test_unknown_currency_uses_usd_thresholds(self):
        assert get_thresholds("CHF") == get_thresholds("USD")

    def test_messages_use_currency_symbol(self):
        result = validate_investment_request(_data(capex="100", currency="EUR"))

        assert any("€425,000" in e for e in result.errors)


class TestSanityRules:

    def test_zero_total_fails(self):
        result = validate_investment_request(_data())

        assert not result.is_valid

    def test_total_over_one_billion_fails(self):
        assert not validate_rule("reasonable_total_cost", _data(capex="1000000000"))

    def test_component_exceeding_total_fails(self):
        data = ValidationData(capex=Decimal("10"), opex=Decimal("0"), total_cost=Decimal("5"))

        assert not validate_rule("capex_not_exceed_total", data)

    def test_unknown_rule_raises(self):
        with pytest.raises(ValueError):
            validate_rule("no_such_rule", _data(capex="1"))


class TestWarnings:

    def test_capex_only_warns_about_opex(self):
        result = validate_investment_request(_data(capex="600000"))

        assert result.is_valid
        assert result.warnings == ("Consider including OPEX for ongoing operational costs.",)

    def test_large_opex_only_warns_about_capex(self):
        result = validate_investment_request(_data(opex="2000000"))

        assert result.is_valid
        assert len(result.warnings) == 1
        assert "CAPEX" in result.warnings[0]

    def test_balanced_project_has_no_warnings(self):
        result = validate_investment_request(_data(capex="600000", opex="50000"))

        assert result.is_valid
        assert result.warnings == ()
