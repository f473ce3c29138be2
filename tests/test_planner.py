"""
Tests for amount conversion and conversion plans.
Converted amounts always round down.
"""

import pytest

from points_engine.catalog import build_catalog
from points_engine.planner import (
    STATUS_DIRECT,
    STATUS_MULTI_STEP_ONLY,
    STATUS_NO_PATH,
    convert_amount,
    estimate_dollar_value,
    plan_conversion,
    step_amounts,
    transfer_limit_warnings,
)


@pytest.fixture
def catalog():
    return build_catalog({
        "programs": {
            "bank": {"name": "Bank Rewards", "type": "bank", "dollarValue": 0.01},
            "hotel": {"name": "Hotel Points", "type": "hotel", "dollarValue": 0.005},
            "air": {"name": "Airline Miles", "type": "airline", "dollarValue": 0.013},
            "island": {"name": "Island Club", "type": "other"},
        },
        "conversions": [
            {"from": "bank", "to": "air", "rate": 1.0, "bonus": True, "bonusRate": 1.3},
            {"from": "bank", "to": "hotel", "rate": 2.0, "minAmount": 1000},
            {"from": "hotel", "to": "air", "rate": 0.33, "minAmount": 3000, "maxAmount": 100000},
        ],
    })


class TestConvertAmount:

    def test_rounds_down(self):
        # Scenario: 10000 points at 1.3 floors to 13000
        assert convert_amount(10000, 1.3) == 13000
        assert convert_amount(999, 0.33) == 329

    def test_never_rounds_up(self):
        # 100 * 0.57 evaluates to 56.99999999999999
        assert convert_amount(100, 0.57) == 56
        assert convert_amount(0.9999999999, 1.0) == 0

    def test_step_amounts_floor_each_step(self, catalog):
        steps = (catalog.outgoing("bank")[1], catalog.outgoing("hotel")[0])

        assert step_amounts(1501, steps) == [3002, 990]


class TestTransferLimitWarnings:

    def test_minimum_checked_against_amount_entering_each_step(self, catalog):
        steps = (catalog.outgoing("bank")[1], catalog.outgoing("hotel")[0])

        warnings = transfer_limit_warnings(500, steps)

        assert warnings == [
            "bank -> hotel: minimum transfer amount is 1000 points",
            "hotel -> air: minimum transfer amount is 3000 points",
        ]

    def test_maximum(self, catalog):
        steps = (catalog.outgoing("hotel")[0],)

        assert transfer_limit_warnings(200000, steps) == [
            "hotel -> air: maximum transfer amount is 100000 points"
        ]

    def test_within_bounds(self, catalog):
        assert transfer_limit_warnings(5000, (catalog.outgoing("bank")[1],)) == []


class TestEstimateDollarValue:

    def test_catalog_value(self, catalog):
        assert estimate_dollar_value(catalog, "air", 1000) == pytest.approx(13.0)

    def test_override_wins(self, catalog):
        assert estimate_dollar_value(catalog, "air", 1000, {"air": 0.02}) == pytest.approx(20.0)

    def test_unknown_value_is_none(self, catalog):
        assert estimate_dollar_value(catalog, "island", 1000) is None
        assert estimate_dollar_value(catalog, "nowhere", 1000) is None


class TestPlanConversion:

    def test_direct_plan_with_bonus(self, catalog):
        """
        Scenario: 10000 bank points to airline miles with a 1.3 bonus.

        Expected: Direct option of 13000 miles, best is the direct option.
        """
        # Act
        plan = plan_conversion(catalog, "bank", "air", 10000)

        # Assert
        assert plan.status == STATUS_DIRECT
        assert plan.direct.converted_amount == 13000
        assert plan.direct.is_direct
        assert plan.direct.has_bonus
        assert plan.direct.dollar_value == pytest.approx(169.0)
        assert len(plan.routes) == 1
        assert plan.routes[0].step_amounts == [20000, 6600]
        assert plan.best is plan.direct

    def test_better_route_becomes_best(self, catalog):
        plan = plan_conversion(catalog, "bank", "air", 10000, dollar_values=None)
        route = plan.routes[0]
        assert route.converted_amount == 6600

        # Make the route win: hotel->air at a much better rate
        richer = build_catalog({
            "programs": {"bank": {}, "hotel": {}, "air": {}},
            "conversions": [
                {"from": "bank", "to": "air", "rate": 1.0},
                {"from": "bank", "to": "hotel", "rate": 2.0},
                {"from": "hotel", "to": "air", "rate": 1.0},
            ],
        })
        plan = plan_conversion(richer, "bank", "air", 1000)

        assert plan.status == STATUS_DIRECT
        assert plan.best is plan.routes[0]
        assert plan.best.converted_amount == 2000

    def test_tie_prefers_direct(self):
        catalog = build_catalog({
            "programs": {"a": {}, "b": {}, "c": {}},
            "conversions": [
                {"from": "a", "to": "c", "rate": 1.0},
                {"from": "a", "to": "b", "rate": 1.0},
                {"from": "b", "to": "c", "rate": 1.0},
            ],
        })

        plan = plan_conversion(catalog, "a", "c", 100)

        assert plan.best is plan.direct

    def test_multi_step_only(self, catalog):
        plan = plan_conversion(catalog, "hotel", "air", 1000, include_multi_step=True)
        assert plan.status == STATUS_DIRECT

        catalog_without_direct = build_catalog({
            "programs": {"a": {}, "b": {}, "c": {}},
            "conversions": [
                {"from": "a", "to": "b", "rate": 1.0},
                {"from": "b", "to": "c", "rate": 0.5},
            ],
        })
        plan = plan_conversion(catalog_without_direct, "a", "c", 1000)

        assert plan.status == STATUS_MULTI_STEP_ONLY
        assert plan.direct is None
        assert plan.best.converted_amount == 500

    def test_multi_step_disabled(self, catalog):
        plan = plan_conversion(catalog, "bank", "air", 10000, include_multi_step=False)

        assert plan.routes == []
        assert plan.best is plan.direct

    def test_no_path(self, catalog):
        plan = plan_conversion(catalog, "air", "bank", 1000)

        assert plan.status == STATUS_NO_PATH
        assert plan.best is None

    def test_missing_catalog_has_no_path(self):
        assert plan_conversion(None, "a", "b", 1000).status == STATUS_NO_PATH

    def test_warnings_attached_to_options(self, catalog):
        plan = plan_conversion(catalog, "bank", "air", 500)

        assert plan.direct.warnings == []
        assert "bank -> hotel: minimum transfer amount is 1000 points" in plan.routes[0].warnings

    @pytest.mark.parametrize("amount", [0, -5, float("inf"), float("-inf"), float("nan")])
    def test_non_positive_or_non_finite_amount_rejected(self, catalog, amount):
        with pytest.raises(ValueError, match="greater than 0"):
            plan_conversion(catalog, "bank", "air", amount)

    def test_same_program_rejected(self, catalog):
        with pytest.raises(ValueError, match="different programs"):
            plan_conversion(catalog, "bank", "bank", 100)
