"""
Tests for quote/invoice arithmetic

- Line item subtotals and totals with half-up cent rounding
- Negative input is not rejected at this level
- Variance, tolerance, deposit and estimated range
- Quote ranking and confidence labels
- Catalogue price lookup
"""

from types import SimpleNamespace

import pytest

from garagehub.domain.quotes.calculator import (
    calculate_deposit,
    calculate_estimated_range,
    calculate_line_item_subtotal,
    calculate_totals,
    calculate_variance,
    compare_quotes,
    get_confidence_label,
    get_service_price_range,
    is_variance_over_tolerance,
    round_money,
)


class TestLineItems:
    def test_subtotal_combines_parts_and_labor(self):
        item = {"part_cost": 45.5, "quantity": 2, "labor_hours": 1.5, "labor_rate": 90}
        assert calculate_line_item_subtotal(item) == 226.0

    def test_subtotal_reads_attributes(self):
        item = SimpleNamespace(part_cost=10, quantity=3, labor_hours=0, labor_rate=0)
        assert calculate_line_item_subtotal(item) == 30.0

    def test_missing_fields_default_to_zero_cost(self):
        assert calculate_line_item_subtotal({"part_cost": 12.0}) == 12.0

    def test_half_up_rounding(self):
        assert round_money(0.125) == 0.13
        assert round_money(2.675) == 2.68
        assert round_money(-0.005) == -0.01

    def test_negative_inputs_pass_through(self):
        # No validation here: the request schemas reject negative costs
        assert calculate_line_item_subtotal({"part_cost": -50, "quantity": 2}) == -100.0
        assert calculate_line_item_subtotal({"part_cost": 10, "quantity": 1, "labor_hours": -1, "labor_rate": 80}) == -70.0
        totals = calculate_totals([{"part_cost": -20, "quantity": 1}], shop_fees=-5, tax_rate=0.1)
        assert totals["subtotal"] == -25.0
        assert totals["total"] == -27.5
        assert calculate_deposit(-100, 20) == -20.0
        assert calculate_estimated_range(100, 1.2) == (120.0, 80.0)


class TestTotals:
    def test_single_item_quote(self):
        items = [{"part_cost": 100, "quantity": 1, "labor_hours": 2, "labor_rate": 50}]
        totals = calculate_totals(items, shop_fees=10, tax_rate=0.08)

        assert totals["parts_cost_total"] == 100.0
        assert totals["labor_cost_total"] == 100.0
        assert totals["subtotal"] == 210.0
        assert totals["taxes"] == 16.8
        assert totals["total"] == 226.8

    def test_subtotal_is_sum_of_item_subtotals_plus_fees(self):
        items = [
            {"part_cost": 19.99, "quantity": 3, "labor_hours": 0.5, "labor_rate": 110},
            {"part_cost": 7.25, "quantity": 4},
            {"part_cost": 0, "quantity": 1, "labor_hours": 2.25, "labor_rate": 96},
        ]
        totals = calculate_totals(items, shop_fees=12.5, tax_rate=0.0725)

        expected = round_money(sum(calculate_line_item_subtotal(i) for i in items) + 12.5)
        assert totals["subtotal"] == expected
        assert totals["taxes"] == round_money(totals["subtotal"] * 0.0725)

    def test_totals_with_fees_and_tax(self):
        items = [
            {"part_cost": 100, "quantity": 1, "labor_hours": 2, "labor_rate": 80},
            {"part_cost": 25, "quantity": 2, "labor_hours": 0, "labor_rate": 0},
        ]
        totals = calculate_totals(items, shop_fees=15, tax_rate=0.08)

        assert totals["parts_cost_total"] == 150.0
        assert totals["labor_cost_total"] == 160.0
        assert totals["subtotal"] == 325.0
        assert totals["taxes"] == 26.0
        assert totals["total"] == 351.0

    def test_total_equals_subtotal_plus_taxes(self):
        items = [{"part_cost": 33.33, "quantity": 3, "labor_hours": 1.25, "labor_rate": 97.77}]
        totals = calculate_totals(items, shop_fees=4.99, tax_rate=0.0825)
        assert totals["total"] == round_money(totals["subtotal"] + totals["taxes"])

    def test_empty_line_items(self):
        totals = calculate_totals([], shop_fees=0, tax_rate=0.08)
        assert totals == {
            "parts_cost_total": 0.0,
            "labor_cost_total": 0.0,
            "subtotal": 0.0,
            "taxes": 0.0,
            "total": 0.0,
        }

    def test_zero_tax_rate(self):
        totals = calculate_totals([{"part_cost": 200, "quantity": 1}], tax_rate=0)
        assert totals["taxes"] == 0.0
        assert totals["total"] == 200.0


class TestVarianceAndDeposit:
    def test_fifteen_percent_over(self):
        assert calculate_variance(100, 115) == 15.0
        assert calculate_variance(0, 50) == 0.0

    def test_tolerance_edges(self):
        assert is_variance_over_tolerance(16, 0.15) is True
        assert is_variance_over_tolerance(14, 0.15) is False
        assert is_variance_over_tolerance(25.0, 0.15) is True

    def test_variance_over_quote(self):
        assert calculate_variance(200, 250) == 25.0

    def test_variance_under_quote(self):
        assert calculate_variance(400, 300) == -25.0

    def test_variance_of_zero_quote_is_zero(self):
        assert calculate_variance(0, 120) == 0.0

    @pytest.mark.parametrize(
        "variance,expected",
        [(15.0, False), (15.01, True), (-15.01, True), (0, False)],
    )
    def test_tolerance_is_compared_as_percent(self, variance, expected):
        assert is_variance_over_tolerance(variance, 0.15) is expected

    def test_deposit(self):
        assert calculate_deposit(1000, 20) == 200.0
        assert calculate_deposit(351.0, 20) == 70.2
        assert calculate_deposit(99.99, 0) == 0.0

    def test_estimated_range_widens_with_lower_confidence(self):
        assert calculate_estimated_range(200, 1) == (200.0, 200.0)
        assert calculate_estimated_range(200, 0.8) == (160.0, 240.0)


class TestRanking:
    def test_guaranteed_then_confidence_then_price(self):
        cheap = {"id": 1, "guaranteed": False, "confidence": 0.9, "estimated_total": 200}
        pricey = {"id": 2, "guaranteed": False, "confidence": 0.9, "estimated_total": 300}
        guaranteed = {"id": 3, "guaranteed": True, "confidence": 0.6, "estimated_total": 500}
        unsure = {"id": 4, "guaranteed": False, "confidence": 0.5, "estimated_total": 100}

        ranked = compare_quotes([pricey, unsure, cheap, guaranteed])
        assert [q["id"] for q in ranked] == [3, 1, 2, 4]

    def test_guaranteed_beats_cheaper_and_surer(self):
        sure = {"guaranteed": False, "confidence": 0.9, "estimated_total": 100}
        guaranteed = {"guaranteed": True, "confidence": 0.5, "estimated_total": 200}
        assert compare_quotes([sure, guaranteed])[0] is guaranteed

    def test_ties_keep_input_order(self):
        a = {"id": "a", "guaranteed": False, "confidence": 0.8, "estimated_total": 100}
        b = {"id": "b", "guaranteed": False, "confidence": 0.8, "estimated_total": 100}
        assert [q["id"] for q in compare_quotes([b, a])] == ["b", "a"]

    @pytest.mark.parametrize(
        "confidence,label",
        [
            (0.95, "High Confidence"),
            (0.9, "High Confidence"),
            (0.89, "Good Confidence"),
            (0.7, "Good Confidence"),
            (0.5, "Moderate Confidence"),
            (0.49, "Estimate Only"),
        ],
    )
    def test_confidence_labels(self, confidence, label):
        assert get_confidence_label(confidence) == label


class TestServicePriceRange:
    def test_matching_car_type(self):
        rows = [
            SimpleNamespace(car_type="SEDAN", min_price=50, max_price=80),
            SimpleNamespace(car_type="SUV", min_price=70, max_price=100),
        ]
        assert get_service_price_range(rows, "SUV") == (70.0, 100.0)

    def test_missing_car_type(self):
        rows = [{"car_type": "SEDAN", "min_price": 50, "max_price": 80}]
        assert get_service_price_range(rows, "EV") is None
