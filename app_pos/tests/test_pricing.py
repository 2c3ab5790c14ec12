# -*- coding: utf-8 -*-
"""Tests de totales con GST inclusivo y reglas de puntos."""
import pytest

from app_pos.models import CartItem
from app_pos.services.pricing import (
    calculate_totals,
    max_redeemable_points,
    points_earned,
    sale_tax_breakdown,
)


def item(price, qty=1, zero_tax=False, line='l'):
    return CartItem(line_id=line, product_id=line, unit_price=price, qty=qty, is_zero_tax=zero_tax)


def test_empty_cart_is_all_zeros():
    totals = calculate_totals([], 8)
    assert totals.grand_total == 0
    assert totals.gst_amount == 0
    assert totals.subtotal == 0
    assert totals.subtotal_no_discount == 0


def test_single_taxable_line_at_8_percent():
    totals = calculate_totals([item(108.0)], 8)
    assert totals.grand_total == pytest.approx(108.0)
    assert totals.gst_amount == pytest.approx(8.0)
    assert totals.subtotal == pytest.approx(100.0)


@pytest.mark.parametrize('prices', [[10.0], [99.99, 0.01], [5.5, 12.25, 300.0]])
def test_subtotal_plus_gst_is_grand_total(prices):
    totals = calculate_totals([item(p, line=str(i)) for i, p in enumerate(prices)], 8)
    assert totals.subtotal + totals.gst_amount == pytest.approx(totals.grand_total)


def test_discount_is_prorated_between_taxable_and_zero_tax():
    items = [item(100.0, line='a'), item(50.0, zero_tax=True, line='b')]
    totals = calculate_totals(items, 10, discount=30)

    assert totals.taxable_total == pytest.approx(100.0)
    assert totals.zero_tax_total == pytest.approx(50.0)
    assert totals.grand_total == pytest.approx(120.0)
    # 120 * (100/150) = 80 gravado → GST = 80 - 80/1.1
    assert totals.gst_amount == pytest.approx(7.27, abs=0.01)


def test_discount_larger_than_subtotal_never_goes_negative():
    totals = calculate_totals([item(20.0)], 8, discount=50)
    assert totals.grand_total == 0
    assert totals.gst_amount == 0


def test_zero_tax_only_cart_has_no_gst():
    totals = calculate_totals([item(50.0, qty=2, zero_tax=True)], 8)
    assert totals.grand_total == pytest.approx(100.0)
    assert totals.gst_amount == 0


def test_calculation_is_repeatable():
    items = [item(33.3, qty=3)]
    assert calculate_totals(items, 8, 5) == calculate_totals(items, 8, 5)


def test_max_redeemable_points_is_capped_by_subtotal_and_balance():
    assert max_redeemable_points(30, 150.0) == 30
    assert max_redeemable_points(500, 120.75) == 120
    assert max_redeemable_points(0, 100) == 0


def test_points_earned_is_one_per_hundred():
    assert points_earned(99.99) == 0
    assert points_earned(100) == 1
    assert points_earned(250.5) == 2
    assert points_earned(0) == 0


def test_sale_tax_breakdown():
    breakdown = sale_tax_breakdown(108.0, 8)
    assert breakdown == {'subtotal': 100.0, 'gst_amount': 8.0, 'grand_total': 108.0}
