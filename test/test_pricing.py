"""
Tests for order pricing and photo sort order
"""

import pytest

from app.constants.tiers import MAX_ORDER_ITEMS
from app.domain.pricing import LineItemInput, price_order
from app.domain.result import ErrorKind
from app.domain.sorting import next_sort_order


class TestPriceOrder:
    def test_two_prints_of_one_product(self):
        totals = price_order([LineItemInput(product_id="p1", unit_price=1000, quantity=2)]).value
        assert totals.subtotal == 2000
        assert totals.total == 2000
        assert totals.lines[0].total_price == 2000

    def test_mixed_lines_with_discount_and_tax(self):
        totals = price_order(
            [
                LineItemInput(product_id="p1", unit_price=1000, quantity=2, photo_id="ph1"),
                LineItemInput(product_id="p2", unit_price=450, quantity=1),
            ],
            discount=500,
            tax=100,
        ).value
        assert totals.subtotal == 2450
        assert totals.total == 2450 - 500 + 100
        assert totals.lines[0].photo_id == "ph1"

    def test_empty_order(self):
        assert price_order([]).error.kind == ErrorKind.EMPTY

    def test_too_many_lines(self):
        lines = [LineItemInput(product_id="p", unit_price=1, quantity=1)] * (MAX_ORDER_ITEMS + 1)
        assert price_order(lines).error.kind == ErrorKind.TOO_LONG

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    def test_rejects_bad_quantity(self, quantity):
        result = price_order([LineItemInput(product_id="p", unit_price=100, quantity=quantity)])
        assert result.error.field == "quantity"

    def test_rejects_negative_price(self):
        result = price_order([LineItemInput(product_id="p", unit_price=-1, quantity=1)])
        assert result.error.field == "price"

    def test_discount_cannot_exceed_subtotal(self):
        result = price_order([LineItemInput(product_id="p", unit_price=100, quantity=1)], discount=101)
        assert result.error.field == "discount"


class TestNextSortOrder:
    def test_empty_gallery_starts_at_zero(self):
        assert next_sort_order(None) == 0

    def test_appends_after_max_even_with_gaps(self):
        assert next_sort_order(7) == 8
