from decimal import Decimal

import pytest

from shopcart.constants import PRICE_WITH_TAX, PRICE_WITHOUT_TAX, SCOPE_SUBTOTAL, SCOPE_TOTAL
from shopcart.containers import LineItemCollection
from shopcart.errors import InvalidAmountError
from shopcart.services.pricing import (
    allocate_fixed_discount,
    allocation_order,
    net_unit_price,
    percentage_of,
)


class TestPriceHelpers:
    def test_percentage_of(self):
        assert percentage_of(Decimal("20"), Decimal("10")) == 2
        assert percentage_of(Decimal("0"), Decimal("50")) == 0

    def test_net_unit_price(self):
        assert net_unit_price(Decimal("110"), [Decimal("10")], PRICE_WITH_TAX) == 100
        assert net_unit_price(Decimal("110"), [Decimal("10")], PRICE_WITHOUT_TAX) == 110
        assert net_unit_price(Decimal("50"), [], PRICE_WITH_TAX) == 50

    def test_net_unit_price_unknown_type(self):
        with pytest.raises(InvalidAmountError):
            net_unit_price(Decimal("1"), [], 3)


class TestAllocationOrder:
    def test_highest_tax_rate_group_first(self, make_item):
        low = make_item(id="LOW", price=50, taxes=[("vat", 10)])
        high = make_item(id="HIGH", price=30, taxes=[("vat", 20)])
        none = make_item(id="NONE", price=5)
        items = LineItemCollection.of([none, low, high])
        assert [it.id for it in allocation_order(items, SCOPE_SUBTOTAL)] == ["HIGH", "LOW", "NONE"]

    def test_cheapest_first_inside_a_group(self, make_item):
        items = LineItemCollection.of([
            make_item(id="A", price=50, taxes=[("vat", 21)]),
            make_item(id="B", price=20, taxes=[("vat", 21)]),
            make_item(id="C", price=30, taxes=[("vat", 21)]),
        ])
        assert [it.id for it in allocation_order(items, SCOPE_SUBTOTAL)] == ["B", "C", "A"]

    def test_rates_summed_across_tax_rules(self, make_item):
        split = make_item(id="SPLIT", price=10, taxes=[("vat", 10), ("eco", 15)])
        single = make_item(id="SINGLE", price=10, taxes=[("vat", 21)])
        items = LineItemCollection.of([single, split])
        assert [it.id for it in allocation_order(items, SCOPE_SUBTOTAL)] == ["SPLIT", "SINGLE"]

    def test_ties_keep_cart_order(self, make_item):
        items = LineItemCollection.of([
            make_item(id="A", price=10),
            make_item(id="B", price=10),
        ])
        assert [it.id for it in allocation_order(items, SCOPE_TOTAL)] == ["A", "B"]


class TestAllocateFixedDiscount:
    def test_high_tax_cheap_row_consumed_first(self, make_item):
        ten = make_item(id="TEN", price=50, taxes=[("vat", 10)])
        twenty = make_item(id="TWENTY", price=30, taxes=[("vat", 20)])
        items = LineItemCollection.of([ten, twenty])

        allocations, applied = allocate_fixed_discount(items, Decimal("40"), SCOPE_SUBTOTAL)

        assert allocations == {twenty.row_id: 30, ten.row_id: 10}
        assert list(allocations) == [twenty.row_id, ten.row_id]
        assert applied == 40

    def test_stops_once_discount_is_spent(self, make_item):
        a = make_item(id="A", price=30)
        b = make_item(id="B", price=50)
        allocations, applied = allocate_fixed_discount(LineItemCollection.of([a, b]), Decimal("30"), SCOPE_SUBTOTAL)
        assert allocations == {a.row_id: 30}
        assert applied == 30

    def test_overflow_is_dropped(self, make_item):
        a = make_item(id="A", price=30)
        b = make_item(id="B", price=50)
        allocations, applied = allocate_fixed_discount(LineItemCollection.of([a, b]), Decimal("100"), SCOPE_SUBTOTAL)
        assert allocations == {a.row_id: 30, b.row_id: 50}
        assert applied == 80

    def test_total_scope_uses_taxed_total(self, make_item):
        a = make_item(id="A", price=100, taxes=[("vat", 10)])
        allocations, applied = allocate_fixed_discount(LineItemCollection.of([a]), Decimal("200"), SCOPE_TOTAL)
        assert allocations == {a.row_id: 110}
        assert applied == 110

    def test_rows_already_fully_discounted_are_skipped(self, make_item):
        spent = make_item(id="SPENT", price=20, discount_subtotal_fixed_amount=Decimal("20"))
        fresh = make_item(id="FRESH", price=20)
        allocations, applied = allocate_fixed_discount(
            LineItemCollection.of([spent, fresh]), Decimal("5"), SCOPE_SUBTOTAL
        )
        assert allocations == {fresh.row_id: 5}
        assert applied == 5

    def test_empty_cart_applies_nothing(self):
        allocations, applied = allocate_fixed_discount(LineItemCollection(), Decimal("10"), SCOPE_SUBTOTAL)
        assert allocations == {}
        assert applied == 0

    def test_zero_discount(self, make_item):
        items = LineItemCollection.of([make_item(price=10)])
        allocations, applied = allocate_fixed_discount(items, Decimal("0"), SCOPE_SUBTOTAL)
        assert allocations == {}
        assert applied == 0
