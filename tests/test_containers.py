from shopcart.constants import (
    DISCOUNT_SUBTOTAL_FIXED_AMOUNT,
    DISCOUNT_SUBTOTAL_PERCENTAGE,
    DISCOUNT_TOTAL_PERCENTAGE,
)
from shopcart.containers import LineItemCollection, PriceRuleCollection


def _collection(make_item, *rows):
    return LineItemCollection.of(make_item(id=id, price=price) for id, price in rows)


class TestLineItemCollection:
    def test_of_keys_by_row_id(self, make_item):
        item = make_item(id="A")
        items = LineItemCollection.of([item])
        assert items.has(item.row_id)
        assert items.get(item.row_id) is item
        assert items.count() == 1

    def test_put_keeps_position_of_existing_key(self, make_item):
        items = _collection(make_item, ("A", 1), ("B", 2), ("C", 3))
        first = items.first()
        items.put(first.row_id, first.evolve(quantity=5))
        assert [it.id for it in items] == ["A", "B", "C"]
        assert items.first().quantity == 5

    def test_pull_and_forget(self, make_item):
        items = _collection(make_item, ("A", 1), ("B", 2))
        a, b = items.values()
        assert items.pull(a.row_id) is a
        assert items.pull(a.row_id) is None
        items.forget(b.row_id)
        assert items.is_empty()

    def test_transform_leaves_source_untouched(self, make_item):
        items = _collection(make_item, ("A", 1), ("B", 2))
        doubled = items.transform(lambda it: it.evolve(quantity=it.quantity * 2))
        assert [it.quantity for it in items] == [1, 1]
        assert [it.quantity for it in doubled] == [2, 2]
        assert doubled.keys() == items.keys()

    def test_sort_by_is_stable(self, make_item):
        items = _collection(make_item, ("A", 5), ("B", 1), ("C", 5), ("D", 3))
        assert [it.id for it in items.sort_by(lambda it: it.subtotal)] == ["B", "D", "A", "C"]
        assert [it.id for it in items.sort_by(lambda it: it.subtotal, reverse=True)] == ["A", "C", "D", "B"]

    def test_group_by_keeps_order_inside_groups(self, make_item):
        items = _collection(make_item, ("A", 1), ("B", 2), ("C", 1), ("D", 2))
        groups = items.group_by(lambda it: it.unit_price)
        assert list(groups) == [1, 2]
        assert [it.id for it in groups[1]] == ["A", "C"]
        assert isinstance(groups[2], LineItemCollection)

    def test_filter_and_sum(self, make_item):
        items = _collection(make_item, ("A", 1), ("B", 2), ("C", 3))
        expensive = items.filter(lambda it: it.unit_price > 1)
        assert [it.id for it in expensive] == ["B", "C"]
        assert items.sum(lambda it: it.subtotal) == 6

    def test_iteration_survives_mutation(self, make_item):
        items = _collection(make_item, ("A", 1), ("B", 2))
        for it in items:
            items.forget(it.row_id)
        assert items.count() == 0


class TestPriceRuleCollection:
    def test_of_type_and_has_type(self, make_rule):
        rules = PriceRuleCollection.of([
            make_rule("R1", DISCOUNT_SUBTOTAL_PERCENTAGE, percentage=10),
            make_rule("R2", DISCOUNT_SUBTOTAL_FIXED_AMOUNT, fixed=5),
        ])
        assert rules.has("R1")
        assert rules.has_type(DISCOUNT_SUBTOTAL_PERCENTAGE)
        assert not rules.has_type(DISCOUNT_TOTAL_PERCENTAGE)
        assert rules.of_type(DISCOUNT_SUBTOTAL_FIXED_AMOUNT).keys() == ["R2"]

    def test_where(self, make_rule):
        rules = PriceRuleCollection.of([
            make_rule("R1", DISCOUNT_SUBTOTAL_PERCENTAGE, percentage=10),
            make_rule("R2", DISCOUNT_SUBTOTAL_FIXED_AMOUNT, fixed=5, combinable=False),
        ])
        assert rules.where("combinable", False).first().id == "R2"
