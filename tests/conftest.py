from decimal import Decimal

import pytest

from shopcart.cart import Cart
from shopcart.db.sqlite import MemoryCartStore, SqliteCartStore
from shopcart.models import Discount, LineItem, PriceRule, TaxRule


class RecordingNotifier:
    """Keeps every (event, payload) pair the cart sends."""

    def __init__(self):
        self.events = []

    def notify(self, event, payload=None):
        self.events.append((event, payload))

    @property
    def names(self):
        return [name for name, _ in self.events]


@pytest.fixture
def make_item():
    def _make(id="P1", quantity=1, price="10", taxes=(), name=None, options=None, **fields):
        return LineItem(
            id=id,
            name=name or f"Product {id}",
            quantity=Decimal(str(quantity)),
            unit_price=Decimal(str(price)),
            tax_rules=tuple(TaxRule(id=tax_id, name=tax_id.upper(), rate=Decimal(str(rate))) for tax_id, rate in taxes),
            options=options or {},
            **fields,
        )

    return _make


@pytest.fixture
def make_rule():
    def _make(id, discount_type, percentage="0", fixed="0", combinable=True, free_shipping=False,
              apply_shipping_amount=False):
        return PriceRule(
            id=id,
            discount_type=discount_type,
            discount=Discount(
                percentage=Decimal(str(percentage)),
                fixed=Decimal(str(fixed)),
                apply_shipping_amount=apply_shipping_amount,
            ),
            combinable=combinable,
            free_shipping=free_shipping,
        )

    return _make


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def memory_store():
    return MemoryCartStore()


@pytest.fixture
def sqlite_store(tmp_path):
    store = SqliteCartStore(str(tmp_path / "carts.db"))
    store.init_db()
    return store


@pytest.fixture
def cart(notifier):
    return Cart("test", notifier=notifier, additive_percentages=False)
