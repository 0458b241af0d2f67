from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Iterable, List, Tuple

from shopcart.constants import PRICE_WITH_TAX, PRICE_WITHOUT_TAX
from shopcart.errors import InvalidAmountError

if TYPE_CHECKING:
    from shopcart.containers import LineItemCollection
    from shopcart.models import LineItem

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def percentage_of(base: Decimal, percentage: Decimal) -> Decimal:
    return base * percentage / HUNDRED


def net_unit_price(price: Decimal, rates: Iterable[Decimal], price_type: int = PRICE_WITHOUT_TAX) -> Decimal:
    if price_type == PRICE_WITHOUT_TAX:
        return price
    if price_type == PRICE_WITH_TAX:
        return price / (1 + sum(rates, ZERO) / HUNDRED)
    raise InvalidAmountError(f"unknown price type {price_type!r}")


def allocation_order(items: "LineItemCollection", scope: str) -> List["LineItem"]:
    """
    Order in which a fixed discount walks the cart rows.

    Rows are grouped by their aggregate tax rate, highest rate first; inside a
    group the row with the least ``scope`` amount left comes first. Ties keep
    cart order.
    """
    groups = items.group_by(lambda it: it.tax_rate)
    ordered: List["LineItem"] = []
    for rate in sorted(groups, reverse=True):
        ordered.extend(groups[rate].sort_by(lambda it: it.available_amount(scope)))
    return ordered


def allocate_fixed_discount(
    items: "LineItemCollection",
    amount: Decimal,
    scope: str,
) -> Tuple[Dict[str, Decimal], Decimal]:
    """
    Split one fixed discount across ``items``.

    Returns ``(allocations, applied)`` where ``allocations`` maps row id to the
    amount that row takes and ``applied`` is their sum. Whatever the rows can't
    absorb is dropped, so ``applied == min(amount, available)``.
    """
    remaining = amount
    allocations: Dict[str, Decimal] = {}

    for item in allocation_order(items, scope):
        available = max(item.available_amount(scope), ZERO)
        if available >= remaining:
            if remaining > 0:
                allocations[item.row_id] = remaining
            remaining = ZERO
            break
        if available > 0:
            allocations[item.row_id] = available
            remaining -= available

    return allocations, amount - remaining
