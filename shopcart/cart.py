from __future__ import annotations

import copy
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from shopcart.config import settings
from shopcart.constants import (
    DISCOUNT_SUBTOTAL_PERCENTAGE,
    DISCOUNT_TOTAL_PERCENTAGE,
    EVENT_BATCH,
    EVENT_DESTROY,
    EVENT_DESTROYED,
    EVENT_DISCOUNT_TRUNCATED,
    EVENT_ITEM_ADDED,
    EVENT_ITEM_REMOVE,
    EVENT_ITEM_REMOVED,
    EVENT_PRICE_RULE_ADDED,
    EXCLUSIVE_DISCOUNTS,
    PERCENTAGE_DISCOUNTS,
    SCOPE_SUBTOTAL,
)
from shopcart.containers import LineItemCollection, PriceRuleCollection
from shopcart.errors import (
    CartError,
    DuplicateRuleError,
    InvalidDataTypeError,
    MutuallyExclusiveDiscountError,
    NotCombinableConflictError,
    NotFoundError,
)
from shopcart.events import Notifier, NullNotifier
from shopcart.models import LineItem, PriceRule, TaxRule
from shopcart.services.pricing import allocate_fixed_discount, percentage_of
from shopcart.utils.formatters import number_format
from shopcart.utils.validators import ZERO, require_non_negative, to_quantity

if TYPE_CHECKING:
    from shopcart.db.sqlite import CartStore

logger = logging.getLogger(__name__)

_PERCENTAGE_FIELD = {
    DISCOUNT_SUBTOTAL_PERCENTAGE: "discount_subtotal_percentage",
    DISCOUNT_TOTAL_PERCENTAGE: "discount_total_percentage",
}


class Cart:
    """
    Shopping cart for one instance id.

    Nothing is cached: subtotal, tax and total are summed over the rows on
    every access. Mutations keep the rows' discount accumulators and the
    price rules' ``discount_amount`` up to date.

    The cart does not persist itself except right after the first item lands
    in an instance that is not in the store yet; after any other mutation the
    caller is expected to call ``save()``. ``destroyed`` stays set from
    ``destroy()`` until the next item is added.
    """

    def __init__(
        self,
        instance: str = "default",
        store: Optional["CartStore"] = None,
        notifier: Optional[Notifier] = None,
        additive_percentages: Optional[bool] = None,
    ) -> None:
        self.instance = instance
        self._items = LineItemCollection()
        self._price_rules = PriceRuleCollection()
        self.has_non_combinable_rule = False
        self.has_free_shipping = False
        self.has_shipping = False
        self.shipping_amount = ZERO

        self._store = store
        self._notifier: Notifier = notifier or NullNotifier()
        self._additive_percentages = (
            settings.additive_item_percentages if additive_percentages is None else additive_percentages
        )
        # an instance already in the store is never auto-saved over
        self._persisted = store is not None and store.exists(instance)
        self.destroyed = False

    @classmethod
    def open(
        cls,
        instance: str,
        store: "CartStore",
        notifier: Optional[Notifier] = None,
        additive_percentages: Optional[bool] = None,
    ) -> "Cart":
        """Stored cart for ``instance``, or a new empty one."""
        cart = store.load(instance)
        if cart is None:
            return cls(instance, store=store, notifier=notifier, additive_percentages=additive_percentages)
        cart.attach(store=store, notifier=notifier)
        if additive_percentages is not None:
            cart._additive_percentages = additive_percentages
        return cart

    def attach(self, store: Optional["CartStore"] = None, notifier: Optional[Notifier] = None) -> None:
        if store is not None:
            self._store = store
        if notifier is not None:
            self._notifier = notifier

    def save(self) -> None:
        if self._store is None:
            raise CartError("cart has no store to save into")
        self._store.save(self.instance, self)
        self._persisted = True

    def _notify(self, event: str, payload: Any = None) -> None:
        self._notifier.notify(event, payload)

    # ---------------- items ----------------

    @property
    def items(self) -> LineItemCollection:
        return self._items

    def get(self, row_id: str) -> LineItem:
        item = self._items.get(row_id)
        if item is None:
            raise NotFoundError(row_id)
        return item

    def count(self) -> int:
        return self._items.count()

    def search(self, predicate: Callable[[LineItem], bool]) -> LineItemCollection:
        return self._items.filter(predicate)

    def add(self, item: Union[LineItem, Sequence[LineItem]]) -> Union[LineItem, List[LineItem]]:
        """
        Add one item or a batch of items.

        A row that is already in the cart gets its quantity increased and
        nothing else. Batch elements are added one by one; if one fails the
        previous ones stay in the cart.
        """
        if isinstance(item, (list, tuple)):
            added: List[LineItem] = []
            for it in item:
                stored = self.add(it)
                added.append(stored)
                self._notify(EVENT_BATCH, stored)
            return added

        if not isinstance(item, LineItem):
            raise InvalidDataTypeError(f"expected LineItem, got {type(item).__name__}")

        existing = self._items.get(item.row_id)
        if existing is not None:
            stored = existing.evolve(quantity=existing.quantity + item.quantity)
        else:
            stored = self._apply_percentage_rules_to_item(item)
        self._items.put(stored.row_id, stored)
        self._update_cart_percentage_discounts()
        self.destroyed = False

        logger.debug("cart %s: added row %s (qty=%s)", self.instance, stored.row_id, stored.quantity)
        self._notify(EVENT_ITEM_ADDED, stored)

        if self._store is not None and not self._persisted:
            self.save()

        return stored

    def update(self, row_id: str, item: LineItem) -> LineItem:
        """Swap the row for ``item``; the new row goes to the end of the cart."""
        self.get(row_id)
        self._items.pull(row_id)
        self._items.put(item.row_id, item)
        self._update_cart_percentage_discounts()
        return item

    def set_quantity(self, row_id: str, quantity: Any) -> Optional[LineItem]:
        """Set a row's quantity. Zero or less removes the row (and maybe the cart)."""
        item = self.get(row_id)
        quantity = to_quantity(quantity)
        if quantity <= 0:
            self.remove(row_id)
            return None

        updated = item.evolve(quantity=quantity)
        self._items.put(row_id, updated)
        self._update_cart_percentage_discounts()
        return updated

    def remove(self, row_id: str) -> None:
        item = self.get(row_id)

        self._notify(EVENT_ITEM_REMOVE, item)
        self._items.forget(row_id)
        self._notify(EVENT_ITEM_REMOVED, item)
        logger.debug("cart %s: removed row %s", self.instance, row_id)

        if self._items.is_empty():
            self.destroy()
        else:
            self._update_cart_percentage_discounts()

    def destroy(self) -> None:
        self._notify(EVENT_DESTROY)

        self._items.clear()
        self._price_rules.clear()
        self.has_non_combinable_rule = False
        self.has_free_shipping = False
        self.has_shipping = False
        self.shipping_amount = ZERO

        if self._store is not None:
            self._store.delete(self.instance)
        self._persisted = False
        self.destroyed = True
        logger.debug("cart %s: destroyed", self.instance)

        self._notify(EVENT_DESTROYED)

    # ---------------- price rules ----------------

    @property
    def price_rules(self) -> PriceRuleCollection:
        return self._price_rules

    def non_combinable_rule(self) -> Optional[PriceRule]:
        return self._price_rules.where("combinable", False).first()

    def add_price_rule(self, rule: PriceRule) -> None:
        error = self._admission_error(rule)
        if error is not None:
            logger.info("cart %s: price rule %s refused: %s", self.instance, rule.id, error)
            raise error

        self._price_rules.put(rule.id, rule)
        self._apply_price_rule_to_items(rule)
        self._update_cart_percentage_discounts()

        logger.info(
            "cart %s: price rule %s (%s) applied, discount=%s",
            self.instance,
            rule.id,
            rule.discount_type,
            rule.discount_amount,
        )
        self._notify(EVENT_PRICE_RULE_ADDED, rule)

    def _admission_error(self, rule: PriceRule) -> Optional[CartError]:
        if self._price_rules.has(rule.id):
            return DuplicateRuleError(rule.id)

        blocking = self.non_combinable_rule()
        if blocking is not None:
            return NotCombinableConflictError(blocking.id)

        excluded = EXCLUSIVE_DISCOUNTS.get(rule.discount_type)
        if excluded is not None and self._price_rules.has_type(excluded):
            return MutuallyExclusiveDiscountError(rule.discount_type, excluded)

        return None

    def _apply_price_rule_to_items(self, rule: PriceRule) -> None:
        if rule.is_percentage:
            field = _PERCENTAGE_FIELD[rule.discount_type]
            pct = rule.discount.percentage
            # percentages of the same scope add up
            self._items = self._items.transform(lambda it: it.evolve(**{field: getattr(it, field) + pct}))
        else:
            self._apply_fixed_discount(rule)

    def _apply_fixed_discount(self, rule: PriceRule) -> None:
        scope = rule.scope
        field = "discount_subtotal_fixed_amount" if scope == SCOPE_SUBTOTAL else "discount_total_fixed_amount"

        allocations, applied = allocate_fixed_discount(self._items, rule.discount.fixed, scope)

        def _take(it: LineItem) -> LineItem:
            if it.row_id not in allocations:
                return it
            return it.evolve(**{field: getattr(it, field) + allocations[it.row_id]})

        self._items = self._items.transform(_take)
        rule.discount_amount = applied

        leftover = rule.discount.fixed - applied
        if leftover > 0:
            if settings.warn_on_discount_overflow:
                logger.warning(
                    "cart %s: price rule %s could only apply %s of %s, %s dropped",
                    self.instance,
                    rule.id,
                    applied,
                    rule.discount.fixed,
                    leftover,
                )
            self._notify(EVENT_DISCOUNT_TRUNCATED, rule)

    def _apply_percentage_rules_to_item(self, item: LineItem) -> LineItem:
        """Percentage rules already in the cart, applied to a row that is new."""
        changes: Dict[str, Decimal] = {}
        for rule in self._price_rules.of_type(*PERCENTAGE_DISCOUNTS):
            field = _PERCENTAGE_FIELD[rule.discount_type]
            if self._additive_percentages:
                changes[field] = changes.get(field, getattr(item, field)) + rule.discount.percentage
            else:
                # last rule wins
                changes[field] = rule.discount.percentage
        return item.evolve(**changes) if changes else item

    def _update_cart_percentage_discounts(self) -> None:
        rules = self._price_rules.values()
        self.has_non_combinable_rule = any(not r.combinable for r in rules)
        self.has_free_shipping = any(r.free_shipping for r in rules)

        for rule in rules:
            if not rule.is_percentage:
                continue

            if rule.discount_type == DISCOUNT_SUBTOTAL_PERCENTAGE:
                base = self.subtotal
            else:
                base = self.total + self.discount_total_percentage_amount

            if rule.discount.apply_shipping_amount and self.has_shipping and not self.has_free_shipping:
                base += self.shipping_amount

            rule.discount_amount = percentage_of(base, rule.discount.percentage)

    # ---------------- shipping ----------------

    def set_shipping(self, has_shipping: bool) -> None:
        if not isinstance(has_shipping, bool):
            raise InvalidDataTypeError(f"shipping flag must be a bool, got {has_shipping!r}")
        self.has_shipping = has_shipping
        self._update_cart_percentage_discounts()

    def set_shipping_amount(self, amount: Any) -> None:
        self.shipping_amount = require_non_negative(amount, "shipping amount")
        self._update_cart_percentage_discounts()

    @property
    def shipping_total(self) -> Decimal:
        if not self.has_shipping or self.has_free_shipping:
            return ZERO
        return self.shipping_amount

    # ---------------- totals ----------------

    @property
    def quantity(self) -> Decimal:
        return self._items.sum(lambda it: it.quantity)

    @property
    def subtotal(self) -> Decimal:
        return self._items.sum(lambda it: it.subtotal)

    @property
    def subtotal_with_discounts(self) -> Decimal:
        return self._items.sum(lambda it: it.subtotal_with_discounts)

    @property
    def tax_amount(self) -> Decimal:
        return self._items.sum(lambda it: it.tax_amount)

    @property
    def total(self) -> Decimal:
        return self._items.sum(lambda it: it.total)

    @property
    def discount_subtotal_percentage_amount(self) -> Decimal:
        return self._items.sum(lambda it: it.discount_subtotal_percentage_amount)

    @property
    def discount_total_percentage_amount(self) -> Decimal:
        return self._items.sum(lambda it: it.discount_total_percentage_amount)

    @property
    def discount_subtotal_amount(self) -> Decimal:
        return self._items.sum(lambda it: it.discount_subtotal_percentage_amount + it.discount_subtotal_fixed_amount)

    @property
    def discount_total_amount(self) -> Decimal:
        return self._items.sum(lambda it: it.discount_total_percentage_amount + it.discount_total_fixed_amount)

    @property
    def discount_amount(self) -> Decimal:
        return self.discount_subtotal_amount + self.discount_total_amount

    def tax_summary(self) -> Dict[str, TaxRule]:
        """Tax id -> copy of the tax rule holding that tax's amount over all rows."""
        summary: Dict[str, TaxRule] = {}
        for item in self._items:
            for tax in item.tax_rules:
                if tax.id in summary:
                    summary[tax.id].amount += tax.amount
                else:
                    summary[tax.id] = copy.deepcopy(tax)
        return summary

    def get_subtotal(self, decimals: Optional[int] = None, decimal_point: Optional[str] = None,
                     thousands_sep: Optional[str] = None) -> str:
        return number_format(self.subtotal, decimals, decimal_point, thousands_sep)

    def get_tax_amount(self, decimals: Optional[int] = None, decimal_point: Optional[str] = None,
                       thousands_sep: Optional[str] = None) -> str:
        return number_format(self.tax_amount, decimals, decimal_point, thousands_sep)

    def get_total(self, decimals: Optional[int] = None, decimal_point: Optional[str] = None,
                  thousands_sep: Optional[str] = None) -> str:
        return number_format(self.total, decimals, decimal_point, thousands_sep)

    def get_discount_amount(self, decimals: Optional[int] = None, decimal_point: Optional[str] = None,
                            thousands_sep: Optional[str] = None) -> str:
        return number_format(self.discount_amount, decimals, decimal_point, thousands_sep)

    # ---------------- serialization ----------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "instance": self.instance,
            "items": [it.to_dict() for it in self._items],
            "price_rules": [r.to_dict() for r in self._price_rules],
            "has_shipping": self.has_shipping,
            "shipping_amount": str(self.shipping_amount),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], **kwargs: Any) -> "Cart":
        cart = cls(data["instance"], **kwargs)
        cart._items = LineItemCollection.of(LineItem.from_dict(it) for it in data.get("items") or ())
        cart._price_rules = PriceRuleCollection.of(PriceRule.from_dict(r) for r in data.get("price_rules") or ())
        cart.has_shipping = bool(data.get("has_shipping", False))
        cart.shipping_amount = require_non_negative(data.get("shipping_amount", ZERO), "shipping amount")
        cart._update_cart_percentage_discounts()
        cart._persisted = True
        return cart

    def __len__(self) -> int:
        return self._items.count()

    def __repr__(self) -> str:
        return f"Cart({self.instance!r}, rows={self.count()}, rules={self._price_rules.count()})"
