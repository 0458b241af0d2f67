from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from shopcart.constants import (
    DISCOUNT_SUBTOTAL_FIXED_AMOUNT,
    DISCOUNT_SUBTOTAL_PERCENTAGE,
    DISCOUNT_TYPES,
    FIXED_DISCOUNTS,
    PERCENTAGE_DISCOUNTS,
    PRICE_WITHOUT_TAX,
    SCOPE_SUBTOTAL,
    SCOPE_TOTAL,
)
from shopcart.errors import InvalidDataTypeError
from shopcart.services.pricing import net_unit_price, percentage_of
from shopcart.utils.validators import ZERO, require_non_negative, require_positive_number, to_decimal


def make_row_id(product_id: str, options: Optional[Mapping[str, Any]] = None) -> str:
    raw = json.dumps([str(product_id), dict(options or {})], sort_keys=True, default=str)
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


@dataclass
class TaxRule:
    id: str
    name: str = ""
    rate: Decimal = ZERO
    amount: Decimal = ZERO

    def __post_init__(self) -> None:
        self.rate = require_non_negative(self.rate, "tax rate")
        self.amount = to_decimal(self.amount, "tax amount")

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "rate": str(self.rate), "amount": str(self.amount)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaxRule":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            rate=data.get("rate", ZERO),
            amount=data.get("amount", ZERO),
        )


@dataclass
class Discount:
    percentage: Decimal = ZERO
    fixed: Decimal = ZERO
    apply_shipping_amount: bool = False

    def __post_init__(self) -> None:
        self.percentage = require_non_negative(self.percentage, "discount percentage")
        self.fixed = require_non_negative(self.fixed, "discount fixed amount")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "percentage": str(self.percentage),
            "fixed": str(self.fixed),
            "apply_shipping_amount": self.apply_shipping_amount,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Discount":
        return cls(
            percentage=data.get("percentage", ZERO),
            fixed=data.get("fixed", ZERO),
            apply_shipping_amount=bool(data.get("apply_shipping_amount", False)),
        )


@dataclass
class PriceRule:
    """
    A discount directive attached to a cart.

    ``discount_amount`` is not an input: the cart writes into it the amount the
    rule actually discounts (fixed rules when they are admitted, percentage
    rules on every recompute).
    """

    id: str
    discount_type: str
    discount: Discount = field(default_factory=Discount)
    name: str = ""
    combinable: bool = True
    free_shipping: bool = False
    discount_amount: Decimal = ZERO

    def __post_init__(self) -> None:
        if self.discount_type not in DISCOUNT_TYPES:
            raise InvalidDataTypeError(f"unknown discount type {self.discount_type!r}")
        self.discount_amount = to_decimal(self.discount_amount, "discount amount")

    @property
    def is_percentage(self) -> bool:
        return self.discount_type in PERCENTAGE_DISCOUNTS

    @property
    def is_fixed(self) -> bool:
        return self.discount_type in FIXED_DISCOUNTS

    @property
    def scope(self) -> str:
        if self.discount_type in (DISCOUNT_SUBTOTAL_PERCENTAGE, DISCOUNT_SUBTOTAL_FIXED_AMOUNT):
            return SCOPE_SUBTOTAL
        return SCOPE_TOTAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "discount_type": self.discount_type,
            "discount": self.discount.to_dict(),
            "combinable": self.combinable,
            "free_shipping": self.free_shipping,
            "discount_amount": str(self.discount_amount),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PriceRule":
        return cls(
            id=data["id"],
            discount_type=data["discount_type"],
            discount=Discount.from_dict(data.get("discount") or {}),
            name=data.get("name", ""),
            combinable=bool(data.get("combinable", True)),
            free_shipping=bool(data.get("free_shipping", False)),
            discount_amount=data.get("discount_amount", ZERO),
        )


_ACCUMULATORS = (
    "discount_subtotal_percentage",
    "discount_total_percentage",
    "discount_subtotal_fixed_amount",
    "discount_total_fixed_amount",
)


@dataclass(frozen=True)
class LineItem:
    """
    One cart row.

    Items are immutable: quantity changes and discount allocation build a new
    item with ``evolve``. Every derived amount is computed from the fields on
    access, and the tax rule amounts are refilled whenever an item is built.

        subtotal                 quantity * unit_price
        subtotal_with_discounts  subtotal - subtotal % - subtotal fixed
        tax_amount               sum(subtotal_with_discounts * rate / 100)
        total_with_tax           subtotal_with_discounts + tax_amount
        total                    total_with_tax - total % - total fixed
    """

    id: str
    name: str
    quantity: Decimal
    unit_price: Decimal
    tax_rules: Tuple[TaxRule, ...] = ()
    options: Dict[str, Any] = field(default_factory=dict)
    row_id: str = ""
    discount_subtotal_percentage: Decimal = ZERO
    discount_total_percentage: Decimal = ZERO
    discount_subtotal_fixed_amount: Decimal = ZERO
    discount_total_fixed_amount: Decimal = ZERO

    def __post_init__(self) -> None:
        _set = object.__setattr__
        _set(self, "quantity", require_positive_number(self.quantity))
        _set(self, "unit_price", require_non_negative(self.unit_price, "unit price"))
        for name in _ACCUMULATORS:
            _set(self, name, require_non_negative(getattr(self, name), name))
        _set(self, "options", dict(self.options or {}))
        if not self.row_id:
            _set(self, "row_id", make_row_id(self.id, self.options))

        # copies, so an item never shares tax rules with another item
        base = self.subtotal_with_discounts
        _set(
            self,
            "tax_rules",
            tuple(replace(t, amount=percentage_of(base, t.rate)) for t in self.tax_rules),
        )

    @classmethod
    def create(
        cls,
        id: str,
        name: str,
        quantity: Any,
        price: Any,
        tax_rules: Iterable[TaxRule] = (),
        price_type: int = PRICE_WITHOUT_TAX,
        options: Optional[Mapping[str, Any]] = None,
    ) -> "LineItem":
        tax_rules = tuple(tax_rules)
        unit_price = net_unit_price(
            require_non_negative(price, "price"),
            [t.rate for t in tax_rules],
            price_type,
        )
        return cls(
            id=id,
            name=name,
            quantity=quantity,
            unit_price=unit_price,
            tax_rules=tax_rules,
            options=dict(options or {}),
        )

    def evolve(self, **changes: Any) -> "LineItem":
        return replace(self, **changes)

    def __hash__(self) -> int:
        # equal items share a row id; options is a dict and can't be hashed
        return hash(self.row_id)

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price

    @property
    def discount_subtotal_percentage_amount(self) -> Decimal:
        return percentage_of(self.subtotal, self.discount_subtotal_percentage)

    @property
    def subtotal_with_discounts(self) -> Decimal:
        return self.subtotal - self.discount_subtotal_percentage_amount - self.discount_subtotal_fixed_amount

    @property
    def tax_rate(self) -> Decimal:
        return sum((t.rate for t in self.tax_rules), ZERO)

    @property
    def tax_amount(self) -> Decimal:
        return sum((t.amount for t in self.tax_rules), ZERO)

    @property
    def total_with_tax(self) -> Decimal:
        return self.subtotal_with_discounts + self.tax_amount

    @property
    def discount_total_percentage_amount(self) -> Decimal:
        return percentage_of(self.total_with_tax, self.discount_total_percentage)

    @property
    def total(self) -> Decimal:
        return self.total_with_tax - self.discount_total_percentage_amount - self.discount_total_fixed_amount

    @property
    def discount_amount(self) -> Decimal:
        return (
            self.discount_subtotal_percentage_amount
            + self.discount_subtotal_fixed_amount
            + self.discount_total_percentage_amount
            + self.discount_total_fixed_amount
        )

    def available_amount(self, scope: str) -> Decimal:
        """What a fixed discount of ``scope`` can still take from this row."""
        return self.subtotal_with_discounts if scope == SCOPE_SUBTOTAL else self.total

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "row_id": self.row_id,
            "id": self.id,
            "name": self.name,
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
            "options": dict(self.options),
            "tax_rules": [t.to_dict() for t in self.tax_rules],
        }
        for name in _ACCUMULATORS:
            data[name] = str(getattr(self, name))
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LineItem":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            quantity=data["quantity"],
            unit_price=data["unit_price"],
            tax_rules=tuple(TaxRule.from_dict(t) for t in data.get("tax_rules") or ()),
            options=data.get("options") or {},
            row_id=data.get("row_id", ""),
            **{name: data.get(name, ZERO) for name in _ACCUMULATORS},
        )
