"""
Exceptions raised by the cart engine.

All of them are local validation failures: they are raised at the call that
caused them and nothing is retried or rolled back.
"""

from __future__ import annotations


class CartError(Exception):
    """Base class for every cart failure."""


class NotFoundError(CartError, LookupError):
    """A row id that is not in the cart."""

    def __init__(self, row_id: str) -> None:
        super().__init__(f"Row {row_id!r} not found in cart")
        self.row_id = row_id


class PriceRuleError(CartError, ValueError):
    """A price rule was refused by the cart."""


class DuplicateRuleError(PriceRuleError):
    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Price rule {rule_id!r} already exists in cart price rules")
        self.rule_id = rule_id


class NotCombinableConflictError(PriceRuleError):
    def __init__(self, blocking_rule_id: str) -> None:
        super().__init__(
            f"Can't apply price rule, cart has the not combinable price rule {blocking_rule_id!r}"
        )
        self.blocking_rule_id = blocking_rule_id


class MutuallyExclusiveDiscountError(PriceRuleError):
    def __init__(self, discount_type: str, existing_type: str) -> None:
        super().__init__(
            f"Can't apply a {discount_type} discount, cart already has a {existing_type} discount"
        )
        self.discount_type = discount_type
        self.existing_type = existing_type


class InvalidQuantityError(CartError, ValueError):
    pass


class InvalidAmountError(CartError, ValueError):
    pass


class InvalidDataTypeError(CartError, TypeError):
    pass
