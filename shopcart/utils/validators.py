from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from shopcart.errors import InvalidAmountError, InvalidQuantityError

ZERO = Decimal("0")


def to_decimal(v: Any, name: str = "value") -> Decimal:
    if isinstance(v, Decimal):
        return v
    if isinstance(v, bool) or v is None:
        raise InvalidAmountError(f"{name} must be a number, got {v!r}")
    try:
        # floats go through str() so 0.1 stays 0.1
        d = Decimal(str(v)) if isinstance(v, float) else Decimal(v)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"{name} must be a number, got {v!r}") from None
    if not d.is_finite():
        raise InvalidAmountError(f"{name} must be finite, got {v!r}")
    return d


def require_non_negative(v: Any, name: str = "value") -> Decimal:
    d = to_decimal(v, name)
    if d < 0:
        raise InvalidAmountError(f"{name} must be >= 0")
    return d


def to_quantity(v: Any, name: str = "quantity") -> Decimal:
    try:
        return to_decimal(v, name)
    except InvalidAmountError as e:
        raise InvalidQuantityError(str(e)) from None


def require_positive_number(v: Any, name: str = "quantity") -> Decimal:
    d = to_quantity(v, name)
    if d <= 0:
        raise InvalidQuantityError(f"{name} must be > 0")
    return d
