from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from shopcart.config import settings
from shopcart.utils.validators import to_decimal


def number_format(
    v: Any,
    decimals: int | None = None,
    decimal_point: str | None = None,
    thousands_sep: str | None = None,
) -> str:
    """Render ``v`` rounded half-up with the given separators, e.g. ``1.234,50``."""
    decimals = settings.decimals if decimals is None else decimals
    decimal_point = settings.decimal_point if decimal_point is None else decimal_point
    thousands_sep = settings.thousands_sep if thousands_sep is None else thousands_sep

    d = to_decimal(v).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
    if d == 0:
        d = abs(d)
    raw = f"{d:,.{decimals}f}"
    return raw.replace(",", "\0").replace(".", decimal_point).replace("\0", thousands_sep)


def money(v: Any) -> str:
    return f"{number_format(v)} {settings.currency}"
