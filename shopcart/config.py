from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int | None = None) -> int | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_bool(*keys: str, default: bool = False) -> bool:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on")


def _get_path(*keys: str, default: str) -> str:
    v = _get_env(*keys, default=default)
    return str(v)


@dataclass(frozen=True)
class Settings:
    db_path: str
    export_dir: str
    currency: str
    decimals: int
    decimal_point: str
    thousands_sep: str
    additive_item_percentages: bool
    warn_on_discount_overflow: bool
    log_level: str


settings = Settings(
    db_path=_get_path("SHOPCART_DB_PATH", "DB_PATH", default=str(ROOT_DIR / "data" / "carts.db")),
    export_dir=_get_path("EXPORT_DIR", default=str(ROOT_DIR / "exports")),
    currency=_get_env("CURRENCY", default="EUR") or "EUR",
    decimals=_get_int("DECIMALS", default=2),
    decimal_point=_get_env("DECIMAL_POINT", default=",") or ",",
    thousands_sep=_get_env("THOUSANDS_SEP", default=".") or ".",
    additive_item_percentages=_get_bool("ADDITIVE_ITEM_PERCENTAGES", default=False),
    warn_on_discount_overflow=_get_bool("WARN_ON_DISCOUNT_OVERFLOW", default=True),
    log_level=(_get_env("LOG_LEVEL", default="INFO") or "INFO").upper(),
)

if settings.decimals is None or settings.decimals < 0:
    raise RuntimeError("DECIMALS must be a non-negative integer. Fix DECIMALS in .env")
