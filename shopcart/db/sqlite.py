from __future__ import annotations

import json
import logging
import os
import sqlite3
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from shopcart.cart import Cart
from shopcart.config import settings

logger = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schema.sql")


class CartStore(Protocol):
    def load(self, instance: str) -> Optional[Cart]: ...

    def save(self, instance: str, cart: Cart) -> None: ...

    def delete(self, instance: str) -> None: ...

    def exists(self, instance: str) -> bool: ...


class SqliteCartStore:
    """One row per cart instance holding the JSON snapshot of the cart."""

    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = db_path or settings.db_path

    def _connect(self) -> sqlite3.Connection:
        os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        conn = self._connect()
        try:
            with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
                conn.executescript(f.read())
            conn.commit()
        finally:
            conn.close()

    def load(self, instance: str) -> Optional[Cart]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT payload FROM carts WHERE instance = ?", (instance,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return Cart.from_dict(json.loads(row["payload"]))

    def save(self, instance: str, cart: Cart) -> None:
        payload = json.dumps(cart.to_dict())
        updated_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO carts(instance, payload, updated_at) VALUES(?,?,?) "
                "ON CONFLICT(instance) DO UPDATE SET payload=excluded.payload, updated_at=excluded.updated_at",
                (instance, payload, updated_at),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("saved cart %s", instance)

    def delete(self, instance: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM carts WHERE instance = ?", (instance,))
            conn.commit()
        finally:
            conn.close()
        logger.debug("deleted cart %s", instance)

    def exists(self, instance: str) -> bool:
        conn = self._connect()
        try:
            row = conn.execute("SELECT 1 FROM carts WHERE instance = ?", (instance,)).fetchone()
        finally:
            conn.close()
        return row is not None


class MemoryCartStore:
    """Keeps snapshots in a dict; loads always hand back a fresh Cart."""

    def __init__(self) -> None:
        self._carts: Dict[str, Dict[str, Any]] = {}

    def load(self, instance: str) -> Optional[Cart]:
        data = self._carts.get(instance)
        return Cart.from_dict(data) if data is not None else None

    def save(self, instance: str, cart: Cart) -> None:
        self._carts[instance] = json.loads(json.dumps(cart.to_dict()))

    def delete(self, instance: str) -> None:
        self._carts.pop(instance, None)

    def exists(self, instance: str) -> bool:
        return instance in self._carts

    def __contains__(self, instance: object) -> bool:
        return isinstance(instance, str) and self.exists(instance)
