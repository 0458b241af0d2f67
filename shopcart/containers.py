from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

from shopcart.models import LineItem, PriceRule

T = TypeVar("T")
C = TypeVar("C", bound="Collection")


class Collection(Generic[T]):
    """Insertion-ordered mapping of key -> value with collection helpers.

    ``filter``, ``transform``, ``sort_by`` and ``group_by`` never touch the
    collection they are called on; they return new collections.
    """

    def __init__(self, entries: Optional[Iterable[Tuple[str, T]]] = None) -> None:
        self._entries: Dict[str, T] = dict(entries or ())

    @classmethod
    def _key_of(cls, value: T) -> str:
        raise NotImplementedError

    @classmethod
    def of(cls: type[C], values: Iterable[T]) -> C:
        return cls((cls._key_of(v), v) for v in values)

    def _new(self: C, entries: Iterable[Tuple[str, T]]) -> C:
        return type(self)(entries)

    def has(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str, default: Optional[T] = None) -> Optional[T]:
        return self._entries.get(key, default)

    def put(self, key: str, value: T) -> None:
        # an existing key keeps its position
        self._entries[key] = value

    def pull(self, key: str) -> Optional[T]:
        return self._entries.pop(key, None)

    def forget(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def count(self) -> int:
        return len(self._entries)

    def is_empty(self) -> bool:
        return not self._entries

    def keys(self) -> List[str]:
        return list(self._entries)

    def values(self) -> List[T]:
        return list(self._entries.values())

    def first(self) -> Optional[T]:
        return next(iter(self._entries.values()), None)

    def filter(self: C, predicate: Callable[[T], bool]) -> C:
        return self._new((k, v) for k, v in self._entries.items() if predicate(v))

    def where(self: C, attr: str, value: Any) -> C:
        return self.filter(lambda v: getattr(v, attr) == value)

    def transform(self: C, fn: Callable[[T], T]) -> C:
        return self._new((k, fn(v)) for k, v in self._entries.items())

    def sort_by(self: C, key: Callable[[T], Any], reverse: bool = False) -> C:
        return self._new(sorted(self._entries.items(), key=lambda kv: key(kv[1]), reverse=reverse))

    def group_by(self: C, key: Callable[[T], Any]) -> Dict[Any, C]:
        groups: Dict[Any, List[Tuple[str, T]]] = {}
        for k, v in self._entries.items():
            groups.setdefault(key(v), []).append((k, v))
        return {g: self._new(entries) for g, entries in groups.items()}

    def sum(self, fn: Callable[[T], Decimal]) -> Decimal:
        return sum((fn(v) for v in self._entries.values()), Decimal("0"))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._entries.values()))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.keys()!r})"


class LineItemCollection(Collection[LineItem]):
    @classmethod
    def _key_of(cls, value: LineItem) -> str:
        return value.row_id


class PriceRuleCollection(Collection[PriceRule]):
    @classmethod
    def _key_of(cls, value: PriceRule) -> str:
        return value.id

    def of_type(self, *discount_types: str) -> "PriceRuleCollection":
        return self.filter(lambda r: r.discount_type in discount_types)

    def has_type(self, discount_type: str) -> bool:
        return any(r.discount_type == discount_type for r in self)
