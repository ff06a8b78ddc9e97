"""Array-backed key/value collections used by the map and reduce buckets."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from .bsearch import bsearch_eq

KeyCmp = Callable[[Any, Any], int]
KeyCopy = Callable[[Any, int], Any]


def _natural_cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


@dataclass
class KeyVal:
    """One key with one value."""

    key: Any
    val: Any
    hash: int = 0


@dataclass
class KeyVals:
    """One key with all values collected for it."""

    key: Any
    vals: list = field(default_factory=list)
    hash: int = 0


@dataclass
class KeyValsLen:
    """One key with its grouped values and their count."""

    key: Any
    vals: Any
    length: int


class KeyValArray:
    """Unsorted list of key/value pairs; every insert appends."""

    def __init__(self, keycopy: KeyCopy | None = None) -> None:
        self.keycopy = keycopy
        self.elems: list[KeyVal] = []

    def insert_kv(self, key: Any, val: Any, keylen: int = 0, hash_: int = 0) -> bool:
        """Append a pair. Always reports a new entry."""
        if keylen and self.keycopy:
            key = self.keycopy(key, keylen)
        self.elems.append(KeyVal(key, val, hash_))
        return True

    def set_elems(self, elems: Iterable[KeyVal]) -> None:
        self.elems = list(elems)

    def clear(self) -> None:
        self.elems = []

    def __len__(self) -> int:
        return len(self.elems)

    def __iter__(self) -> Iterator[KeyVal]:
        return iter(self.elems)


class KeyValsArray:
    """List of distinct keys kept sorted by ``keycmp``, each with its values."""

    def __init__(self, keycmp: KeyCmp | None = None, keycopy: KeyCopy | None = None) -> None:
        self.keycmp = keycmp or _natural_cmp
        self.keycopy = keycopy
        self.elems: list[KeyVals] = []

    def _cmp(self, key: Any, kvs: KeyVals) -> int:
        return self.keycmp(key, kvs.key)

    def insert_kv(self, key: Any, val: Any, keylen: int = 0, hash_: int = 0) -> bool:
        """Add ``val`` under ``key``; return True if the key was new."""
        pos, found = bsearch_eq(key, self.elems, self._cmp)
        if found:
            self.elems[pos].vals.append(val)
            return False
        if keylen and self.keycopy:
            key = self.keycopy(key, keylen)
        self.elems.insert(pos, KeyVals(key, [val], hash_))
        return True

    def insert_kvs(self, kvs: KeyVals) -> None:
        """Insert a whole group; its key must not be present yet."""
        pos, found = bsearch_eq(kvs.key, self.elems, self._cmp)
        if found:
            raise ValueError(f"key {kvs.key!r} already present")
        self.elems.insert(pos, kvs)

    def append_kvs(self, kvs: KeyVals) -> None:
        """Append a group without keeping order."""
        self.elems.append(kvs)

    def set_elems(self, elems: Iterable[KeyVals]) -> None:
        self.elems = list(elems)

    def drain(self) -> Iterator[KeyVals]:
        """Yield every group in order, leaving the collection empty."""
        elems, self.elems = self.elems, []
        yield from elems

    def clear(self) -> None:
        self.elems = []

    def __len__(self) -> int:
        return len(self.elems)

    def __iter__(self) -> Iterator[KeyVals]:
        return iter(self.elems)


class KeyValsLenArray:
    """List of grouped results carrying their value counts."""

    def __init__(self) -> None:
        self.elems: list[KeyValsLen] = []

    def insert_kvslen(self, key: Any, vals: Any, length: int) -> None:
        self.elems.append(KeyValsLen(key, vals, length))

    def set_elems(self, elems: Iterable[KeyValsLen]) -> None:
        self.elems = list(elems)

    def clear(self) -> None:
        self.elems = []

    def __len__(self) -> int:
        return len(self.elems)

    def __iter__(self) -> Iterator[KeyValsLen]:
        return iter(self.elems)