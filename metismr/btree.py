"""B+ tree of distinct keys, each holding the list of its values."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

from .bsearch import bsearch_eq, bsearch_lar
from .containers import KeyVals

ORDER = 3


def _natural_cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


class _Leaf:
    __slots__ = ("kvs", "next", "parent")

    def __init__(self) -> None:
        self.kvs: list[KeyVals] = []
        self.next: _Leaf | None = None
        self.parent: _Internal | None = None


class _Internal:
    __slots__ = ("keys", "children", "parent")

    def __init__(self) -> None:
        self.keys: list[Any] = []
        self.children: list[Any] = []
        self.parent: _Internal | None = None


class KeyValsBTree:
    """Ordered map from key to values; leaves split at ``2*order+2`` keys."""

    def __init__(
        self,
        keycmp: Callable[[Any, Any], int] | None = None,
        keycopy: Callable[[Any, int], Any] | None = None,
        order: int = ORDER,
    ) -> None:
        if order < 1:
            raise ValueError("order must be at least 1")
        self.keycmp = keycmp or _natural_cmp
        self.keycopy = keycopy
        self.order = order
        self._root: _Leaf | _Internal | None = None
        self._nkeys = 0

    def _kvs_cmp(self, key: Any, kvs: KeyVals) -> int:
        return self.keycmp(key, kvs.key)

    def _get_leaf(self, key: Any) -> _Leaf:
        if self._root is None:
            self._root = _Leaf()
            self._nkeys = 0
            return self._root
        node = self._root
        while isinstance(node, _Internal):
            node = node.children[bsearch_lar(key, node.keys, self.keycmp)]
        return node

    def _insert_index(self, key: Any, left: Any, right: Any) -> None:
        parent = left.parent
        if parent is None:
            root = _Internal()
            root.keys = [key]
            root.children = [left, right]
            left.parent = right.parent = root
            self._root = root
            return
        ikey = bsearch_lar(key, parent.keys, self.keycmp)
        parent.keys.insert(ikey, key)
        parent.children.insert(ikey + 1, right)
        right.parent = parent
        if len(parent.keys) == 2 * self.order + 1:
            order = self.order
            newkey = parent.keys[order]
            sibling = _Internal()
            sibling.keys = parent.keys[order + 1:]
            sibling.children = parent.children[order + 1:]
            parent.keys = parent.keys[:order]
            parent.children = parent.children[:order + 1]
            self._insert_index(newkey, parent, sibling)
            for child in sibling.children:
                child.parent = sibling

    def _split_leaf(self, leaf: _Leaf) -> None:
        right = _Leaf()
        right.kvs = leaf.kvs[self.order + 1:]
        leaf.kvs = leaf.kvs[:self.order + 1]
        self._insert_index(right.kvs[0].key, leaf, right)
        right.next = leaf.next
        leaf.next = right

    def insert_kv(self, key: Any, val: Any, keylen: int = 0, hash_: int = 0) -> bool:
        """Add ``val`` under ``key``; return True if the key was new."""
        leaf = self._get_leaf(key)
        pos, found = bsearch_eq(key, leaf.kvs, self._kvs_cmp)
        if found:
            leaf.kvs[pos].vals.append(val)
        else:
            if keylen and self.keycopy:
                key = self.keycopy(key, keylen)
            leaf.kvs.insert(pos, KeyVals(key, [val], hash_))
            self._nkeys += 1
        if len(leaf.kvs) == 2 * self.order + 2:
            self._split_leaf(leaf)
        return not found

    def insert_kvs(self, kvs: KeyVals) -> None:
        """Insert a whole group; its key must not be present yet."""
        leaf = self._get_leaf(kvs.key)
        pos, found = bsearch_eq(kvs.key, leaf.kvs, self._kvs_cmp)
        if found:
            raise ValueError(f"key {kvs.key!r} already present")
        leaf.kvs.insert(pos, kvs)
        self._nkeys += 1
        if len(leaf.kvs) == 2 * self.order + 2:
            self._split_leaf(leaf)

    def _leaves(self) -> Iterator[_Leaf]:
        node = self._root
        if node is None:
            return
        while isinstance(node, _Internal):
            node = node.children[0]
        while node is not None:
            yield node
            node = node.next

    def copy_kvs(self) -> list[KeyVals]:
        """All groups in key order, as a new list."""
        return list(self)

    def drain(self) -> Iterator[KeyVals]:
        """Yield every group in order, leaving the tree empty."""
        groups = self.copy_kvs()
        self.clear()
        yield from groups

    def clear(self) -> None:
        self._root = None
        self._nkeys = 0

    def __len__(self) -> int:
        return self._nkeys

    def __iter__(self) -> Iterator[KeyVals]:
        for leaf in self._leaves():
            yield from leaf.kvs