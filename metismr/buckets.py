"""Map-side bucket managers: a grid of collections, one row per map worker."""

from __future__ import annotations

import heapq
from collections.abc import Callable, Iterable
from functools import cmp_to_key
from itertools import chain
from typing import Any

from .btree import KeyValsBTree
from .containers import KeyVal, KeyValArray, KeyVals, KeyValsArray
from .estimation import Estimator

KeyCmp = Callable[[Any, Any], int]
KeyCopy = Callable[[Any, int], Any]


def _natural_cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def _by_key(keycmp: KeyCmp):
    return cmp_to_key(lambda a, b: keycmp(a.key, b.key))


def _group_pairs(pairs: Iterable[KeyVal], keycmp: KeyCmp) -> list[KeyVals]:
    """Group unsorted pairs by key; values keep their input order."""
    groups: list[KeyVals] = []
    for kv in sorted(pairs, key=_by_key(keycmp)):
        if groups and keycmp(groups[-1].key, kv.key) == 0:
            groups[-1].vals.append(kv.val)
        else:
            groups.append(KeyVals(kv.key, [kv.val], kv.hash))
    return groups


def _merge_groups(colls: Iterable[Iterable[KeyVals]], keycmp: KeyCmp) -> list[KeyVals]:
    """Merge sorted group collections, joining the values of equal keys."""
    groups: list[KeyVals] = []
    merged = heapq.merge(*(list(c) for c in colls), key=_by_key(keycmp))
    for kvs in merged:
        if groups and keycmp(groups[-1].key, kvs.key) == 0:
            groups[-1].vals.extend(kvs.vals)
        else:
            groups.append(KeyVals(kvs.key, list(kvs.vals), kvs.hash))
    return groups


class _BucketGrid:
    """Common grid handling; subclasses choose the bucket collection."""

    def __init__(self, estimator: Estimator | None = None) -> None:
        self.estimator = estimator
        self.keycmp: KeyCmp = _natural_cmp
        self.keycopy: KeyCopy | None = None
        self.rows = 0
        self.cols = 0
        self._mbks: list[list[Any]] | None = None
        self._bak: list[list[Any] | None] | None = None
        self._map_out: list[Any] = []

    def _new_bucket(self) -> Any:
        raise NotImplementedError

    def _new_output(self) -> Any:
        return KeyValsArray(self.keycmp, self.keycopy)

    def _group_column(self, buckets: list[Any]) -> list[KeyVals]:
        return _merge_groups(buckets, self.keycmp)

    def _set_util(self, keycmp: KeyCmp | None, keycopy: KeyCopy | None) -> None:
        self.keycmp = keycmp or _natural_cmp
        self.keycopy = keycopy

    def _init_grid(self, rows: int, cols: int) -> None:
        if rows < 1 or cols < 1:
            raise ValueError("rows and cols must be positive")
        self.rows, self.cols = rows, cols
        self._mbks = [[self._new_bucket() for _ in range(cols)] for _ in range(rows)]
        self._map_out = [self._new_output() for _ in range(rows * cols)]

    def _grid(self) -> list[list[Any]]:
        if self._mbks is None:
            raise RuntimeError("buckets are not initialised")
        return self._mbks

    def _bucket(self, row: int, hash_: int) -> Any:
        return self._grid()[row][hash_ % self.cols]

    def _put(self, row: int, key: Any, val: Any, keylen: int, hash_: int) -> bool:
        newkey = self._bucket(row, hash_).insert_kv(key, val, keylen, hash_)
        if self.estimator is not None:
            self.estimator.new_pair(row, newkey)
        return newkey

    def _reduce_column(self, col: int) -> list[KeyVals]:
        if self._mbks is None:
            return []
        buckets = [self._mbks[row][col] for row in range(self.rows)]
        groups = self._group_column(buckets)
        for bucket in buckets:
            bucket.clear()
        return groups

    def _backup_grid(self) -> None:
        self._bak = self._mbks
        self._mbks = None
        self.rows = self.cols = 0

    def _rehash_bucket(self, row: int, bucket: Any) -> None:
        for kvs in bucket.drain():
            self._bucket(row, kvs.hash).insert_kvs(kvs)

    def _rehash_row(self, row: int) -> None:
        if self._bak is None or self._bak[row] is None:
            return
        for bucket in self._bak[row]:
            self._rehash_bucket(row, bucket)
            bucket.clear()
        self._bak[row] = None

    def _destroy_grid(self) -> None:
        self._mbks = None
        self._bak = None
        self.rows = self.cols = 0


class AppendBuckets(_BucketGrid):
    """Buckets that append every pair without grouping; needs one column to merge."""

    def __init__(self, estimator: Estimator | None = None, group_before_merge: bool = False) -> None:
        super().__init__(estimator)
        self.group_before_merge = group_before_merge

    def _new_bucket(self) -> KeyValArray:
        return KeyValArray(self.keycopy)

    def _new_output(self) -> Any:
        if self.group_before_merge:
            return KeyValsArray(self.keycmp, self.keycopy)
        return KeyValArray(self.keycopy)

    def _group_column(self, buckets: list[Any]) -> list[KeyVals]:
        return _group_pairs(chain.from_iterable(buckets), self.keycmp)

    def _rehash_bucket(self, row: int, bucket: Any) -> None:
        for kv in list(bucket):
            self._put(row, kv.key, kv.val, 0, kv.hash)

    def init(self, rows: int, cols: int) -> None:
        """Create an empty ``rows`` x ``cols`` grid and its merge outputs."""
        self._init_grid(rows, cols)

    def set_util(self, keycmp: KeyCmp | None, keycopy: KeyCopy | None = None) -> None:
        """Set the key comparator and key copier used by buckets created later."""
        self._set_util(keycmp, keycopy)

    def map_put(self, row: int, key: Any, val: Any, keylen: int = 0, hash_: int = 0) -> bool:
        """Append a pair to row ``row``; every pair counts as a new key."""
        return self._put(row, key, val, keylen, hash_)

    def reduce_task(self, col: int) -> list[KeyVals]:
        """Group column ``col`` of every row by key and empty it."""
        return self._reduce_column(col)

    def get_output(self) -> list[Any]:
        """Collections filled by ``prepare_merge``, one per row."""
        return self._map_out

    def prepare_merge(self, row: int) -> None:
        """Move row ``row`` to the merge output, grouped if so configured."""
        grid = self._grid()
        if self.cols != 1:
            raise ValueError("append buckets merge only with a single column")
        bucket = grid[row][0]
        out = self._map_out[row]
        if self.group_before_merge:
            for group in _group_pairs(bucket, self.keycmp):
                out.append_kvs(group)
        else:
            out.set_elems(bucket.elems)
        bucket.clear()

    def backup(self) -> None:
        """Set the current grid aside so it can be rehashed into a new one."""
        self._backup_grid()

    def rehash_backup(self, row: int) -> None:
        """Move the backed-up row ``row`` into the current grid."""
        self._rehash_row(row)


class ArrayBuckets(_BucketGrid):
    """Buckets holding key-sorted arrays of groups."""

    def _new_bucket(self) -> KeyValsArray:
        return KeyValsArray(self.keycmp, self.keycopy)

    def init(self, rows: int, cols: int) -> None:
        """Create an empty ``rows`` x ``cols`` grid and its merge outputs."""
        self._init_grid(rows, cols)

    def set_util(self, keycmp: KeyCmp | None, keycopy: KeyCopy | None = None) -> None:
        """Set the key comparator and key copier used by buckets created later."""
        self._set_util(keycmp, keycopy)

    def map_put(self, row: int, key: Any, val: Any, keylen: int = 0, hash_: int = 0) -> bool:
        """Store a pair in row ``row``, column ``hash_ % cols``; return whether the key was new."""
        return self._put(row, key, val, keylen, hash_)

    def reduce_task(self, col: int) -> list[KeyVals]:
        """Collect column ``col`` from every row as key-sorted groups and empty it."""
        return self._reduce_column(col)

    def get_output(self) -> list[Any]:
        """Collections filled by ``prepare_merge``, row-major."""
        return self._map_out

    def prepare_merge(self, row: int) -> None:
        """Move every column of row ``row`` to the merge output."""
        for col, bucket in enumerate(self._grid()[row]):
            self._map_out[row * self.cols + col].set_elems(bucket.elems)
            bucket.clear()

    def backup(self) -> None:
        """Set the current grid aside so it can be rehashed into a new one."""
        self._backup_grid()

    def rehash_backup(self, row: int) -> None:
        """Move the backed-up row ``row`` into the current grid."""
        self._rehash_row(row)

    def destroy(self) -> None:
        """Drop the grid and any backup."""
        self._destroy_grid()


class BTreeBuckets(_BucketGrid):
    """Buckets holding a B+ tree of groups each."""

    def _new_bucket(self) -> KeyValsBTree:
        return KeyValsBTree(self.keycmp, self.keycopy)

    def init(self, rows: int, cols: int) -> None:
        """Create an empty ``rows`` x ``cols`` grid and its merge outputs."""
        self._init_grid(rows, cols)

    def set_util(self, keycmp: KeyCmp | None, keycopy: KeyCopy | None = None) -> None:
        """Set the key comparator and key copier used by buckets created later."""
        self._set_util(keycmp, keycopy)

    def map_put(self, row: int, key: Any, val: Any, keylen: int = 0, hash_: int = 0) -> bool:
        """Store a pair in row ``row``, column ``hash_ % cols``; return whether the key was new."""
        return self._put(row, key, val, keylen, hash_)

    def reduce_task(self, col: int) -> list[KeyVals]:
        """Collect column ``col`` from every row as key-sorted groups and empty it."""
        return self._reduce_column(col)

    def get_output(self) -> list[Any]:
        """Collections filled by ``prepare_merge``, row-major."""
        return self._map_out

    def prepare_merge(self, row: int) -> None:
        """Copy every column of row ``row`` into the merge output."""
        for col, bucket in enumerate(self._grid()[row]):
            self._map_out[row * self.cols + col].set_elems(bucket.copy_kvs())

    def backup(self) -> None:
        """Set the current grid aside so it can be rehashed into a new one."""
        self._backup_grid()

    def rehash_backup(self, row: int) -> None:
        """Move the backed-up row ``row`` into the current grid."""
        self._rehash_row(row)

    def destroy(self) -> None:
        """Drop the grid and any backup."""
        self._destroy_grid()