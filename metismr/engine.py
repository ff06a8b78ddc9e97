"""Key/value store and a sequential driver for map/reduce jobs."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from functools import cmp_to_key
from itertools import chain
from typing import Any

from .buckets import (
    AppendBuckets,
    ArrayBuckets,
    BTreeBuckets,
    _group_pairs,
    _merge_groups,
)
from .containers import KeyValArray, KeyVals, KeyValsLenArray
from .estimation import NKEYS_PER_BKT, Estimator
from .mergesort import mergesort

_APPEND, _BTREE, _ARRAY = "append", "btree", "array"
_DEFAULT_MANAGER = _BTREE
_SAMPLE_COLS = 1


def _natural_cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


class AppType(Enum):
    MAPREDUCE = "mapreduce"
    MAPGROUP = "mapgroup"
    MAPONLY = "maponly"


@dataclass
class Application:
    """Description of a job.

    ``map_func(split)`` yields ``(key, val)`` or ``(key, val, keylen)``.
    ``combiner(key, vals)`` returns the new list of values,
    ``reduce_func(key, vals)`` returns the value to emit and
    ``vm(oldv, newv, isnew)`` folds values one at a time.
    """

    map_func: Callable[[Any], Iterable[tuple]]
    atype: AppType = AppType.MAPREDUCE
    reduce_func: Callable[[Any, list], Any] | None = None
    combiner: Callable[[Any, list], list] | None = None
    vm: Callable[[Any, Any, bool], Any] | None = None
    key_cmp: Callable[[Any, Any], int] | None = None
    keycopy: Callable[[Any, int], Any] | None = None
    part_func: Callable[[Any, int], int] | None = None
    outcmp: Callable[[Any, Any], int] | None = None

    def __post_init__(self) -> None:
        if not callable(self.map_func):
            raise TypeError("map_func must be callable")
        if self.vm is not None and (self.reduce_func is not None or self.combiner is not None):
            raise ValueError("a value modifier excludes reduce_func and combiner")


def default_hash(key: Any) -> int:
    """32-bit djb2 hash of the key's bytes."""
    if isinstance(key, str):
        data = key.encode("utf-8")
    elif isinstance(key, (bytes, bytearray)):
        data = bytes(key)
    elif isinstance(key, int):
        data = key.to_bytes(8, "little", signed=key < 0) if -(1 << 63) <= key < (1 << 64) else repr(key).encode()
    else:
        data = repr(key).encode("utf-8")
    h = 5381
    for b in data:
        h = (h * 33 + b) & 0xFFFFFFFF
    return h


class KeyValueStore:
    """Holds map buckets and reduce buckets for one application run."""

    def __init__(self, app: Application) -> None:
        self.app = app
        self.estimator = Estimator()
        self._keycmp = app.key_cmp or _natural_cmp
        self._keycopy = app.keycopy
        self._mgrs = {
            _APPEND: AppendBuckets(self.estimator),
            _BTREE: BTreeBuckets(self.estimator),
            _ARRAY: ArrayBuckets(self.estimator),
        }
        self._mgr = self._mgrs[_DEFAULT_MANAGER]
        self._nrows = 0
        self._ncols = 0
        self._has_backup = False
        self._sampling = False
        self._reduce_buckets: list[Any] = []
        self._reduce_col = 0

    def _pair_cmp(self, a: Any, b: Any) -> int:
        return self._keycmp(a.key, b.key)

    def _set_manager(self, kind: str) -> None:
        self._mgr = self._mgrs[kind]
        self._mgr.set_util(self._keycmp, self._keycopy)

    def _new_reduce_bucket(self) -> Any:
        if self.app.atype is AppType.MAPGROUP:
            return KeyValsLenArray()
        return KeyValArray()

    def set_util(self, keycmp: Callable[[Any, Any], int] | None, keycopy: Callable[[Any, int], Any] | None) -> None:
        """Set the key comparator and key copier."""
        self._keycmp = keycmp or _natural_cmp
        self._keycopy = keycopy

    def sample_init(self, rows: int, cols: int) -> None:
        """Prepare for a sampling map phase."""
        self._has_backup = False
        self._set_manager(_DEFAULT_MANAGER)
        self._mgr.init(rows, cols)
        self._nrows, self._ncols = rows, cols
        self.estimator.reset()
        self._sampling = True

    def sample_finished(self, ntotal: int) -> int:
        """End sampling; return the estimated number of reduce tasks."""
        finished = [row for row in range(self._nrows) if self.estimator.finished(row)]
        if not finished:
            raise RuntimeError("no map task finished during sampling")
        nkeys = npairs = 0
        for row in finished:
            k, p = self.estimator.estimate(row, ntotal)
            nkeys += k
            npairs += p
        nkeys //= len(finished)
        self._mgr.backup()
        self._has_backup = True
        ntasks = nkeys // NKEYS_PER_BKT
        while any(ntasks % q == 0 for q in range(2, ntasks) if q * q <= ntasks):
            ntasks += 1
        self._sampling = False
        return ntasks

    def init(self, rows: int, cols: int, nsplits: int) -> None:
        """Prepare map buckets and ``nsplits`` reduce buckets."""
        self._nrows, self._ncols = rows, cols
        if self.app.atype is AppType.MAPONLY:
            self._set_manager(_APPEND)
        else:
            self._set_manager(_DEFAULT_MANAGER)
        self._mgr.init(rows, cols)
        self._reduce_buckets = [self._new_reduce_bucket() for _ in range(max(nsplits, 1))]
        self._reduce_col = 0

    def map_worker_init(self, row: int) -> None:
        """Pull the sampled pairs of ``row`` into the new grid."""
        if self._has_backup:
            if self.app.atype is AppType.MAPONLY:
                raise RuntimeError("map-only jobs do not sample")
            self._mgr.rehash_backup(row)

    def map_task_finished(self, row: int) -> None:
        if self._sampling:
            self.estimator.task_finished(row)

    def map_put(self, row: int, key: Any, val: Any, keylen: int = 0, hash_: int = 0) -> bool:
        return self._mgr.map_put(row, key, val, keylen, hash_)

    def map_worker_finished(self, row: int, reduce_skipped: bool) -> None:
        if reduce_skipped:
            if self._sampling:
                raise RuntimeError("cannot skip reduce while sampling")
            self._mgr.prepare_merge(row)

    def _reduce_group(self, kvs: KeyVals) -> None:
        app = self.app
        if app.atype is AppType.MAPGROUP:
            self.reduce_put(kvs.key, kvs.vals)
            return
        vals = kvs.vals
        if app.vm is not None:
            acc = None
            for i, v in enumerate(vals):
                acc = app.vm(acc, v, i == 0)
            self.reduce_put(kvs.key, acc)
            return
        if app.combiner is not None:
            vals = list(app.combiner(kvs.key, vals))
        if app.reduce_func is not None:
            self.reduce_put(kvs.key, app.reduce_func(kvs.key, vals))
        else:
            for v in vals:
                self.reduce_put(kvs.key, v)

    def reduce_do_task(self, row: int, col: int) -> None:
        """Reduce column ``col`` of the map grid into reduce bucket ``col``."""
        if self.app.atype is AppType.MAPONLY:
            raise RuntimeError("map-only jobs have no reduce phase")
        while len(self._reduce_buckets) <= col:
            self._reduce_buckets.append(self._new_reduce_bucket())
        self._reduce_col = col
        for group in self._mgr.reduce_task(col):
            self._reduce_group(group)

    def reduce_put(self, key: Any, val: Any) -> None:
        bucket = self._reduce_buckets[self._reduce_col]
        if self.app.atype is AppType.MAPGROUP:
            bucket.insert_kvslen(key, val, len(val))
        else:
            bucket.insert_kv(key, val)

    def merge(self, ncpus: int, lcpu: int, reduce_skipped: bool) -> None:
        """Worker ``lcpu`` of ``ncpus`` merges its share of the results."""
        if ncpus < 1 or lcpu < 0:
            raise ValueError("invalid worker layout")
        while len(self._reduce_buckets) <= lcpu:
            self._reduce_buckets.append(self._new_reduce_bucket())
        maponly = self.app.atype is AppType.MAPONLY
        if maponly or reduce_skipped:
            self._reduce_col = lcpu
            mine = self._mgr.get_output()[lcpu::ncpus]
            if maponly:
                pairs = sorted(chain.from_iterable(mine), key=cmp_to_key(self._pair_cmp))
                for kv in pairs:
                    self.reduce_put(kv.key, kv.val)
            else:
                if any(isinstance(c, KeyValArray) for c in mine):
                    groups = _group_pairs(chain.from_iterable(mine), self._keycmp)
                else:
                    groups = _merge_groups(mine, self._keycmp)
                for group in groups:
                    self._reduce_group(group)
            for coll in mine:
                coll.clear()
        mergesort(self._reduce_buckets, ncpus, lcpu, self._pair_cmp)

    def results(self) -> list:
        """Final pairs, sorted by key or by the application's ``outcmp``."""
        if not self._reduce_buckets:
            return []
        if len(self._reduce_buckets) > 1:
            mergesort(self._reduce_buckets, 1, 0, self._pair_cmp)
        out = list(self._reduce_buckets[0])
        if self.app.outcmp is not None:
            out.sort(key=cmp_to_key(self.app.outcmp))
        return out


def _iter_splits(splitter: Any, ncores: int) -> list:
    if hasattr(splitter, "next_split"):
        splits = []
        while (split := splitter.next_split(ncores)) is not None:
            splits.append(split)
        return splits
    return list(splitter)


def _emit(store: KeyValueStore, app: Application, row: int, split: Any) -> None:
    for item in app.map_func(split) or ():
        if len(item) == 3:
            key, val, keylen = item
        else:
            key, val = item
            keylen = len(key) if isinstance(key, (str, bytes, bytearray)) else 0
        hash_ = app.part_func(key, keylen) if app.part_func else default_hash(key)
        store.map_put(row, key, val, keylen, hash_)
    store.map_task_finished(row)


def run_job(app: Application, splitter: Any, nprocs: int = 0, reduce_tasks: int = 0) -> list:
    """Run ``app`` over the splits from ``splitter`` and return its results.

    With ``reduce_tasks`` zero the number of reduce tasks is estimated by
    sampling the first split of every map worker.
    """
    if nprocs < 0 or reduce_tasks < 0:
        raise ValueError("nprocs and reduce_tasks must not be negative")
    rows = nprocs or os.cpu_count() or 1
    store = KeyValueStore(app)
    splits = _iter_splits(splitter, rows)

    if app.atype is AppType.MAPONLY:
        store.init(rows, 1, 1)
        for i, split in enumerate(splits):
            _emit(store, app, i % rows, split)
        for row in range(rows):
            store.map_worker_finished(row, True)
        store.merge(1, 0, True)
        return store.results()

    done = 0
    if reduce_tasks == 0 and splits:
        store.sample_init(rows, _SAMPLE_COLS)
        done = min(rows, len(splits))
        for row in range(done):
            _emit(store, app, row, splits[row])
        reduce_tasks = max(store.sample_finished(len(splits)), 1)
    cols = max(reduce_tasks, 1)
    store.init(rows, cols, cols)
    for row in range(rows):
        store.map_worker_init(row)
    for i, split in enumerate(splits[done:], start=done):
        _emit(store, app, i % rows, split)
    for row in range(rows):
        store.map_worker_finished(row, False)
    for col in range(cols):
        store.reduce_do_task(col % rows, col)
    store.merge(1, 0, False)
    return store.results()