import pytest

from metismr.containers import KeyVal, KeyValArray
from metismr.mergesort import mergesort


def _cmp(a, b):
    return (a.key > b.key) - (a.key < b.key)


def _coll(pairs):
    coll = KeyValArray()
    coll.set_elems(KeyVal(k, v) for k, v in pairs)
    return coll


def test_merges_all_into_first():
    colls = [_coll([(1, "a"), (5, "b")]), _coll([(2, "c"), (3, "d")]), _coll([(4, "e")])]
    merged = mergesort(colls, 1, 0, _cmp)
    keys = [kv.key for kv in merged]
    assert keys == sorted(keys)
    assert [kv.key for kv in colls[0]] == keys
    assert len(colls[1]) == 0 and len(colls[2]) == 0
    assert len(merged) == 5


def test_worker_share_only():
    colls = [_coll([(9, "x")]), _coll([(3, "a")]), _coll([(8, "y")]), _coll([(1, "b")])]
    merged = mergesort(colls, 2, 1, _cmp)
    assert [kv.key for kv in merged] == [1, 3]
    assert [kv.key for kv in colls[1]] == [1, 3]
    assert len(colls[3]) == 0
    assert [kv.key for kv in colls[0]] == [9]
    assert [kv.key for kv in colls[2]] == [8]


def test_ties_keep_collection_order():
    colls = [_coll([(1, "first")]), _coll([(1, "second")])]
    merged = mergesort(colls, 1, 0, _cmp)
    assert [kv.val for kv in merged] == ["first", "second"]


def test_empty_returns_nothing():
    colls = [KeyValArray(), KeyValArray()]
    assert mergesort(colls, 1, 0, _cmp) == []
    assert len(colls[0]) == 0


def test_invalid_ncpus():
    with pytest.raises(ValueError):
        mergesort([KeyValArray()], 0, 0, _cmp)