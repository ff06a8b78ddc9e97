import random
from collections import Counter

import pytest

from metismr.containers import (
    KeyVal,
    KeyValArray,
    KeyVals,
    KeyValsArray,
    KeyValsLenArray,
)


def test_keyval_array_appends_in_order():
    arr = KeyValArray()
    pairs = [("b", 1), ("a", 2), ("b", 3)]
    for k, v in pairs:
        assert arr.insert_kv(k, v) is True
    assert [(kv.key, kv.val) for kv in arr] == pairs
    assert len(arr) == len(pairs)


def test_keyval_array_keycopy_and_hash():
    arr = KeyValArray(keycopy=lambda k, n: k[:n].upper())
    arr.insert_kv("hello", 1, 3, 42)
    arr.insert_kv("world", 2, 0, 7)
    assert list(arr) == [KeyVal("HEL", 1, 42), KeyVal("world", 2, 7)]


def test_keyval_array_set_and_clear():
    arr = KeyValArray()
    arr.set_elems([KeyVal("x", 1)])
    assert len(arr) == 1
    arr.clear()
    assert len(arr) == 0


def test_keyvals_array_groups_and_sorts():
    rng = random.Random(5)
    keys = [rng.randrange(50) for _ in range(300)]
    arr = KeyValsArray()
    seen = set()
    for i, k in enumerate(keys):
        assert arr.insert_kv(k, i) == (k not in seen)
        seen.add(k)
    assert [kvs.key for kvs in arr] == sorted(seen)
    counts = Counter(keys)
    assert all(len(kvs.vals) == counts[kvs.key] for kvs in arr)


def test_keyvals_array_custom_comparator_and_keycopy():
    arr = KeyValsArray(keycmp=lambda a, b: (a < b) - (a > b), keycopy=lambda k, n: k[:n])
    for w in ["pear", "apple", "fig"]:
        arr.insert_kv(w, 1, len(w), 0)
    assert [kvs.key for kvs in arr] == ["pear", "fig", "apple"]


def test_keyvals_array_insert_kvs_rejects_duplicates():
    arr = KeyValsArray()
    arr.insert_kvs(KeyVals("a", [1]))
    arr.insert_kvs(KeyVals("c", [2]))
    arr.insert_kvs(KeyVals("b", [3]))
    assert [kvs.key for kvs in arr] == ["a", "b", "c"]
    with pytest.raises(ValueError):
        arr.insert_kvs(KeyVals("b", [4]))


def test_keyvals_array_append_keeps_insertion_order():
    arr = KeyValsArray()
    arr.append_kvs(KeyVals("z"))
    arr.append_kvs(KeyVals("a"))
    assert [kvs.key for kvs in arr] == ["z", "a"]


def test_keyvals_array_drain_empties():
    arr = KeyValsArray()
    for k in "dcba":
        arr.insert_kv(k, k)
    drained = list(arr.drain())
    assert [kvs.key for kvs in drained] == sorted("dcba")
    assert len(arr) == 0


def test_keyvals_len_array():
    arr = KeyValsLenArray()
    arr.insert_kvslen("k", ["v1", "v2"], 2)
    arr.insert_kvslen("j", ["v3"], 1)
    assert [(e.key, e.length) for e in arr] == [("k", 2), ("j", 1)]
    assert sum(e.length for e in arr) == sum(len(e.vals) for e in arr)
    arr.clear()
    assert len(arr) == 0