import bisect

import pytest

from metismr.bsearch import bsearch_eq, bsearch_lar


def _cmp(a, b):
    return (a > b) - (a < b)


SORTED = [1, 3, 5, 7, 9, 11]


@pytest.mark.parametrize("key", range(0, 13))
def test_lar_matches_bisect_right(key):
    assert bsearch_lar(key, SORTED, _cmp) == bisect.bisect_right(SORTED, key)


@pytest.mark.parametrize("key", range(0, 13))
def test_eq_matches_bisect_left(key):
    pos, found = bsearch_eq(key, SORTED, _cmp)
    assert found == (key in SORTED)
    assert pos == bisect.bisect_left(SORTED, key)


def test_empty_sequence():
    assert bsearch_lar(4, [], _cmp) == 0
    assert bsearch_eq(4, [], _cmp) == (0, False)


@pytest.mark.parametrize("n", [1, 2, 3, 4, 7, 16])
def test_all_sizes_consistent(n):
    elems = list(range(0, 2 * n, 2))
    for key in range(-1, 2 * n + 1):
        pos = bsearch_lar(key, elems, _cmp)
        assert all(e <= key for e in elems[:pos])
        assert all(e > key for e in elems[pos:])
        epos, found = bsearch_eq(key, elems, _cmp)
        if found:
            assert elems[epos] == key
        else:
            assert all(e < key for e in elems[:epos])
            assert all(e > key for e in elems[epos:])


def test_comparator_against_records():
    records = [{"k": name} for name in ["ant", "bee", "cat", "dog"]]

    def keycmp(key, rec):
        return _cmp(key, rec["k"])

    pos, found = bsearch_eq("cat", records, keycmp)
    assert found
    assert records[pos]["k"] == "cat"
    pos, found = bsearch_eq("cow", records, keycmp)
    assert not found
    assert records[pos]["k"] == "dog"


def test_descending_comparator():
    elems = [9, 7, 5, 3]

    def rev(a, b):
        return _cmp(b, a)

    pos = bsearch_lar(6, elems, rev)
    assert elems[:pos] == [e for e in elems if e >= 6]