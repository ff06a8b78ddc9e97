"""Binary search over sorted sequences using C-style three-way comparators."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

T = TypeVar("T")

Comparator = Callable[[Any, Any], int]


def bsearch_lar(key: Any, elems: Sequence[T], keycmp: Comparator) -> int:
    """Return the position of the first element greater than ``key``.

    ``keycmp(key, elem)`` must return a negative, zero or positive number.
    """
    lo, hi = 0, len(elems)
    while lo < hi:
        mid = (lo + hi) // 2
        if keycmp(key, elems[mid]) >= 0:
            lo = mid + 1
        else:
            hi = mid
    return lo


def bsearch_eq(key: Any, elems: Sequence[T], keycmp: Comparator) -> tuple[int, bool]:
    """Find ``key`` in ``elems``.

    Returns ``(position, found)``. When found, ``position`` is the index of an
    equal element; otherwise it is where ``key`` would be inserted to keep the
    sequence sorted.
    """
    lo, hi = 0, len(elems)
    while lo < hi:
        mid = (lo + hi) // 2
        res = keycmp(key, elems[mid])
        if res == 0:
            return mid, True
        if res < 0:
            hi = mid
        else:
            lo = mid + 1
    return lo, False