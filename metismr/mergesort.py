"""K-way merge of sorted pair collections, shared out between workers."""

from __future__ import annotations

import heapq
from collections.abc import Callable, MutableSequence
from functools import cmp_to_key
from typing import Any

PairCmp = Callable[[Any, Any], int]


def mergesort(colls: MutableSequence[Any], ncpus: int, lcpu: int, pcmp: PairCmp) -> list:
    """Merge the collections that belong to worker ``lcpu``.

    Worker ``lcpu`` owns ``colls[lcpu]``, ``colls[lcpu + ncpus]`` and so on.
    Each must already be sorted by ``pcmp``. Those collections are emptied
    and the merged pairs are stored in ``colls[lcpu]``. When pairs compare
    equal, the ones from the earlier collection come first. Returns the
    merged pairs.
    """
    if ncpus < 1:
        raise ValueError("ncpus must be positive")
    if lcpu < 0:
        raise ValueError("lcpu must not be negative")
    mine = list(colls[lcpu::ncpus])
    if sum(len(c) for c in mine) == 0:
        return []
    merged = list(heapq.merge(*(list(c) for c in mine), key=cmp_to_key(pcmp)))
    for coll in mine:
        coll.clear()
    colls[lcpu].set_elems(merged)
    return merged