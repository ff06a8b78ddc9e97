"""Per-mapper estimation of the number of keys and pairs emitted."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

EST_INTERVAL = 1000
NKEYS_PER_BKT = 10


@dataclass
class _RowState:
    cur_nkeys: int = 0
    cur_npairs: int = 0
    last_nkeys: int = 0
    last_npairs: int = 0
    key_rate: int = 0
    pair_rate: int = 0
    nsampled: int = 0


class Estimator:
    """Tracks emission rates for each map worker row during sampling."""

    def __init__(self) -> None:
        self._rows: defaultdict[int, _RowState] = defaultdict(_RowState)

    def reset(self) -> None:
        """Forget all collected statistics."""
        self._rows.clear()

    def _interval_passed(self, st: _RowState) -> None:
        if st.last_nkeys == 0:
            st.key_rate = st.cur_nkeys
        else:
            st.key_rate = st.key_rate // 2 + (st.cur_nkeys - st.last_nkeys) // 2
        st.last_nkeys = st.cur_nkeys

    def new_pair(self, row: int, newkey: bool) -> None:
        """Record one emitted pair; ``newkey`` tells whether its key was new."""
        st = self._rows[row]
        if newkey:
            st.cur_nkeys += 1
        st.cur_npairs += 1
        if st.cur_npairs % EST_INTERVAL == 0:
            self._interval_passed(st)

    def task_finished(self, row: int) -> None:
        """Record the end of a sampled map task."""
        st = self._rows[row]
        if st.last_npairs == 0:
            st.pair_rate = st.cur_npairs
        else:
            st.pair_rate = st.pair_rate // 2 + (st.cur_npairs - st.last_npairs) // 2
        st.last_npairs = st.cur_npairs
        st.nsampled += 1

    def estimate(self, row: int, ntotal: int) -> tuple[int, int]:
        """Return ``(nkeys, npairs)`` expected once ``ntotal`` tasks have run."""
        st = self._rows[row]
        npairs = st.pair_rate * (ntotal - st.nsampled) + st.cur_npairs
        nkeys = st.key_rate * (npairs - st.cur_npairs) // EST_INTERVAL + st.cur_nkeys
        return nkeys, npairs

    def finished(self, row: int) -> int:
        """Number of sampled tasks finished by ``row``."""
        return self._rows[row].nsampled