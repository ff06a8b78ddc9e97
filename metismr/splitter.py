"""Default splitter that cuts a sequence into aligned chunks."""

from __future__ import annotations

import os
import threading
from collections.abc import Iterator, Sequence
from typing import Any

DEF_NSPLITS_PER_CORE = 16


class DefaultSplitter:
    """Hands out consecutive slices of ``data`` whose sizes are multiples of ``align``.

    When ``nsplits`` is zero it is chosen on the first call as
    ``ncores * DEF_NSPLITS_PER_CORE``. A split is never smaller than
    ``align`` so small inputs still make progress.
    """

    def __init__(self, data: Sequence[Any], nsplits: int = 0, align: int = 1) -> None:
        if align <= 0:
            raise ValueError("align must be positive")
        if nsplits < 0:
            raise ValueError("nsplits must not be negative")
        if len(data) % align != 0:
            raise ValueError("data size must be a multiple of align")
        self.data = data
        self.nsplits = nsplits
        self.align = align
        self.split_pos = 0
        self._lock = threading.Lock()

    def next_split(self, ncores: int) -> Sequence[Any] | None:
        """Return the next slice, or ``None`` when the data is exhausted."""
        with self._lock:
            size = len(self.data)
            if self.split_pos >= size:
                return None
            if self.nsplits == 0:
                if ncores < 1:
                    raise ValueError("ncores must be positive")
                self.nsplits = ncores * DEF_NSPLITS_PER_CORE
            split_size = size // self.nsplits
            split_size -= split_size % self.align
            split_size = max(split_size, self.align)
            start = self.split_pos
            self.split_pos += split_size
            return self.data[start:start + split_size]

    def __iter__(self) -> Iterator[Sequence[Any]]:
        ncores = os.cpu_count() or 1
        while (split := self.next_split(ncores)) is not None:
            yield split