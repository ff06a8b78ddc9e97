"""Square integer matrix multiplication split into map-only tasks."""

from __future__ import annotations

import argparse
import os
import random
import sys
import threading
from collections.abc import Iterator, MutableSequence, Sequence
from functools import partial

from .engine import Application, AppType, run_job
from .splitter import DEF_NSPLITS_PER_CORE

DEF_BLOCK_LEN = 32
RAND_MAX = 2**31 - 1

Matrix = Sequence[Sequence[int]]


def _wrap32(value: int) -> int:
    """Reduce to a signed 32-bit integer, wrapping on overflow."""
    return ((value + 2**31) % 2**32) - 2**31


def _loc_cmp(k1: tuple[int, int], k2: tuple[int, int]) -> int:
    return (k1 > k2) - (k1 < k2)


class BlockSplitter:
    """Hands out ``(start_row, start_col, block_len)`` output blocks, row by row."""

    def __init__(self, n: int, block_len: int = DEF_BLOCK_LEN) -> None:
        if n < 0:
            raise ValueError("n must not be negative")
        if block_len < 1:
            raise ValueError("block_len must be positive")
        self.n = n
        self.block_len = block_len
        self.startrow = 0
        self.startcol = 0
        self._lock = threading.Lock()

    def next_split(self, ncores: int) -> tuple[int, int, int] | None:
        """Return the next block, or ``None`` once every row is covered."""
        with self._lock:
            if self.startrow >= self.n:
                return None
            block = (self.startrow, self.startcol, self.block_len)
            self.startcol += self.block_len
            if self.startcol > self.n:
                self.startrow += self.block_len
                self.startcol = 0
            return block

    def __iter__(self) -> Iterator[tuple[int, int, int]]:
        ncores = os.cpu_count() or 1
        while (split := self.next_split(ncores)) is not None:
            yield split


class RowSplitter:
    """Hands out ``(start_row, row_count)`` runs of whole rows."""

    def __init__(self, n: int, nsplits: int = 0) -> None:
        if n < 0:
            raise ValueError("n must not be negative")
        if nsplits < 0:
            raise ValueError("nsplits must not be negative")
        self.n = n
        self.nsplits = nsplits
        self.row_num = 0
        self._lock = threading.Lock()

    def next_split(self, ncores: int) -> tuple[int, int] | None:
        """Return the next run of rows, or ``None`` at the end of the matrix."""
        with self._lock:
            if self.nsplits == 0:
                if ncores < 1:
                    raise ValueError("ncores must be positive")
                self.nsplits = ncores * DEF_NSPLITS_PER_CORE
            split_size = max(self.n // self.nsplits, 1)
            if self.row_num >= self.n:
                return None
            count = min(split_size, self.n - self.row_num)
            start = self.row_num
            self.row_num += count
            return start, count

    def __iter__(self) -> Iterator[tuple[int, int]]:
        ncores = os.cpu_count() or 1
        while (split := self.next_split(ncores)) is not None:
            yield split


def matrixmult_map(
    block: tuple[int, int, int],
    a: Matrix,
    b: Matrix,
    out: MutableSequence[MutableSequence[int]],
    n: int,
) -> None:
    """Add the products for one output block into ``out``, block by block along k."""
    i, j, block_len = block
    cols = range(j, min(j + block_len, n))
    rows = range(i, min(i + block_len, n))
    for k in range(0, n, block_len):
        ks = range(k, min(k + block_len, n))
        for r in rows:
            row_a = a[r]
            row_out = out[r]
            for col in cols:
                partial_sum = sum(row_a[c] * b[c][col] for c in ks)
                row_out[col] = _wrap32(row_out[col] + partial_sum)


def matrixmult_map2(
    rows: tuple[int, int],
    a: Matrix,
    b: Matrix,
    out: MutableSequence[MutableSequence[int]],
    n: int,
) -> None:
    """Compute whole output rows ``start .. start + count - 1``."""
    start, count = rows
    for x in range(start, start + count):
        row_a = a[x]
        out[x] = [
            _wrap32(sum(row_a[j] * b[j][i] for j in range(n))) for i in range(n)
        ]


def multiply(
    a: Matrix, b: Matrix, n: int, block_based: bool = True, map_tasks: int = 0
) -> list[list[int]]:
    """Multiply two ``n`` x ``n`` matrices with signed 32-bit wrap-around."""
    if n < 0:
        raise ValueError("n must not be negative")
    for m in (a, b):
        if len(m) != n or any(len(row) != n for row in m):
            raise ValueError("matrices must be n x n")
    out = [[0] * n for _ in range(n)]
    if block_based:
        splitter: BlockSplitter | RowSplitter = BlockSplitter(n)
        map_func = partial(matrixmult_map, a=a, b=b, out=out, n=n)
    else:
        splitter = RowSplitter(n, map_tasks)
        map_func = partial(matrixmult_map2, a=a, b=b, out=out, n=n)
    app = Application(map_func=map_func, atype=AppType.MAPONLY, key_cmp=_loc_cmp)
    run_job(app, splitter, 0, 0)
    return out


def random_matrix(n: int, rng: random.Random) -> list[list[int]]:
    """``n`` x ``n`` matrix of random values in ``[0, RAND_MAX]``."""
    return [[rng.randint(0, RAND_MAX) for _ in range(n)] for _ in range(n)]


def _nonneg(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError("value must not be negative")
    return value


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="matrix_mult")
    parser.add_argument("-p", dest="nprocs", type=_nonneg, default=0, help="# of processors to use")
    parser.add_argument("-m", dest="map_tasks", type=int, default=0, help="# of map tasks")
    parser.add_argument("-q", dest="quiet", action="store_true", help="quiet output")
    parser.add_argument("-l", dest="matrix_len", type=int, default=0, help="matrix dimension (square)")
    return parser


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = _parser()
    if not argv:
        parser.print_usage()
        return 1
    args = parser.parse_args(argv)
    n = args.matrix_len
    if n <= 0:
        parser.print_usage()
        return 1
    rng = random.Random()
    a = random_matrix(n, rng)
    b = random_matrix(n, rng)
    out = multiply(a, b, n, True, args.map_tasks)
    if not args.quiet:
        parts = ["First row of the output matrix:\n"]
        parts.extend(f"{v}\t" for v in out[0])
        parts.append("\nLast row of the output matrix:\n")
        parts.extend(f"{v}\t" for v in out[n - 1])
        parts.append("\n")
        sys.stdout.write("".join(parts))
    return 0


if __name__ == "__main__":
    sys.exit(main())