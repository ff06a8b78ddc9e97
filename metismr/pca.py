"""Row means and covariance matrix of an integer matrix as map/reduce jobs."""

from __future__ import annotations

import argparse
import os
import random
import sys
from collections.abc import Sequence
from functools import partial

from .engine import Application, AppType, run_job
from .splitter import DEF_NSPLITS_PER_CORE

DEF_GRID_SIZE = 100
DEF_NUM_ROWS = 10
DEF_NUM_COLS = 10
_INT_SIZE = 4

Matrix = Sequence[Sequence[int]]


def _cdiv(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


def _nsplits(nsplits: int, ncores: int) -> int:
    if nsplits < 0:
        raise ValueError("nsplits must not be negative")
    if nsplits == 0:
        if ncores < 1:
            raise ValueError("ncores must be positive")
        return ncores * DEF_NSPLITS_PER_CORE
    return nsplits


def generate_points(rows: int, cols: int, grid_size: int, rng: random.Random) -> list[list[int]]:
    """Matrix of ``rows`` x ``cols`` random values in ``[0, grid_size)``."""
    if grid_size <= 0:
        raise ValueError("grid_size must be positive")
    return [[rng.randrange(grid_size) for _ in range(cols)] for _ in range(rows)]


def mean_splitter(matrix: Matrix, nsplits: int, ncores: int) -> list[tuple[int, list]]:
    """Cut the matrix into ``(start_row, rows)`` chunks of equal row counts."""
    num_rows = len(matrix)
    num_cols = len(matrix[0]) if matrix else 0
    if num_cols == 0:
        raise ValueError("matrix must have columns")
    n = _nsplits(nsplits, ncores)
    unit_size = _INT_SIZE * num_cols
    req_units = num_rows * num_cols * _INT_SIZE // n // unit_size
    if req_units == 0:
        raise ValueError("too many splits for the matrix size")
    return [
        (start, [list(r) for r in matrix[start:start + req_units]])
        for start in range(0, num_rows, req_units)
    ]


def mean_map(split: tuple[int, Sequence[Sequence[int]]], num_cols: int) -> list[tuple[int, int]]:
    """Emit ``(row_index, mean)`` for every row of the chunk."""
    start_row, rows = split
    return [
        (start_row + i, _cdiv(sum(row[:num_cols]), num_cols))
        for i, row in enumerate(rows)
    ]


def cov_splitter(num_rows: int, nsplits: int, ncores: int) -> list[list[tuple[int, int]]]:
    """Share the upper-triangle cells ``(i, j)`` with ``j >= i`` between map tasks."""
    n = _nsplits(nsplits, ncores)
    ncells = (num_rows * num_rows - num_rows) // 2 + num_rows
    req_units = ncells // n
    if req_units == 0:
        raise ValueError("too many splits for the matrix size")
    cells = [(i, j) for i in range(num_rows) for j in range(i, num_rows)]
    return [cells[k:k + req_units] for k in range(0, len(cells), req_units)]


def cov_map(
    split: Sequence[tuple[int, int]], matrix: Matrix, means: Sequence[int]
) -> list[tuple[tuple[int, int], int]]:
    """Emit ``((i, j), covariance)`` for every cell of the split."""
    num_rows = len(matrix)
    if num_rows < 2:
        raise ValueError("covariance needs at least two rows")
    out = []
    for start_idx, cov_idx in split:
        if cov_idx < start_idx:
            raise ValueError("covariance cell below the diagonal")
        start_row = matrix[start_idx]
        cov_row = matrix[cov_idx]
        m1, m2 = means[start_idx], means[cov_idx]
        total = sum((a - m1) * (b - m2) for a, b in zip(start_row, cov_row))
        out.append(((start_idx, cov_idx), _cdiv(total, num_rows - 1)))
    return out


def _ident_reduce(key, vals: list):
    if len(vals) != 1:
        raise RuntimeError(f"expected one value for key {key!r}, got {len(vals)}")
    return vals[0]


def compute_pca(
    matrix: Matrix, nprocs: int = 0, map_tasks: int = 0, reduce_tasks: int = 0
) -> tuple[list[int], list[int]]:
    """Return the row means and the upper-triangle covariances in row order."""
    num_rows = len(matrix)
    num_cols = len(matrix[0]) if matrix else 0
    ncores = nprocs or os.cpu_count() or 1

    mean_app = Application(
        map_func=partial(mean_map, num_cols=num_cols),
        atype=AppType.MAPREDUCE,
        reduce_func=_ident_reduce,
    )
    splits = mean_splitter(matrix, map_tasks, ncores)
    mean_results = run_job(mean_app, splits, nprocs, reduce_tasks)
    means = [kv.val for kv in mean_results]
    if len(means) != num_rows:
        raise RuntimeError("mean phase lost rows")

    cov_app = Application(
        map_func=partial(cov_map, matrix=matrix, means=means),
        atype=AppType.MAPREDUCE,
        reduce_func=_ident_reduce,
    )
    cov_splits = cov_splitter(num_rows, map_tasks, ncores)
    cov_results = run_job(cov_app, cov_splits, nprocs, reduce_tasks)
    if len(cov_results) != (num_rows * num_rows - num_rows) // 2 + num_rows:
        raise RuntimeError("covariance phase lost cells")
    return means, [kv.val for kv in cov_results]


def format_covariance(values: Sequence[int], num_rows: int) -> str:
    """Render the upper triangle, one shrinking row per line."""
    parts = []
    cnt = 0
    for value in values:
        parts.append(f"{value:5d} ")
        cnt += 1
        if cnt == num_rows:
            parts.append("\n")
            num_rows -= 1
            cnt = 0
    return "".join(parts)


def _nonneg(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError("value must not be negative")
    return value


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pca")
    parser.add_argument("-p", dest="nprocs", type=_nonneg, default=0, help="# of processors to use")
    parser.add_argument("-m", dest="map_tasks", type=int, default=0, help="# of map tasks")
    parser.add_argument("-r", dest="reduce_tasks", type=_nonneg, default=0, help="# of reduce tasks")
    parser.add_argument("-q", dest="quiet", action="store_true", help="quiet output")
    parser.add_argument("-R", dest="rows", type=_nonneg, default=DEF_NUM_ROWS, help="# of rows")
    parser.add_argument("-C", dest="cols", type=_nonneg, default=DEF_NUM_COLS, help="# of columns")
    parser.add_argument("-M", dest="grid", type=_nonneg, default=DEF_GRID_SIZE, help="max value")
    return parser


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = _parser()
    if not argv:
        parser.print_usage()
        return 1
    args = parser.parse_args(argv)
    matrix = generate_points(args.rows, args.cols, args.grid, random.Random(1))
    _, covariances = compute_pca(matrix, args.nprocs, args.map_tasks, args.reduce_tasks)
    if not args.quiet:
        sys.stdout.write("\n\nCovariance matrix:\n")
        sys.stdout.write(format_covariance(covariances, args.rows))
    return 0


if __name__ == "__main__":
    sys.exit(main())