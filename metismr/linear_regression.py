"""Least-squares linear regression over signed byte pairs as a map/reduce job."""

from __future__ import annotations

import argparse
import math
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from .engine import Application, AppType, run_job
from .splitter import DefaultSplitter

KEY_SX = 0
KEY_SY = 1
KEY_SXX = 2
KEY_SYY = 3
KEY_SXY = 4

POINT_SIZE = 2
KEY_SIZE = 8
_HASH_MASK = (1 << 64) - 1


@dataclass
class RegressionResult:
    """Fitted line ``y = a + b*x`` together with the raw sums."""

    a: float
    b: float
    xbar: float
    ybar: float
    r2: float
    sx: int
    sy: int
    sxx: int
    syy: int
    sxy: int
    n: int


def _intkeycmp(k1: int, k2: int) -> int:
    """Order keys from the largest to the smallest."""
    return (k1 < k2) - (k1 > k2)


def _signed(byte: int) -> int:
    return byte - 256 if byte >= 128 else byte


def _div(num: float, den: float) -> float:
    """Floating division that yields inf or nan instead of raising."""
    if den != 0:
        return num / den
    if num == 0 or math.isnan(num):
        return math.nan
    return math.copysign(math.inf, num) * math.copysign(1.0, den)


def linear_regression_partition(key: int, key_size: int) -> int:
    """djb2 hash over the first ``key_size`` bytes of the key's value."""
    width = max(key_size, KEY_SIZE)
    raw = key.to_bytes(width, "little", signed=True)[:key_size]
    h = 5381
    for byte in raw:
        h = (h * 33 + (_signed(byte) & 0xFFFFFFFF)) & _HASH_MASK
    return h % 0xFFFFFFFF


def linear_regression_map(split: Sequence[int]) -> list[tuple[int, int, int]]:
    """Compute the partial sums for the points in ``split``.

    Each point is two signed bytes, ``x`` then ``y``.
    """
    if len(split) % POINT_SIZE != 0:
        raise ValueError("split length must be a multiple of the point size")
    data = bytes(split)
    xs = [_signed(b) for b in data[0::2]]
    ys = [_signed(b) for b in data[1::2]]
    sx = sum(xs)
    sxx = sum(x * x for x in xs)
    sy = sum(ys)
    syy = sum(y * y for y in ys)
    sxy = sum(x * y for x, y in zip(xs, ys))
    return [
        (KEY_SX, sx, KEY_SIZE),
        (KEY_SXX, sxx, KEY_SIZE),
        (KEY_SY, sy, KEY_SIZE),
        (KEY_SYY, syy, KEY_SIZE),
        (KEY_SXY, sxy, KEY_SIZE),
    ]


def linear_regression_combine(key: int, vals: list[int]) -> list[int]:
    """Fold partial sums for one key into one."""
    return [sum(vals)]


def linear_regression_reduce(key: int, vals: list[int]) -> int:
    """Total sum for one key."""
    return sum(vals)


def linear_regression(data: bytes, nprocs: int = 0, map_tasks: int = 0) -> RegressionResult:
    """Fit a line through the byte-pair points in ``data``.

    A trailing odd byte is ignored.
    """
    usable = len(data) - len(data) % POINT_SIZE
    points = bytes(data[:usable])
    app = Application(
        map_func=linear_regression_map,
        atype=AppType.MAPREDUCE,
        reduce_func=linear_regression_reduce,
        combiner=linear_regression_combine,
        key_cmp=_intkeycmp,
        part_func=linear_regression_partition,
    )
    splitter = DefaultSplitter(points, map_tasks, POINT_SIZE)
    results = run_job(app, splitter, nprocs, 0)

    sums = dict.fromkeys((KEY_SX, KEY_SY, KEY_SXX, KEY_SYY, KEY_SXY), 0)
    for kv in results:
        if kv.key not in sums:
            raise RuntimeError(f"invalid key {kv.key!r}")
        sums[kv.key] = kv.val

    sx_ll, sy_ll = sums[KEY_SX], sums[KEY_SY]
    sxx_ll, syy_ll, sxy_ll = sums[KEY_SXX], sums[KEY_SYY], sums[KEY_SXY]
    sx, sy = float(sx_ll), float(sy_ll)
    sxx, syy, sxy = float(sxx_ll), float(syy_ll), float(sxy_ll)

    n = len(data) // POINT_SIZE
    num = n * sxy - sx * sy
    den_x = n * sxx - sx * sx
    den_y = n * syy - sy * sy
    b = _div(num, den_x)
    a = _div(sy_ll - b * sx_ll, n)
    xbar = _div(float(sx_ll), n)
    ybar = _div(float(sy_ll), n)
    r2 = _div(num * num, den_x * den_y)
    return RegressionResult(a, b, xbar, ybar, r2, sx_ll, sy_ll, sxx_ll, syy_ll, sxy_ll, n)


def format_result(result: RegressionResult, nprocs: int = 0) -> str:
    """Render the result as printed by the command."""
    return (
        f"{nprocs:2d} Linear Regression Results:\n"
        f"\ta    = {result.a:f}\n"
        f"\tb    = {result.b:f}\n"
        f"\txbar = {result.xbar:f}\n"
        f"\tybar = {result.ybar:f}\n"
        f"\tr2   = {result.r2:f}\n"
        f"\tSX   = {result.sx}\n"
        f"\tSY   = {result.sy}\n"
        f"\tSXX  = {result.sxx}\n"
        f"\tSYY  = {result.syy}\n"
        f"\tSXY  = {result.sxy}\n"
    )


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="linear_regression")
    parser.add_argument("filename")
    parser.add_argument("-p", dest="nprocs", type=int, default=0, help="# of processors to use")
    parser.add_argument("-m", dest="map_tasks", type=int, default=0, help="# of map tasks")
    parser.add_argument("-q", dest="quiet", action="store_true", help="quiet output")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    with open(args.filename, "rb") as fh:
        data = fh.read()
    if not args.quiet:
        print("Linear regression: running...")
    result = linear_regression(data, args.nprocs, args.map_tasks)
    if not args.quiet:
        sys.stdout.write(format_result(result, args.nprocs))
    return 0


if __name__ == "__main__":
    sys.exit(main())