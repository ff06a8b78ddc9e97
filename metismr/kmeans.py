"""K-means clustering where each round runs as a map/reduce job."""

from __future__ import annotations

import argparse
import os
import sys
import threading
from collections import Counter
from collections.abc import Iterator, MutableSequence, Sequence
from functools import reduce as _fold

from .engine import Application, AppType, run_job
from .splitter import DEF_NSPLITS_PER_CORE

DEF_NUM_POINTS = 100000
DEF_NUM_MEANS = 100
DEF_DIM = 3
DEF_GRID_SIZE = 1000

_ILLEGAL = "Illegal argument value. All values must be numeric and greater than 0"

Vector = Sequence[int]


def _trunc_div(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


def generate_points(num_points: int, dim: int, grid_size: int) -> list[list[int]]:
    """Deterministic points: coordinate ``j`` of point ``i`` is ``(i*j) % grid_size + 1``."""
    if grid_size <= 0:
        raise ValueError("grid_size must be positive")
    return [[(i * j) % grid_size + 1 for j in range(dim)] for i in range(num_points)]


def get_sq_dist(v1: Vector, v2: Vector) -> int:
    """Squared Euclidean distance between two vectors."""
    return sum((a - b) * (a - b) for a, b in zip(v1, v2))


def add_to_sum(total: Vector, point: Vector) -> list[int]:
    """Element-wise sum of two vectors."""
    return [a + b for a, b in zip(total, point)]


def find_clusters(
    points: Sequence[Vector],
    means: Sequence[Vector],
    clusters: MutableSequence[int],
    start: int,
) -> tuple[list[tuple[int, Vector]], bool]:
    """Assign each point to its nearest mean.

    ``points[i]`` is the point at index ``start + i`` of ``clusters``, which
    is updated in place. Returns the ``(mean_index, point)`` pairs to emit and
    whether any assignment changed. Ties go to the lower mean index.
    """
    if not means:
        raise ValueError("at least one mean is required")
    pairs: list[tuple[int, Vector]] = []
    modified = False
    for offset, point in enumerate(points):
        min_idx = 0
        min_dist = get_sq_dist(point, means[0])
        for j, mean in enumerate(means[1:], start=1):
            dist = get_sq_dist(point, mean)
            if dist < min_dist:
                min_dist = dist
                min_idx = j
        if clusters[start + offset] != min_idx:
            clusters[start + offset] = min_idx
            modified = True
        pairs.append((min_idx, point))
    return pairs, modified


def kmeans_combine(key: int, vals: list[Vector]) -> list[list[int]]:
    """Fold the points of one cluster into their coordinate sum."""
    if not vals:
        return []
    zero = [0] * len(vals[0])
    return [_fold(add_to_sum, vals, zero)]


class KMeansSplitter:
    """Hands out consecutive ranges of point indices."""

    def __init__(self, num_points: int, nsplits: int = 0) -> None:
        if num_points < 0:
            raise ValueError("num_points must not be negative")
        if nsplits < 0:
            raise ValueError("nsplits must not be negative")
        self.num_points = num_points
        self.nsplits = nsplits
        self.next_point = 0
        self._lock = threading.Lock()

    def next_split(self, ncores: int) -> range | None:
        """Return the next range of indices, or ``None`` when all are handed out."""
        with self._lock:
            if self.nsplits == 0:
                if ncores < 1:
                    raise ValueError("ncores must be positive")
                self.nsplits = ncores * DEF_NSPLITS_PER_CORE
            req_units = max(self.num_points // self.nsplits, 1)
            if self.next_point >= self.num_points:
                return None
            start = self.next_point
            self.next_point += req_units
            return range(start, min(self.next_point, self.num_points))

    def __iter__(self) -> Iterator[range]:
        ncores = os.cpu_count() or 1
        while (split := self.next_split(ncores)) is not None:
            yield split


class _Round:
    """State shared by the map and reduce functions of one iteration."""

    def __init__(self, points: Sequence[Vector], means: Sequence[Vector], clusters: list[int]) -> None:
        self.points = points
        self.means = means
        self.clusters = clusters
        self.modified = False
        self._stats: Counter[int] | None = None
        self._lock = threading.Lock()

    def map(self, split: range) -> list[tuple[int, Vector]]:
        pairs, changed = find_clusters(
            self.points[split.start:split.stop], self.means, self.clusters, split.start
        )
        if changed:
            self.modified = True
        return pairs

    def reduce(self, key: int, vals: list[Vector]) -> list[int]:
        with self._lock:
            if self._stats is None:
                self._stats = Counter(self.clusters)
        count = self._stats[key]
        total = _fold(add_to_sum, vals, [0] * len(vals[0]))
        return [_trunc_div(t, count) for t in total]


def run_kmeans(
    dim: int,
    num_means: int,
    num_points: int,
    grid_size: int,
    nprocs: int = 0,
    map_tasks: int = 0,
    reduce_tasks: int = 0,
) -> list[list[int]]:
    """Cluster the generated points until no assignment changes; return the means.

    The initial means are the first ``num_means`` points.
    """
    if dim <= 0 or num_means <= 0 or num_points <= 0 or grid_size <= 0:
        raise ValueError(_ILLEGAL)
    if num_means > num_points:
        raise ValueError("num_means must not exceed num_points")
    points = generate_points(num_points, dim, grid_size)
    means = [list(p) for p in points[:num_means]]
    clusters = [-1] * num_points

    modified = True
    while modified:
        rnd = _Round(points, [list(m) for m in means], clusters)
        app = Application(
            map_func=rnd.map,
            atype=AppType.MAPREDUCE,
            reduce_func=rnd.reduce,
            combiner=kmeans_combine,
        )
        results = run_job(app, KMeansSplitter(num_points, map_tasks), nprocs, reduce_tasks)
        for kv in results:
            means[kv.key] = list(kv.val)
        modified = rnd.modified
    return means


def format_means(means: Sequence[Vector]) -> str:
    """Render one mean per line, each coordinate five characters wide."""
    return "".join("".join(f"{v:5d} " for v in mean) + "\n" for mean in means)


def _atoi(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def _nonneg(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError("value must not be negative")
    return value


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kmeans")
    parser.add_argument("dim", type=_atoi, help="vector dimension")
    parser.add_argument("num_means", type=_atoi, help="number of clusters")
    parser.add_argument("num_points", type=_atoi, help="number of points")
    parser.add_argument("grid_size", type=_atoi, help="max value")
    parser.add_argument("-p", dest="nprocs", type=_nonneg, default=0, help="# of processors to use")
    parser.add_argument("-m", dest="map_tasks", type=int, default=0, help="# of map tasks")
    parser.add_argument("-r", dest="reduce_tasks", type=int, default=0, help="# of reduce tasks")
    parser.add_argument("-l", dest="ndisp", type=_nonneg, default=0, help="# of top pairs to display")
    parser.add_argument("-q", dest="quiet", action="store_true", help="quiet output")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    if min(args.dim, args.num_means, args.num_points, args.grid_size) <= 0:
        print(_ILLEGAL)
        return 1
    try:
        means = run_kmeans(
            args.dim,
            args.num_means,
            args.num_points,
            args.grid_size,
            args.nprocs,
            args.map_tasks,
            args.reduce_tasks,
        )
    except ValueError as exc:
        print(exc)
        return 1
    if not args.quiet:
        sys.stdout.write(format_means(means))
    return 0


if __name__ == "__main__":
    sys.exit(main())