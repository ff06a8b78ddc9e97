"""Reverse index: every word with the offsets where it occurs."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterable

from .engine import Application, AppType, run_job
from .wc import WordSplitter, _scan

MAX_KEY_LEN = 1024
DEFAULT_NDISP = 5


def reverse_index_map(split: tuple[int, bytes]) -> list[tuple[str, int, int]]:
    """Emit ``(word, offset, len(word))`` for a ``(start, chunk)`` split.

    Offsets are positions in the whole input.
    """
    start, chunk = split
    return [(word, start + off, len(word)) for off, word in _scan(chunk, MAX_KEY_LEN)]


def reverse_index(
    data: bytes, nprocs: int = 0, map_tasks: int = 0, reduce_tasks: int = 0
) -> list[tuple[str, list[int]]]:
    """Return ``(word, offsets)`` sorted by word, offsets ascending."""
    splitter = WordSplitter(data, map_tasks)
    ncores = nprocs or os.cpu_count() or 1
    splits: list[tuple[int, bytes]] = []
    pos = 0
    while (chunk := splitter.next_split(ncores)) is not None:
        splits.append((pos, chunk))
        pos += len(chunk)
    app = Application(map_func=reverse_index_map, atype=AppType.MAPGROUP)
    results = run_job(app, splits, nprocs, reduce_tasks)
    return [(kvs.key, sorted(kvs.vals)) for kvs in results]


def format_top(results: Iterable[tuple[str, list[int]]], ndisp: int) -> str:
    """Render the header and the first ``ndisp`` words with their counts."""
    results = list(results)
    occurs = sum(len(offsets) for _, offsets in results)
    lines = [
        f"\nwordreverseindex: results (TOP {ndisp} from {len(results)} keys, {occurs} words):\n"
    ]
    shown = max(0, min(ndisp, len(results)))
    lines.extend(f"{word:>15} - {len(offsets)}\n" for word, offsets in results[:shown])
    return "".join(lines)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wr")
    parser.add_argument("filename")
    parser.add_argument("-p", dest="nprocs", type=int, default=0, help="# of processors to use")
    parser.add_argument("-l", dest="ndisp", type=int, default=DEFAULT_NDISP, help="# of top pairs to display")
    parser.add_argument("-m", dest="map_tasks", type=int, default=0, help="# of map tasks")
    parser.add_argument("-r", dest="reduce_tasks", type=int, default=0, help="# of reduce tasks")
    parser.add_argument("-q", dest="quiet", action="store_true", help="quiet output")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    with open(args.filename, "rb") as fh:
        data = fh.read()
    results = reverse_index(data, args.nprocs, args.map_tasks, args.reduce_tasks)
    if not args.quiet:
        sys.stdout.write(format_top(results, args.ndisp))
    return 0


if __name__ == "__main__":
    sys.exit(main())