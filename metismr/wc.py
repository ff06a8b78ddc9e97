"""Word count over a text file as a map/reduce job."""

from __future__ import annotations

import argparse
import os
import sys
import threading
from collections.abc import Iterable, Iterator
from typing import Any

from .engine import Application, AppType, run_job
from .splitter import DEF_NSPLITS_PER_CORE

MAX_KEY_LEN = 256
DEFAULT_NDISP = 5

_SEPARATORS = frozenset(b" \t\r\n\0")
_APOSTROPHE = ord("'")
_UPPER_A, _UPPER_Z = ord("A"), ord("Z")
_LOWER_A, _LOWER_Z = ord("a"), ord("z")


def _upper(byte: int) -> int:
    return byte - 32 if _LOWER_A <= byte <= _LOWER_Z else byte


def _scan(data: bytes, max_key_len: int) -> Iterator[tuple[int, str]]:
    """Yield ``(offset, WORD)`` for every word in ``data``.

    A word starts with a letter and goes on over letters and apostrophes.
    Raises ValueError when a word reaches ``max_key_len`` characters.
    """
    start = -1
    word: list[int] = []
    for i, raw in enumerate(bytes(data)):
        c = _upper(raw)
        is_letter = _UPPER_A <= c <= _UPPER_Z
        if start >= 0:
            if not is_letter and c != _APOSTROPHE:
                yield start, bytes(word).decode("ascii")
                start = -1
                word = []
            else:
                word.append(c)
                if len(word) >= max_key_len:
                    raise ValueError(f"word longer than {max_key_len - 1} characters")
        elif is_letter:
            start = i
            word = [c]
    if start >= 0:
        yield start, bytes(word).decode("ascii")


def words(data: bytes) -> Iterator[tuple[int, str]]:
    """Yield ``(offset, word)`` for every word of ``data``, upper-cased."""
    return _scan(data, MAX_KEY_LEN)


class WordSplitter:
    """Cuts text into chunks that end on whitespace or a NUL byte."""

    def __init__(self, data: bytes, nsplits: int = 0) -> None:
        if nsplits < 0:
            raise ValueError("nsplits must not be negative")
        self.data = bytes(data)
        self.nsplits = nsplits
        self.fpos = 0
        self._lock = threading.Lock()

    def next_split(self, ncores: int) -> bytes | None:
        """Return the next chunk, or ``None`` once the text is used up."""
        with self._lock:
            flen = len(self.data)
            if self.fpos >= flen:
                return None
            if self.nsplits == 0:
                if ncores < 1:
                    raise ValueError("ncores must be positive")
                self.nsplits = ncores * DEF_NSPLITS_PER_CORE
            length = min(max(flen // self.nsplits, 1), flen - self.fpos)
            end = self.fpos + length
            while end < flen and self.data[end] not in _SEPARATORS:
                end += 1
            chunk = self.data[self.fpos:end]
            self.fpos = end
            return chunk

    def __iter__(self) -> Iterator[bytes]:
        ncores = os.cpu_count() or 1
        while (split := self.next_split(ncores)) is not None:
            yield split


def wordcount_map(split: bytes) -> list[tuple[str, int, int]]:
    """Emit ``(word, 1, len(word))`` for every word of the chunk."""
    return [(word, 1, len(word)) for _, word in words(split)]


def wordcount_reduce(key: str, vals: list[int]) -> int:
    """Total count of one word."""
    return sum(vals)


def wordcount_combine(key: str, vals: list[int]) -> list[int]:
    """Fold partial counts of one word into one."""
    return [sum(vals)]


def wordcount_vm(oldv: Any, newv: int, isnew: bool) -> int:
    """Add a count to the running total; the first value starts it."""
    if isnew:
        return newv
    return oldv + newv


def out_cmp(kv1: Any, kv2: Any) -> int:
    """Order by count, largest first, then by word."""
    if kv1.val < kv2.val:
        return 1
    if kv1.val > kv2.val:
        return -1
    return (kv1.key > kv2.key) - (kv1.key < kv2.key)


def count_words(
    data: bytes,
    nprocs: int = 0,
    map_tasks: int = 0,
    reduce_tasks: int = 0,
    alphanumeric: bool = False,
) -> list[tuple[str, int]]:
    """Return ``(word, count)`` pairs.

    They are ordered by count, largest first, or alphabetically when
    ``alphanumeric`` is set.
    """
    app = Application(
        map_func=wordcount_map,
        atype=AppType.MAPREDUCE,
        vm=wordcount_vm,
        outcmp=None if alphanumeric else out_cmp,
    )
    splitter = WordSplitter(data, map_tasks)
    results = run_job(app, splitter, nprocs, reduce_tasks)
    return [(kv.key, kv.val) for kv in results]


def format_top(results: Iterable[tuple[str, int]], ndisp: int) -> str:
    """Render the header and the first ``ndisp`` results."""
    results = list(results)
    occurs = sum(count for _, count in results)
    lines = [f"\nwordcount: results (TOP {ndisp} from {len(results)} keys, {occurs} words):\n"]
    shown = max(0, min(ndisp, len(results)))
    lines.extend(f"{word:>15} - {count}\n" for word, count in results[:shown])
    return "".join(lines)


def format_all(results: Iterable[tuple[str, int]]) -> str:
    """Render every result, one per line."""
    return "".join(f"{word:>18} - {count}\n" for word, count in results)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wc")
    parser.add_argument("filename")
    parser.add_argument("-p", dest="nprocs", type=int, default=0, help="# of processors to use")
    parser.add_argument("-s", dest="split_size", default=None, help="ignored")
    parser.add_argument("-l", dest="ndisp", type=int, default=DEFAULT_NDISP, help="# of top pairs to display")
    parser.add_argument("-m", dest="map_tasks", type=int, default=0, help="# of map tasks")
    parser.add_argument("-r", dest="reduce_tasks", type=int, default=0, help="# of reduce tasks")
    parser.add_argument("-q", dest="quiet", action="store_true", help="quiet output")
    parser.add_argument("-a", dest="alphanumeric", action="store_true", help="alphanumeric word count")
    parser.add_argument("-o", dest="output", default=None, help="save output to a file")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    fout = None
    if args.output is not None:
        try:
            fout = open(args.output, "w+", encoding="ascii")
        except OSError as exc:
            print(f"unable to open {args.output}: {exc.strerror}", file=sys.stderr)
            return 1
    try:
        with open(args.filename, "rb") as fh:
            data = fh.read()
        results = count_words(
            data, args.nprocs, args.map_tasks, args.reduce_tasks, args.alphanumeric
        )
        if not args.quiet:
            sys.stdout.write(format_top(results, args.ndisp))
        if fout is not None:
            fout.write(format_all(results))
    finally:
        if fout is not None:
            fout.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())