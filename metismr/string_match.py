"""Line-by-line comparison of a key file against fixed encoded words."""

from __future__ import annotations

import argparse
import os
import sys
import threading
from collections.abc import Iterator

from .engine import Application, AppType, run_job
from .splitter import DEF_NSPLITS_PER_CORE

MAX_REC_LEN = 1024
OFFSET = 5
KEYS = ("Helloworld", "howareyou", "ferrari", "whotheman")

_TERMINATORS = (ord("\n"), ord("\r"), 0)


def _byte_at(data: bytes, i: int) -> int:
    return data[i] if i < len(data) else 0


def getnextline(data: bytes, max_len: int = MAX_REC_LEN) -> tuple[bytes, int]:
    """Read one line from the start of ``data``.

    Returns ``(line, consumed)``: the line without its terminator and the
    number of bytes it takes up. A carriage return is taken to start a
    two-byte line ending. Bytes past the end of ``data`` read as NUL.
    """
    i = 0
    while i < max_len - 1:
        c = _byte_at(data, i)
        if c == 0 or c == ord("\n"):
            return bytes(data[:i]), i + 1
        if c == ord("\r"):
            return bytes(data[:i]), i + 2
        i += 1
    return bytes(data[:i]), i


def compute_hash(word: bytes) -> bytes:
    """Encode a word by shifting every byte up by five."""
    return bytes((b + OFFSET) & 0xFF for b in word)


class StringMatchSplitter:
    """Cuts the key file into chunks that end on a line boundary."""

    def __init__(self, data: bytes, nsplits: int = 0) -> None:
        if nsplits < 0:
            raise ValueError("nsplits must not be negative")
        self.data = bytes(data)
        self.nsplits = nsplits
        self.bytes_comp = 0
        self._lock = threading.Lock()

    def next_split(self, ncores: int) -> bytes | None:
        """Return the next chunk, or ``None`` once the data is used up."""
        with self._lock:
            total = len(self.data)
            if self.bytes_comp >= total:
                return None
            if self.nsplits == 0:
                if ncores < 1:
                    raise ValueError("ncores must be positive")
                self.nsplits = ncores * DEF_NSPLITS_PER_CORE
            split_size = total // self.nsplits
            start = self.bytes_comp
            counter = start + min(split_size, total - start)
            while counter <= total and _byte_at(self.data, counter) not in _TERMINATORS:
                counter += 1
            last = _byte_at(self.data, counter)
            if last == ord("\r"):
                counter += 2
            elif last == ord("\n"):
                counter += 1
            if counter == start:
                counter += 1
            counter = min(counter, total)
            self.bytes_comp = counter
            return self.data[start:counter]

    def __iter__(self) -> Iterator[bytes]:
        ncores = os.cpu_count() or 1
        while (split := self.next_split(ncores)) is not None:
            yield split


def string_match_map(split: bytes) -> list[tuple[str, int, int]]:
    """Count, for each key, the lines whose encoded form differs from it."""
    counts = dict.fromkeys(KEYS, 0)
    encoded_keys = {key: key.encode("ascii") for key in KEYS}
    total = 0
    while total < len(split):
        line, consumed = getnextline(split[total:], MAX_REC_LEN)
        encoded = compute_hash(line)
        for key, raw in encoded_keys.items():
            if raw != encoded:
                counts[key] += 1
        total += consumed
    return [(key, counts[key], len(key)) for key in KEYS]


def string_match_combine(key: str, vals: list[int]) -> list[int]:
    """Fold partial counts into one."""
    return [sum(vals)]


def string_match_reduce(key: str, vals: list[int]) -> int:
    """Total count for one key."""
    return sum(vals)


def string_match(
    data: bytes, nprocs: int = 0, map_tasks: int = 0, reduce_tasks: int = 0
) -> list[tuple[str, int]]:
    """Run the job over ``data`` and return ``(key, count)`` sorted by key."""
    app = Application(
        map_func=string_match_map,
        atype=AppType.MAPREDUCE,
        reduce_func=string_match_reduce,
        combiner=string_match_combine,
    )
    splitter = StringMatchSplitter(data, map_tasks)
    results = run_job(app, splitter, nprocs, reduce_tasks)
    return [(kv.key, kv.val) for kv in results]


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="string_match")
    parser.add_argument("filename")
    parser.add_argument("-p", dest="nprocs", type=int, default=0, help="# of processors to use")
    parser.add_argument("-m", dest="map_tasks", type=int, default=0, help="# of map tasks")
    parser.add_argument("-r", dest="reduce_tasks", type=int, default=0, help="# of reduce tasks")
    parser.add_argument("-q", dest="quiet", action="store_true", help="quiet output")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    quiet = args.quiet
    if not quiet:
        print("String Match: Running...")
    with open(args.filename, "rb") as fh:
        data = fh.read()
    if not quiet:
        print(f"Keys Size is {len(data)}")
        print("String Match: Calling String Match")
    results = string_match(data, args.nprocs, args.map_tasks, args.reduce_tasks)
    if not quiet:
        print("\nstring match: results:")
        for key, count in results:
            print(f"{key:>15} - {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())