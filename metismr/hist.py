"""Colour histogram of a 24-bit bitmap computed as a map/reduce job."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Iterable, Sequence

from .engine import Application, AppType, run_job
from .splitter import DefaultSplitter

IMG_DATA_OFFSET_POS = 10
BITS_PER_PIXEL_POS = 28
BLUE_BASE = 1000
GREEN_BASE = 2000
RED_BASE = 3000

_NOT_BITMAP = "File is not a valid bitmap file. Exiting"
_NOT_24BIT = (
    "Error: Invalid bitmap format - "
    "This application only accepts 24-bit pictures. Exiting"
)


def pixel_data(bitmap: bytes) -> bytes:
    """Return the pixel bytes of a 24-bit bitmap, cut to whole pixels.

    Raises ValueError when the data is not a 24-bit bitmap.
    """
    if len(bitmap) < BITS_PER_PIXEL_POS + 2 or bitmap[:2] != b"BM":
        raise ValueError(_NOT_BITMAP)
    bpp = int.from_bytes(bitmap[BITS_PER_PIXEL_POS:BITS_PER_PIXEL_POS + 2], "little")
    if bpp != 24:
        raise ValueError(_NOT_24BIT)
    offset = int.from_bytes(bitmap[IMG_DATA_OFFSET_POS:IMG_DATA_OFFSET_POS + 2], "little")
    if offset > len(bitmap):
        raise ValueError(_NOT_BITMAP)
    nbytes = len(bitmap) - offset
    nbytes -= nbytes % 3
    return bytes(bitmap[offset:offset + nbytes])


def hist_map(split: Sequence[int]) -> list[tuple[int, int]]:
    """Count the blue, green and red values of the pixels in ``split``.

    Pixels are stored blue, green, red. Keys are ``1000 + value`` for blue,
    ``2000 + value`` for green and ``3000 + value`` for red.
    """
    if len(split) % 3 != 0:
        raise ValueError("split length must be a multiple of 3")
    blue = [0] * 256
    green = [0] * 256
    red = [0] * 256
    data = bytes(split)
    for value in data[0::3]:
        blue[value] += 1
    for value in data[1::3]:
        green[value] += 1
    for value in data[2::3]:
        red[value] += 1
    out: list[tuple[int, int]] = []
    for i, (b, g, r) in enumerate(zip(blue, green, red)):
        if b:
            out.append((BLUE_BASE + i, b))
        if g:
            out.append((GREEN_BASE + i, g))
        if r:
            out.append((RED_BASE + i, r))
    return out


def hist_combine(key: int, vals: list[int]) -> list[int]:
    """Fold the partial counts of one key into a single count."""
    return [sum(vals)]


def hist_reduce(key: int, vals: list[int]) -> int:
    """Total count for one key."""
    return sum(vals)


def compute_histogram(
    bitmap: bytes, nprocs: int = 0, map_tasks: int = 0, reduce_tasks: int = 0
) -> list[tuple[int, int]]:
    """Return ``(key, frequency)`` pairs sorted by key for a 24-bit bitmap."""
    data = pixel_data(bitmap)
    app = Application(
        map_func=hist_map,
        atype=AppType.MAPREDUCE,
        reduce_func=hist_reduce,
        combiner=hist_combine,
    )
    splitter = DefaultSplitter(data, map_tasks, 3)
    results = run_job(app, splitter, nprocs, reduce_tasks)
    return [(kv.key, kv.val) for kv in results]


def format_histogram(results: Iterable[tuple[int, int]]) -> str:
    """Render the histogram as the report printed by the command."""
    parts = ["\n\nBlue\n", "----------\n\n"]
    prev = 0
    for pix_val, freq in results:
        if pix_val - prev > 700:
            if pix_val >= 2000:
                parts += ["\n\nRed\n", "----------\n\n"]
            elif pix_val >= 1000:
                parts += ["\n\nGreen\n", "----------\n\n"]
        parts.append(f"{pix_val} - {freq}\n")
        prev = pix_val
    return "".join(parts)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hist")
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
        print(f"Histogram: Running... file {args.filename}")
    with open(args.filename, "rb") as fh:
        bitmap = fh.read()
    try:
        data = pixel_data(bitmap)
    except ValueError as exc:
        print(exc)
        return 1
    if not quiet:
        print(f"File stat: {len(data)} bytes, {len(data) // 3} pixels")
    results = compute_histogram(bitmap, args.nprocs, args.map_tasks, args.reduce_tasks)
    if not quiet:
        sys.stdout.write(format_histogram(results))
    return 0


if __name__ == "__main__":
    sys.exit(main())