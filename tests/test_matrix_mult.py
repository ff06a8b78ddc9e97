import random

import pytest

from metismr.matrix_mult import (
    BlockSplitter,
    RowSplitter,
    main,
    matrixmult_map,
    matrixmult_map2,
    multiply,
    random_matrix,
)


def _small(n, seed):
    rng = random.Random(seed)
    return [[rng.randrange(-50, 50) for _ in range(n)] for _ in range(n)]


def _identity(n):
    return [[int(i == j) for j in range(n)] for i in range(n)]


def test_worked_example():
    assert multiply([[1, 2], [3, 4]], [[5, 6], [7, 8]], 2) == [[19, 22], [43, 50]]


def test_identity_both_sides():
    a = random_matrix(5, random.Random(3))
    assert multiply(a, _identity(5), 5) == a
    assert multiply(_identity(5), a, 5) == a


def test_block_and_row_methods_agree():
    a, b = _small(7, 1), _small(7, 2)
    assert multiply(a, b, 7, block_based=True) == multiply(a, b, 7, block_based=False, map_tasks=3)


def test_wraps_to_int32():
    assert multiply([[2**31 - 1]], [[2]], 1) == [[-2]]


def test_random_products_stay_in_int32():
    rng = random.Random(9)
    a, b = random_matrix(4, rng), random_matrix(4, rng)
    out = multiply(a, b, 4)
    assert all(-(2**31) <= v < 2**31 for row in out for v in row)


def test_block_splitter_sequence():
    splitter = BlockSplitter(4, block_len=2)
    blocks = list(splitter)
    assert blocks == [(0, 0, 2), (0, 2, 2), (0, 4, 2), (2, 0, 2), (2, 2, 2), (2, 4, 2)]
    assert splitter.next_split(1) is None


def test_small_blocks_cover_product():
    a, b = _small(5, 4), _small(5, 5)
    out = [[0] * 5 for _ in range(5)]
    for block in BlockSplitter(5, block_len=2):
        matrixmult_map(block, a, b, out, 5)
    assert out == multiply(a, b, 5)


def test_row_splitter_covers_rows():
    splitter = RowSplitter(10, nsplits=3)
    runs = []
    while (run := splitter.next_split(1)) is not None:
        runs.append(run)
    assert runs[0][0] == 0
    for (s1, c1), (s2, _) in zip(runs, runs[1:]):
        assert s1 + c1 == s2
    assert sum(c for _, c in runs) == 10
    assert splitter.next_split(1) is None


def test_row_map_matches_multiply():
    a, b = _small(6, 6), _small(6, 7)
    out = [[0] * 6 for _ in range(6)]
    for rows in RowSplitter(6, nsplits=2):
        matrixmult_map2(rows, a, b, out, 6)
    assert out == multiply(a, b, 6)


def test_splitters_reject_bad_arguments():
    with pytest.raises(ValueError):
        RowSplitter(4, nsplits=-1)
    with pytest.raises(ValueError):
        BlockSplitter(4, block_len=0)


def test_random_matrix_shape_range_and_seed():
    m = random_matrix(3, random.Random(11))
    assert len(m) == 3 and all(len(r) == 3 for r in m)
    assert all(0 <= v <= 2**31 - 1 for r in m for v in r)
    assert random_matrix(3, random.Random(11)) == m


def test_multiply_rejects_wrong_shape():
    with pytest.raises(ValueError):
        multiply([[1, 2]], [[1]], 1)


def test_main_without_arguments():
    assert main([]) == 1


def test_main_prints_rows(capsys):
    assert main(["-l", "3"]) == 0
    out = capsys.readouterr().out
    assert "First row of the output matrix:" in out
    assert "Last row of the output matrix:" in out
    assert out.count("\t") == 6


def test_main_quiet(capsys):
    assert main(["-l", "2", "-q"]) == 0
    assert capsys.readouterr().out == ""