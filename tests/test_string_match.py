import pytest

from metismr.string_match import (
    KEYS,
    StringMatchSplitter,
    compute_hash,
    getnextline,
    main,
    string_match,
    string_match_combine,
    string_match_map,
    string_match_reduce,
)


def decode(word: bytes) -> bytes:
    return bytes(b - 5 for b in word)


TEXT = b"apple\nbanana\r\ncherry\n" + decode(b"ferrari") + b"\nlast"


def test_getnextline_newline():
    assert getnextline(b"abc\ndef", 1024) == (b"abc", 4)


def test_getnextline_carriage_return():
    assert getnextline(b"abc\r\nx", 1024) == (b"abc", 5)


def test_getnextline_end_of_data():
    assert getnextline(b"abc", 1024) == (b"abc", 4)


def test_getnextline_max_len():
    line, consumed = getnextline(b"abcdefgh\n", 4)
    assert line == b"abc"
    assert consumed == 3


def test_compute_hash_shift():
    assert compute_hash(b"abc") == b"fgh"
    assert decode(compute_hash(b"HelloWorld")) == b"HelloWorld"


def test_map_counts_non_matching_lines():
    out = {k: c for k, c, _ in string_match_map(b"foo\nbar\n")}
    assert set(out) == set(KEYS)
    assert all(c == 2 for c in out.values())


def test_map_excludes_matching_line():
    split = decode(b"ferrari") + b"\nzzz\n"
    out = {k: c for k, c, _ in string_match_map(split)}
    assert out["ferrari"] == 1
    assert out["Helloworld"] == 2


def test_map_key_lengths():
    for key, _, keylen in string_match_map(b"x\n"):
        assert keylen == len(key)


def test_combine_then_reduce_equals_reduce():
    vals = [3, 0, 8]
    assert string_match_reduce("ferrari", string_match_combine("ferrari", vals)) == string_match_reduce("ferrari", vals)


@pytest.mark.parametrize("nsplits", [1, 2, 3, 50])
def test_splitter_covers_data_on_line_boundaries(nsplits):
    splits = list(StringMatchSplitter(TEXT, nsplits))
    assert b"".join(splits) == TEXT
    for split in splits[:-1]:
        assert split.endswith(b"\n")


def test_splitter_exhausts():
    splitter = StringMatchSplitter(b"a\nb\n", 1)
    assert splitter.next_split(1) == b"a\nb\n"
    assert splitter.next_split(1) is None


def test_splitter_rejects_negative():
    with pytest.raises(ValueError):
        StringMatchSplitter(b"a", -1)


def test_string_match_results():
    nlines = 5
    results = string_match(TEXT, nprocs=2, map_tasks=3, reduce_tasks=2)
    assert [k for k, _ in results] == sorted(KEYS)
    counts = dict(results)
    assert counts["ferrari"] == nlines - 1
    assert counts["whotheman"] == nlines


@pytest.mark.parametrize("nprocs,map_tasks,reduce_tasks", [(1, 0, 0), (3, 4, 0), (2, 1, 5)])
def test_string_match_layout_independent(nprocs, map_tasks, reduce_tasks):
    base = string_match(TEXT, 1, 1, 1)
    assert string_match(TEXT, nprocs, map_tasks, reduce_tasks) == base


def test_main_prints_results(tmp_path, capsys):
    path = tmp_path / "keys.txt"
    path.write_bytes(TEXT)
    assert main([str(path), "-p", "1"]) == 0
    out = capsys.readouterr().out
    assert "string match: results:" in out
    assert "ferrari - 4" in out


def test_main_quiet(tmp_path, capsys):
    path = tmp_path / "keys.txt"
    path.write_bytes(TEXT)
    assert main([str(path), "-q"]) == 0
    assert capsys.readouterr().out == ""