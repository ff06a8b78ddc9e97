import pytest

from metismr.wr import format_top, main, reverse_index, reverse_index_map

TEXT = b"one two three two one\nfour five one two\tsix\n" * 9


def test_map_offsets_are_absolute():
    assert reverse_index_map((10, b"ab cd ab")) == [("AB", 10, 2), ("CD", 13, 2), ("AB", 16, 2)]


def test_map_empty_chunk():
    assert reverse_index_map((0, b"  \n")) == []


def test_reverse_index_small():
    assert reverse_index(b"foo bar foo", nprocs=2) == [("BAR", [4]), ("FOO", [0, 8])]


@pytest.mark.parametrize("nprocs,map_tasks,reduce_tasks", [(1, 1, 1), (2, 5, 0), (3, 40, 3)])
def test_offsets_point_at_their_words(nprocs, map_tasks, reduce_tasks):
    result = reverse_index(TEXT, nprocs, map_tasks, reduce_tasks)
    keys = [word for word, _ in result]
    assert keys == sorted(keys)
    for word, offsets in result:
        for off in offsets:
            assert TEXT[off:off + len(word)].decode().upper() == word


def test_layout_does_not_change_result():
    reference = reverse_index(TEXT, 1, 1, 1)
    assert reverse_index(TEXT, 4, 13, 5) == reference
    assert sum(len(offs) for _, offs in reference) == len(TEXT.split())


def test_format_top():
    out = format_top([("BAR", [4]), ("FOO", [0, 8])], 1)
    lines = out.split("\n")
    assert lines[1] == "wordreverseindex: results (TOP 1 from 2 keys, 3 words):"
    assert lines[2] == f"{'BAR':>15} - 1"
    assert "FOO" not in out


def test_main_prints_results(tmp_path, capsys):
    src = tmp_path / "in.txt"
    src.write_bytes(b"foo bar foo")
    assert main([str(src), "-p", "2"]) == 0
    printed = capsys.readouterr().out
    assert f"{'FOO':>15} - 2" in printed


def test_main_quiet(tmp_path, capsys):
    src = tmp_path / "in.txt"
    src.write_bytes(b"foo")
    assert main([str(src), "-q"]) == 0
    assert capsys.readouterr().out == ""