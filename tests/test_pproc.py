import threading

import pytest

from piccrack.imgsniff import is_png
from piccrack.pproc import Entry, no_filter, walk

PNG_SIG = bytes([137, 80, 78, 71, 13, 10, 26, 10])


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "a.png").write_bytes(PNG_SIG + b"rest")
    (tmp_path / "b.txt").write_bytes(b"plain text")
    (tmp_path / "c.txt").write_bytes(b"")
    sub = tmp_path / "nested"
    sub.mkdir()
    (sub / "d.png").write_bytes(PNG_SIG)
    (sub / "e.json").write_bytes(b"{}")
    return tmp_path


def test_walk_with_no_filter(tree):
    entries = list(walk(str(tree), no_filter))
    assert len(entries) == 5


def test_walk_with_image_filter(tree):
    entries = list(walk(str(tree), is_png))
    assert len(entries) == 2
    for entry in entries:
        assert is_png(entry.content)


def test_entries_carry_path_and_content(tree):
    entries = {entry.path: entry for entry in walk(str(tree))}
    path = str(tree / "b.txt")
    assert entries[path] == Entry(path, b"plain text")


def test_walk_single_file(tree):
    path = str(tree / "b.txt")
    assert [entry.path for entry in walk(path)] == [path]


def test_walk_missing_root_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        walk(str(tmp_path / "missing"))


def test_cancelled_walk_yields_nothing(tree):
    cancel = threading.Event()
    cancel.set()
    assert list(walk(str(tree), no_filter, cancel)) == []


def test_no_filter():
    assert no_filter(b"") is True
    assert no_filter(None) is False