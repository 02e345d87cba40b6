"""Walking a directory tree and reading regular files that pass a filter."""

from __future__ import annotations

import os
import stat
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class Entry:
    """A file found during a walk, with its contents."""

    path: str
    content: bytes


def no_filter(data: bytes | None) -> bool:
    """Accept any data that is present."""
    return data is not None


def _regular_files(path: str) -> Iterator[str]:
    info = os.lstat(path)
    if stat.S_ISDIR(info.st_mode):
        for name in sorted(os.listdir(path)):
            yield from _regular_files(os.path.join(path, name))
    elif stat.S_ISREG(info.st_mode):
        yield path


def _entries(
    paths: list[str],
    filter_func: Callable[[bytes], bool],
    cancel: threading.Event | None,
) -> Iterator[Entry]:
    for path in paths:
        if cancel is not None and cancel.is_set():
            return
        with open(path, "rb") as handle:
            data = handle.read()
        if filter_func(data):
            yield Entry(path, data)


def walk(
    root: str,
    filter_func: Callable[[bytes], bool] = no_filter,
    cancel: threading.Event | None = None,
) -> Iterator[Entry]:
    """Traverse root and return an iterator of regular files whose content passes filter_func.

    The tree is listed up front, so traversal errors are raised here; files are
    read as the iterator is consumed. Setting cancel stops the iteration.
    """
    paths = list(_regular_files(root))
    return _entries(paths, filter_func, cancel)