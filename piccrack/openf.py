"""Helpers for preparing output paths and opening output files."""

from __future__ import annotations

import enum
import os
from datetime import datetime, timedelta
from typing import IO

DEFAULT_FILE_MODE = 0o600
DEFAULT_FLAGS = os.O_CREAT | os.O_RDWR

TIME_LAYOUT = "RFC3339"
DEFAULT_EXT = "txt"


class EntryKind(enum.Enum):
    """Kind of a filesystem entry."""

    FILE = 0
    DIR = 1
    UNKNOWN = 2


def is_file_or_dir(path: str) -> EntryKind:
    """Return whether path is a directory or a file; raise OSError if it cannot be read."""
    info = os.stat(path)
    if os.path.isdir(path) and not os.path.islink(path) or _is_dir_mode(info.st_mode):
        return EntryKind.DIR
    return EntryKind.FILE


def _is_dir_mode(mode: int) -> bool:
    import stat

    return stat.S_ISDIR(mode)


def _rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None or moment.utcoffset() is None:
        moment = moment.astimezone()
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    offset = moment.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    sign = "+" if offset > timedelta(0) else "-"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def format_time(t: datetime, layout: str | None = None) -> str:
    """Format t with a strftime layout, or as RFC 3339 when no layout is given."""
    if not layout or layout == TIME_LAYOUT:
        return _rfc3339(t)
    return t.strftime(layout)


def rm_tilde(path: str) -> str:
    """Expand a leading "~/" to the user's home directory."""
    if path.startswith("~/"):
        home = os.path.expanduser("~")
        if home == "~":
            raise OSError("get user home dir: home directory is not known")
        return os.path.join(home, path[2:])
    return path


def prepare_path(path: str, t: datetime) -> str:
    """Return path, or for a directory a timestamped .txt file inside it."""
    path = rm_tilde(path)
    if is_file_or_dir(path) is EntryKind.DIR:
        path = os.path.join(path, format_time(t, TIME_LAYOUT) + "." + DEFAULT_EXT)
    return path


def _file_mode(flags: int) -> str:
    if flags & os.O_RDWR:
        return "r+b"
    if flags & os.O_WRONLY:
        return "ab" if flags & os.O_APPEND else "wb"
    return "rb"


def open_file(path: str, flags: int = DEFAULT_FLAGS, mode: int = DEFAULT_FILE_MODE) -> IO[bytes]:
    """Open path with the given flags, emptied and positioned at the start."""
    fd = os.open(path, flags, mode)
    try:
        os.ftruncate(fd, 0)
        os.lseek(fd, 0, os.SEEK_SET)
        return os.fdopen(fd, _file_mode(flags))
    except BaseException:
        os.close(fd)
        raise


def join(directory: str, name: str, ext: str) -> str:
    """Join a directory with name.ext and clean the result."""
    return os.path.normpath(os.path.join(os.path.normpath(directory), f"{name}.{ext}"))