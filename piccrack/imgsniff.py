"""Detection of PNG and JPEG content from leading signature bytes."""

from __future__ import annotations

PNG_SIGNATURE = bytes([137, 80, 78, 71, 13, 10, 26, 10])
JPG_SIGNATURE = bytes([0xFF, 0x4F, 0xFF, 0x51])

_WHITESPACE = frozenset(b"\t\n\v\f\r ") | {0x85, 0xA0}


def first_non_ws_index(data: bytes | None) -> int:
    """Return the index of the first byte that is not whitespace."""
    if data is None:
        return 0
    for index, byte in enumerate(data):
        if byte not in _WHITESPACE:
            return index
    return len(data)


def _starts_with(data: bytes | None, signature: bytes) -> bool:
    if data is None:
        return False
    start = first_non_ws_index(data)
    return bytes(data[start:start + len(signature)]) == signature


def is_png(data: bytes | None) -> bool:
    """Tell whether data, after leading whitespace, begins with the PNG signature."""
    return _starts_with(data, PNG_SIGNATURE)


def is_jpg(data: bytes | None) -> bool:
    """Tell whether data, after leading whitespace, begins with the JPEG signature."""
    return _starts_with(data, JPG_SIGNATURE)