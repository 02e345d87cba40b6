"""Optical character recognition of PNG and JPEG images."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import BinaryIO

from piccrack import imgsniff, pproc

DEFAULT_WHITELIST = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789 \n"
)
MAX_IMAGE_SIZE = 10 * 1024 * 1024
READ_LIMIT = 500 * 1024

Engine = Callable[[bytes], str]


class NotAnImageError(ValueError):
    """Raised when content is neither PNG nor JPEG."""

    def __init__(self) -> None:
        super().__init__("not an image")


class Client:
    """Recognises text in image content with a pluggable recognition engine.

    The engine's output is limited to the characters of the whitelist and,
    when trim is set, stripped of surrounding whitespace.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        whitelist: str = DEFAULT_WHITELIST,
        trim: bool = True,
    ) -> None:
        self._engine = engine
        self.whitelist = whitelist
        self.trim = trim
        self._allowed = frozenset(whitelist)
        self._closed = False

    def text(self, content: bytes) -> str:
        """Return the text recognised in content."""
        if self._closed:
            raise RuntimeError("client is closed")
        raw = self._engine(bytes(content))
        if self.whitelist:
            raw = "".join(char for char in raw if char in self._allowed)
        if self.trim:
            raw = raw.strip()
        return raw

    def close(self) -> None:
        """Release the client; it cannot be used afterwards."""
        self._closed = True

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@dataclass(frozen=True)
class Result:
    """Text recognised in an image, with the image's path and content."""

    path: str
    content: bytes
    text: str

    def __str__(self) -> str:
        return self.text

    def words(self) -> Iterator[str]:
        """Yield each whitespace-separated word of the text, lower-cased."""
        for word in self.text.split():
            yield word.lower()


def is_image(content: bytes | None) -> bool:
    """Tell whether content looks like a JPEG or PNG image."""
    return imgsniff.is_jpg(content) or imgsniff.is_png(content)


def _scan(client: Client, content: bytes | None) -> str:
    if client is None:
        raise ValueError("client cannot be None")
    if content is None:
        raise ValueError("content cannot be None")
    if not is_image(content):
        raise NotAnImageError()
    return client.text(content)


def scan_file(client: Client, path: str) -> Result:
    """Recognise text in the image file at path after checking it is an image."""
    if client is None:
        raise ValueError("client cannot be None")
    if not path:
        raise ValueError("path can't be empty")
    path = os.path.normpath(path)
    with open(path, "rb") as handle:
        content = handle.read()
    return Result(path=path, content=content, text=_scan(client, content))


def scan_dir(client: Client, root: str) -> list[Result]:
    """Recognise text in every image found under root."""
    images = list(pproc.walk(root, is_image))
    return [scan_file(client, image.path) for image in images]


def read_full(reader: BinaryIO) -> bytes:
    """Read from reader until it is exhausted or READ_LIMIT bytes have been read."""
    chunks: list[bytes] = []
    total = 0
    while total < READ_LIMIT:
        chunk = reader.read(READ_LIMIT - total)
        if not chunk:
            break
        chunks.append(chunk)
        total += len(chunk)
    return b"".join(chunks)


def scan_from(client: Client, reader: BinaryIO) -> Result:
    """Recognise text in image content read from reader."""
    if client is None:
        raise ValueError("client cannot be None")
    if reader is None:
        raise ValueError("reader is None")
    content = read_full(reader)
    return Result(path="", content=content, text=_scan(client, content))