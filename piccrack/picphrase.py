"""Phrases (text lines) recognised in images."""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO

from piccrack import ocr
from piccrack.textproc import scan_lines


@dataclass(frozen=True)
class Phrase:
    """One line of recognised text."""

    value: str

    def __str__(self) -> str:
        return self.value


def _phrases(*texts: str) -> Iterator[Phrase]:
    for line in scan_lines(*texts):
        yield Phrase(line)


def scan_at(client: ocr.Client, path: str) -> Iterator[Phrase]:
    """Recognise the image at path and return its phrases."""
    result = ocr.scan_file(client, os.path.normpath(path))
    return _phrases(result.text)


def scan_dir(client: ocr.Client, directory: str) -> Iterator[Phrase]:
    """Recognise every image under directory and return all their phrases."""
    directory = os.path.normpath(directory)
    if not os.path.isdir(directory):
        os.stat(directory)
        raise NotADirectoryError("path must be dir")
    texts = [result.text for result in ocr.scan_dir(client, directory)]
    return _phrases(*texts)


def scan_reader(client: ocr.Client, reader: BinaryIO) -> Iterator[Phrase]:
    """Recognise image content read from reader and return its phrases."""
    result = ocr.scan_from(client, reader)
    return _phrases(result.text)