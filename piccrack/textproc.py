"""Word frequency analysis, line scanning and line-oriented writing."""

from __future__ import annotations

import secrets
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, BinaryIO, Protocol

_ID_LAYOUT = "%d_%m_%Y_%H_%M"
_ID_RANDOM_LIMIT = 10000


class EmptyWordsError(ValueError):
    """Raised when no word list is given for analysis."""

    def __init__(self) -> None:
        super().__init__("words is empty")


def new_analysis_id() -> str:
    """Return an id of the form analysis_<dd_mm_yyyy_HH_MM>_<random number>."""
    date = datetime.now(timezone.utc).strftime(_ID_LAYOUT)
    return f"analysis_{date}_{secrets.randbelow(_ID_RANDOM_LIMIT)}"


def new_analysis_id_with_suffix(suffix: str) -> str:
    """Return a new analysis id prefixed with the space-trimmed suffix."""
    return f"{suffix.strip(' ')}_{new_analysis_id()}"


@dataclass
class TextAnalysis:
    """Occurrence counts of words, safe to update from several threads."""

    id: str = field(default_factory=new_analysis_id)
    word_frequency: dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def inc_word_count(self, word: str) -> None:
        """Record one more occurrence of word."""
        with self._lock:
            self.word_frequency[word] = self.word_frequency.get(word, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form of the analysis."""
        with self._lock:
            return {"id": self.id, "wordFrequency": dict(self.word_frequency)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TextAnalysis:
        """Build an analysis from its JSON form."""
        frequency = data.get("wordFrequency") or {}
        return cls(
            id=str(data.get("id", "")),
            word_frequency={str(word): int(count) for word, count in frequency.items()},
        )


def analyze_words_frequency(words: Iterable[str] | None) -> TextAnalysis:
    """Count occurrences of each word."""
    if words is None:
        raise EmptyWordsError()
    analysis = TextAnalysis()
    for word in words:
        analysis.inc_word_count(word)
    return analysis


def _lines(text: str) -> Iterator[str]:
    parts = text.lower().split("\n")
    if parts[-1] == "":
        parts.pop()
    for part in parts:
        if part.endswith("\r"):
            part = part[:-1]
        yield part.strip(" ")


def scan_lines(*args: str) -> Iterator[str]:
    """Yield the lower-cased, space-trimmed lines of each text in turn."""
    for text in args:
        yield from _lines(text)


class _Writer(Protocol):
    def write(self, data: Any) -> Any: ...


def write(writer: _Writer, data: bytes) -> None:
    """Write data to writer."""
    writer.write(data)


class FileWriter:
    """Writes each piece of data as its own line to a binary file."""

    def __init__(self, file: BinaryIO) -> None:
        self._file = file
        self._lock = threading.Lock()

    def write(self, data: bytes | str) -> int:
        """Write data followed by a newline; return the number of bytes written."""
        payload = data.encode() if isinstance(data, str) else bytes(data)
        payload += b"\n"
        with self._lock:
            self._file.write(payload)
        return len(payload)