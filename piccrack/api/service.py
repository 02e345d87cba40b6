"""Word and phrase operations offered to the HTTP API."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from piccrack.database import (
    CreatePhrasesBatchRow,
    CreateWordRow,
    CreateWordsBatchRow,
    ListWordBatchesRow,
    ListWordsByBatchNameRow,
    ListWordsRow,
)


class _Querier(Protocol):
    def create_word(self, value: str) -> CreateWordRow: ...

    def create_words_batch(self, name: str, values: Iterable[str]) -> CreateWordsBatchRow: ...

    def create_phrases_batch(
        self, name: str, phrases: Iterable[str]
    ) -> CreatePhrasesBatchRow: ...

    def list_words(self, limit: int, offset: int) -> list[ListWordsRow]: ...

    def list_word_batches(self, limit: int, offset: int) -> list[ListWordBatchesRow]: ...

    def list_words_by_batch_name(self, name: str) -> list[ListWordsByBatchNameRow]: ...


class Service:
    """Runs the API's operations against a set of queries."""

    def __init__(self, queries: _Querier, logger: logging.Logger | None = None) -> None:
        self.queries = queries
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def list_words(self, limit: int, offset: int) -> list[ListWordsRow]:
        """List stored words, paged by limit and offset."""
        return self.queries.list_words(limit, offset)

    def create_word(self, value: str) -> CreateWordRow:
        """Store one word; the value must not be empty."""
        if value == "":
            raise ValueError("value cannot be empty")
        return self.queries.create_word(value)

    def list_word_batches(self, limit: int, offset: int) -> list[ListWordBatchesRow]:
        """List word batches, paged by limit and offset."""
        return self.queries.list_word_batches(limit, offset)

    def create_words_batch(self, name: str, values: Iterable[str]) -> CreateWordsBatchRow:
        """Store a named batch of words."""
        return self.queries.create_words_batch(name, list(values))

    def list_words_by_batch_name(self, name: str) -> list[ListWordsByBatchNameRow]:
        """List the words of the batch called name."""
        return self.queries.list_words_by_batch_name(name)

    def create_phrases_batch(self, name: str, values: Iterable[str]) -> CreatePhrasesBatchRow:
        """Store a named batch of phrases, leaving out blank ones."""
        phrases = [value for value in values if value.strip(" ") != ""]
        return self.queries.create_phrases_batch(name, phrases)