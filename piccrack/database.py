"""Storage of words, phrases and their batches.

The database named by the configuration is kept in an SQLite file; the name
``:memory:`` keeps it in memory for as long as the pool stays open.
"""

from __future__ import annotations

import sqlite3
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from piccrack.config import DatabaseConfig

MEMORY_NAME = ":memory:"

_MAX_CONNS = 25
_MIN_CONNS = 5
_MAX_CONN_LIFETIME = 3600.0
_MAX_CONN_IDLE_TIME = 1800.0
_CONNECT_TIMEOUT = 10.0
_DIALER_KEEP_ALIVE = 5.0

_SCHEMA = """
CREATE TABLE IF NOT EXISTS word_batches (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    deleted_at TEXT
);

CREATE TABLE IF NOT EXISTS words (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    value TEXT NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    deleted_at TEXT,
    batch_id INTEGER REFERENCES word_batches (id)
);

CREATE TABLE IF NOT EXISTS phrase_batches (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    deleted_at TEXT
);

CREATE TABLE IF NOT EXISTS phrases (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    value TEXT NOT NULL,
    batch_id INTEGER REFERENCES phrase_batches (id),
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    deleted_at TEXT
);
"""


class InvalidConfigError(ValueError):
    """Raised when the database configuration lacks required fields."""

    def __init__(self) -> None:
        super().__init__("invalid configuration: missing required fields")


def validate_config(cfg: DatabaseConfig) -> None:
    """Raise InvalidConfigError unless host, port, user and name are all set."""
    if not cfg.host or not cfg.port or not cfg.user or not cfg.name:
        raise InvalidConfigError()


def _join_host_port(host: str, port: str) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def dsn(cfg: DatabaseConfig) -> str:
    """Return the connection string described by cfg."""
    host_port = _join_host_port(cfg.host, cfg.port)
    return f"postgres://{cfg.user}:{cfg.password}@{host_port}/{cfg.name}?sslmode=disable"


def _parse_time(value: str | None) -> datetime | None:
    if value is None:
        return None
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class Pool:
    """A handle on the database that hands out connections."""

    def __init__(self, cfg: DatabaseConfig) -> None:
        self.dsn = dsn(cfg)
        self.name = cfg.name
        self.max_conns = _MAX_CONNS
        self.min_conns = _MIN_CONNS
        self.max_conn_lifetime = _MAX_CONN_LIFETIME
        self.max_conn_idle_time = _MAX_CONN_IDLE_TIME
        self.connect_timeout = _CONNECT_TIMEOUT
        self.dialer_keep_alive = _DIALER_KEEP_ALIVE
        if cfg.name == MEMORY_NAME:
            self._target = f"file:piccrack-{uuid.uuid4().hex}?mode=memory&cache=shared"
        else:
            self._target = Path(cfg.name).absolute().as_uri()
        self._closed = False
        self._keeper = self._open()

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._target,
            uri=True,
            timeout=self.connect_timeout,
            check_same_thread=False,
        )
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @property
    def closed(self) -> bool:
        """Whether the pool has been closed."""
        return self._closed

    def ping(self) -> None:
        """Check that the database answers; raise ConnectionError if the pool is closed."""
        if self._closed:
            raise ConnectionError("closed pool")
        self._keeper.execute("SELECT 1").fetchone()

    def close(self) -> None:
        """Close the pool; later pings and connections fail."""
        if not self._closed:
            self._closed = True
            self._keeper.close()

    def connection(self) -> sqlite3.Connection:
        """Open a new connection to the pool's database."""
        if self._closed:
            raise ConnectionError("closed pool")
        return self._open()

    def __enter__(self) -> Pool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def create_pool(cfg: DatabaseConfig) -> Pool:
    """Validate cfg and open a pool on the database it names."""
    validate_config(cfg)
    return Pool(cfg)


def connect(pool: Pool) -> sqlite3.Connection:
    """Open a single connection through pool."""
    return pool.connection()


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create the tables the queries use, if they do not exist yet."""
    conn.executescript(_SCHEMA)
    conn.commit()


@dataclass(frozen=True)
class CreateWordRow:
    id: int
    value: str
    created_at: datetime | None


@dataclass(frozen=True)
class CreateWordsBatchRow:
    id: int
    value: str
    batch_id: int | None


@dataclass(frozen=True)
class CreatePhrasesBatchRow:
    id: int
    batch_id: int | None


@dataclass(frozen=True)
class ListWordsRow:
    id: int
    value: str
    created_at: datetime | None


@dataclass(frozen=True)
class ListWordBatchesRow:
    id: int
    name: str
    created_at: datetime | None


@dataclass(frozen=True)
class ListWordFrequenciesRow:
    value: str
    total: int


@dataclass(frozen=True)
class ListWordRankingsRow:
    value: str
    ranking: int


@dataclass(frozen=True)
class ListWordsByBatchNameRow:
    batch_name: str
    word_value: str


def _paging(limit: int, offset: int) -> tuple[int, int]:
    if limit < 0:
        raise ValueError("LIMIT must not be negative")
    if offset < 0:
        raise ValueError("OFFSET must not be negative")
    return int(limit), int(offset)


class Queries:
    """The queries run against one connection."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def _fetch(self, sql: str, params: tuple) -> list[tuple]:
        return self._db.execute(sql, params).fetchall()

    def _insert_batch(
        self, batch_table: str, item_table: str, name: str, values: list[str]
    ) -> tuple[int, list[int]]:
        with self._db:
            batch_id = self._db.execute(
                f"INSERT INTO {batch_table} (name) VALUES (?)", (name,)
            ).lastrowid
            ids = [
                self._db.execute(
                    f"INSERT INTO {item_table} (value, batch_id) VALUES (?, ?)",
                    (value, batch_id),
                ).lastrowid
                for value in values
            ]
        if not ids:
            raise LookupError("no rows in result set")
        return batch_id, ids

    def create_word(self, value: str) -> CreateWordRow:
        """Insert a word and return the stored row."""
        with self._db:
            word_id = self._db.execute(
                "INSERT INTO words (value, created_at) VALUES (?, CURRENT_TIMESTAMP)",
                (value,),
            ).lastrowid
            row = self._db.execute(
                "SELECT id, value, created_at FROM words WHERE id = ?", (word_id,)
            ).fetchone()
        return CreateWordRow(id=row[0], value=row[1], created_at=_parse_time(row[2]))

    def create_words_batch(self, name: str, values: Iterable[str]) -> CreateWordsBatchRow:
        """Insert a named batch with its words; return the first inserted word.

        Raises LookupError when values is empty (the batch itself is still stored).
        """
        values = list(values)
        batch_id, ids = self._insert_batch("word_batches", "words", name, values)
        return CreateWordsBatchRow(id=ids[0], value=values[0], batch_id=batch_id)

    def create_phrases_batch(self, name: str, phrases: Iterable[str]) -> CreatePhrasesBatchRow:
        """Insert a named batch with its phrases; return the first inserted phrase.

        Raises LookupError when phrases is empty (the batch itself is still stored).
        """
        phrases = list(phrases)
        batch_id, ids = self._insert_batch("phrase_batches", "phrases", name, phrases)
        return CreatePhrasesBatchRow(id=ids[0], batch_id=batch_id)

    def list_words(self, limit: int, offset: int = 0) -> list[ListWordsRow]:
        """List words that are not deleted, ordered by value."""
        rows = self._fetch(
            "SELECT id, value, created_at FROM words WHERE deleted_at IS NULL "
            "ORDER BY value ASC LIMIT ? OFFSET ?",
            _paging(limit, offset),
        )
        return [ListWordsRow(row[0], row[1], _parse_time(row[2])) for row in rows]

    def list_word_batches(self, limit: int, offset: int = 0) -> list[ListWordBatchesRow]:
        """List word batches that are not deleted, oldest first."""
        rows = self._fetch(
            "SELECT id, name, created_at FROM word_batches WHERE deleted_at IS NULL "
            "ORDER BY created_at ASC LIMIT ? OFFSET ?",
            _paging(limit, offset),
        )
        return [ListWordBatchesRow(row[0], row[1], _parse_time(row[2])) for row in rows]

    def list_word_frequencies(self, limit: int, offset: int = 0) -> list[ListWordFrequenciesRow]:
        """Count occurrences of each word value, least frequent first."""
        rows = self._fetch(
            "SELECT value, COUNT(*) AS total FROM words WHERE deleted_at IS NULL "
            "GROUP BY value ORDER BY total ASC LIMIT ? OFFSET ?",
            _paging(limit, offset),
        )
        return [ListWordFrequenciesRow(row[0], row[1]) for row in rows]

    def list_word_rankings(self, limit: int, offset: int = 0) -> list[ListWordRankingsRow]:
        """Rank word values by occurrence count, most frequent ranked 1."""
        rows = self._fetch(
            "SELECT value, ROW_NUMBER() OVER (ORDER BY COUNT(*) DESC) AS ranking "
            "FROM words WHERE deleted_at IS NULL GROUP BY value "
            "ORDER BY ranking ASC LIMIT ? OFFSET ?",
            _paging(limit, offset),
        )
        return [ListWordRankingsRow(row[0], row[1]) for row in rows]

    def list_words_by_batch_name(self, name: str) -> list[ListWordsByBatchNameRow]:
        """List batch and word values where a batch named name matches a word by id."""
        rows = self._fetch(
            "SELECT wb.name AS batch_name, w.value AS word_value "
            "FROM word_batches AS wb INNER JOIN words AS w ON wb.id = w.id "
            "WHERE wb.name = ? AND wb.deleted_at IS NULL "
            "ORDER BY wb.created_at DESC",
            (name,),
        )
        return [ListWordsByBatchNameRow(row[0], row[1]) for row in rows]