"""Commands that store, list and analyse words."""

from __future__ import annotations

import json
import logging
import os
import re
import sqlite3
from collections import Counter
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import click

from piccrack import config as config_module
from piccrack import database, openf, retry, textproc
from piccrack.logger import new_logger

CONFIG_PATH = "config/development.yaml"
DEFAULT_LIMIT = 30
MAX_INT32 = 2**31 - 1
MIN_INT32 = -(2**31)
ANALYSIS_FILE_MODE = 0o600

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")


class _PositionalGroup(click.Group):
    """A group that also takes one optional positional value.

    A first positional argument that is not one of the group's commands is
    passed on as the value of the named option.
    """

    def __init__(self, *args: Any, positional_option: str, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.positional_option = positional_option

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        args = list(args)
        skip_next = False
        for index, arg in enumerate(args):
            if skip_next:
                skip_next = False
                continue
            if arg == self.positional_option:
                skip_next = True
                continue
            if arg == "--":
                break
            if arg.startswith("-") and not _INT_PATTERN.fullmatch(arg):
                continue
            if arg not in self.commands:
                args[index:index + 1] = [self.positional_option, arg]
            break
        return super().parse_args(ctx, args)


@dataclass
class _WordsOptions:
    verbose: bool


def _verbose(ctx: click.Context) -> bool:
    options = ctx.find_object(_WordsOptions)
    return options.verbose if options is not None else False


def _parse_int32(text: str) -> int:
    if not _INT_PATTERN.fullmatch(text):
        raise ValueError(f'parsing "{text}": invalid syntax')
    number = int(text)
    if not MIN_INT32 <= number <= MAX_INT32:
        raise ValueError(f'parsing "{text}": value out of range')
    return number


def _lenient_int32(text: str, log: logging.Logger) -> int:
    """Parse text as an int32; on failure log it and fall back like a failed parse does."""
    try:
        return _parse_int32(text)
    except ValueError as exc:
        log.error("Failed to strconv err=%s", exc)
    if not _INT_PATTERN.fullmatch(text):
        return 0
    return MAX_INT32 if int(text) > 0 else MIN_INT32


@contextmanager
def _queries(log: logging.Logger, config_error: str) -> Iterator[database.Queries]:
    """Load the configuration, open the database and yield queries on it."""
    try:
        cfg = config_module.load(CONFIG_PATH)
    except (OSError, ValueError) as exc:
        log.error("Loading database config err=%s", exc)
        raise click.ClickException(f"{config_error}: {exc}") from exc

    try:
        pool = database.create_pool(cfg.database)
    except (ValueError, sqlite3.Error) as exc:
        log.error("Loading database pool err=%s", exc)
        raise click.ClickException(f"database pool: {exc}") from exc

    with pool:
        try:
            retry.ping(pool, retry.MAX_RETRIES)
        except retry.RetryError as exc:
            log.error("Pinging database err=%s", exc)
            raise click.ClickException(f"database ping: {exc}") from exc

        try:
            conn = database.connect(pool)
        except (ConnectionError, sqlite3.Error) as exc:
            log.error("Connecting to database err=%s", exc)
            raise click.ClickException(f"database connection: {exc}") from exc
        try:
            try:
                database.apply_schema(conn)
            except sqlite3.Error as exc:
                log.error("Connecting to database err=%s", exc)
                raise click.ClickException(f"database connection: {exc}") from exc
            yield database.Queries(conn)
        finally:
            conn.close()


def _format_word(row: database.ListWordsRow) -> str:
    created = row.created_at.isoformat() if row.created_at is not None else ""
    return f"{{{row.id} {row.value} {created}}}"


@click.group(
    name="words",
    cls=_PositionalGroup,
    positional_option="--limit",
    invoke_without_command=True,
    help="Lists words from a database",
    epilog="Example: piccrack words [limit]",
)
@click.option("--limit", default=None, metavar="INT32", help="maximum number of words to list")
@click.option("-v", "--verbose", is_flag=True, default=False, help="print verbose actions")
@click.pass_context
def words(ctx: click.Context, limit: str | None, verbose: bool) -> None:
    """List stored words ordered by value; without a limit list them all."""
    ctx.obj = _WordsOptions(verbose=verbose)
    if ctx.invoked_subcommand is not None:
        return
    log = new_logger(verbose)
    with _queries(log, "load config") as queries:
        row_limit = MAX_INT32
        if limit is not None:
            try:
                row_limit = _parse_int32(limit)
            except ValueError as exc:
                raise click.ClickException(f"parse uint: {exc}") from exc
        try:
            rows = queries.list_words(row_limit, 0)
        except (ValueError, sqlite3.Error) as exc:
            log.error("Connecting to database err=%s", exc)
            raise click.ClickException(f"database connection: {exc}") from exc
        log.info("Listing words from a database len_words=%d", len(rows))
        for row in rows:
            click.echo(_format_word(row))


@words.group(
    name="add",
    cls=_PositionalGroup,
    positional_option="--word",
    invoke_without_command=True,
    help="Add word to a database.",
    epilog="Example: piccrack words add [WORD]",
)
@click.option("--word", default=None, help="word to add")
@click.pass_context
def add(ctx: click.Context, word: str | None) -> None:
    """Store one word."""
    if ctx.invoked_subcommand is not None:
        return
    if word is None:
        raise click.UsageError("a word to add is required", ctx=ctx)
    log = new_logger(_verbose(ctx))
    with _queries(log, "config load") as queries:
        try:
            row = queries.create_word(word)
        except sqlite3.Error as exc:
            log.error("Inserting word failed err=%s", exc)
            raise click.ClickException(f"word insert: {exc}") from exc
        log.info(
            "Inserted word word=%d value=%s created_at_time=%s",
            row.id,
            row.value,
            row.created_at,
        )
    log.info("Program completed successfully.")


def _frequencies_from_json(data: Any) -> dict[str, int]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("cannot unmarshal into analysis: not an object")
    analysis_id = data.get("id")
    if analysis_id is not None and not isinstance(analysis_id, str):
        raise ValueError("cannot unmarshal id: not a string")
    frequency = data.get("wordFrequency")
    if frequency is None:
        return {}
    if not isinstance(frequency, dict):
        raise ValueError("cannot unmarshal wordFrequency: not an object")
    for word, count in frequency.items():
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValueError(f"cannot unmarshal frequency of {word!r} into int")
    return dict(frequency)


def _read_text(path: str, log: logging.Logger) -> str:
    try:
        with open(path, encoding="utf-8", errors="replace") as handle:
            return handle.read()
    except OSError as exc:
        log.error("Failed to read file path=%s", path)
        raise click.ClickException(f"read file: {exc}") from exc


def _read_frequencies(path: str, log: logging.Logger) -> dict[str, int]:
    extension = os.path.splitext(os.path.normpath(path))[1]
    if extension == ".json":
        text = _read_text(path, log)
        try:
            return _frequencies_from_json(json.loads(text))
        except ValueError as exc:
            log.error("Failed to unmarshal json into analysis")
            raise click.ClickException(f"unmarshal json: {exc}") from exc
    if extension == ".txt":
        return dict(Counter(_read_text(path, log).split()))
    return {}


@add.command(
    name="many",
    help="Adds many words to a database.",
    epilog="Example: piccrack words add many [<name>.txt | <name>.json]",
)
@click.argument("path")
@click.pass_context
def many(ctx: click.Context, path: str) -> None:
    """Store each distinct word of a .txt file or of a .json analysis once."""
    verbose = _verbose(ctx)
    log = new_logger(verbose)
    with _queries(log, "config load") as queries:
        frequencies = _read_frequencies(path, log)
        if verbose:
            for word, count in frequencies.items():
                click.echo(f"WORD: {word}, FREQUENCY: {count}")
        for word in frequencies:
            try:
                row = queries.create_word(word)
            except sqlite3.Error as exc:
                log.error("Failed to insert word word=%s", word)
                raise click.ClickException(f"word insert: {exc}") from exc
            log.info("Inserted row to a database id=%d word=%s", row.id, row.value)
    log.info("Program completed successfully.")


@words.group(
    name="frequency",
    cls=_PositionalGroup,
    positional_option="--limit",
    invoke_without_command=True,
    help="Outputs words frequency from a database",
    epilog="Example: piccrack words frequency [limit]",
)
@click.option("--limit", default=None, metavar="INT32", help="maximum number of rows")
@click.pass_context
def frequency(ctx: click.Context, limit: str | None) -> None:
    """Count stored words by value, least frequent first."""
    if ctx.invoked_subcommand is not None:
        return
    verbose = _verbose(ctx)
    log = new_logger(verbose)
    with _queries(log, "config load") as queries:
        row_limit = DEFAULT_LIMIT if limit is None else _lenient_int32(limit, log)
        try:
            rows = queries.list_word_frequencies(row_limit, 0)
        except (ValueError, sqlite3.Error) as exc:
            log.error("Failed to analyze word frequency count err=%s", exc)
            raise click.ClickException(f"getting word frequency count: {exc}") from exc
        log.info("Got word frequency count rows len=%d", len(rows))
        if verbose:
            for index, row in enumerate(rows):
                click.echo(f"{index}: ROW: [{row.value}, {row.total}] ")
    log.info("Program completed successfully.")


@frequency.command(
    name="analyze",
    help="Analyze words frequency in .txt and write output to .json",
    epilog="Example: piccrack words frequency analyze --path=./testdata/words.txt --out=./output",
)
@click.option("--path", "path", required=True, help="Path of txt input file")
@click.option("--out", "out", default=".", show_default=True, help="JSON file output path")
@click.pass_context
def analyze(ctx: click.Context, path: str, out: str) -> None:
    """Count the words of a text file and write the analysis as JSON into out."""
    log = new_logger(_verbose(ctx))
    try:
        with open(os.path.normpath(path), encoding="utf-8", errors="replace") as handle:
            content = handle.read()
    except OSError as exc:
        log.error("Failed to read txt file err=%s", exc)
        raise click.ClickException(f"read file: {exc}") from exc

    word_list: Sequence[str] = content.split()
    try:
        analysis = textproc.analyze_words_frequency(word_list)
    except textproc.EmptyWordsError as exc:
        log.error("Analyzing words frequency failed err=%s", exc)
        raise click.ClickException(f"frequency analysis: {exc}") from exc

    json_path = str(openf.join(out, analysis.id, "json"))
    log.info("Opening file json_path=%s", json_path)
    data = json.dumps(analysis.to_dict(), indent=1, sort_keys=True, ensure_ascii=False)
    try:
        fd = os.open(json_path, os.O_APPEND | os.O_CREAT | os.O_RDWR, ANALYSIS_FILE_MODE)
    except OSError as exc:
        log.error("Failed to open cleaned json file err=%s", exc)
        raise click.ClickException(f"open cleaned: {exc}") from exc
    log.info("Writing analysis to json file json_path=%s", json_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.truncate(0)
            handle.write(data)
    except OSError as exc:
        log.error("Failed to write json analysis err=%s", exc)
        raise click.ClickException(f"json write: {exc}") from exc
    log.info("Program completed successfully.")


@words.command(name="rank", help="Displays ranking of words from a database.")
@click.argument("limit", required=False)
@click.pass_context
def rank(ctx: click.Context, limit: str | None) -> None:
    """Print stored word values ranked by how often they occur."""
    log = new_logger(_verbose(ctx))
    with _queries(log, "loading config") as queries:
        row_limit = DEFAULT_LIMIT if limit is None else _lenient_int32(limit, log)
        try:
            rows = queries.list_word_rankings(row_limit, 0)
        except (ValueError, sqlite3.Error) as exc:
            log.error("Failed to get words rank err=%s", exc)
            raise click.ClickException(f"words rank err: {exc}") from exc
        for row in rows:
            click.echo(f"WORD: {row.value} | RANK: {row.ranking}")
    log.info("Program completed successfully.")