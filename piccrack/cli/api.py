"""Commands that run and check the HTTP API server."""

from __future__ import annotations

import os
import sqlite3
import urllib.error
import urllib.request
from dataclasses import dataclass

import click

from piccrack import config as config_module
from piccrack import database, retry
from piccrack.api.server import Server
from piccrack.api.service import Service
from piccrack.logger import new_logger

DEFAULT_CONFIG_PATH = "./config/development.yaml"
HEALTHZ_PATH = "/api/v1/healthz"


@dataclass
class _ApiOptions:
    config: str
    host: str
    port: str
    verbose: bool


def _join_host_port(host: str, port: str) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _options(ctx: click.Context) -> _ApiOptions:
    options = ctx.find_object(_ApiOptions)
    if options is None:
        return _ApiOptions(DEFAULT_CONFIG_PATH, "localhost", "8080", False)
    return options


@click.group(name="api", invoke_without_command=True, help="API root command.")
@click.option("--config", default=DEFAULT_CONFIG_PATH, show_default=True, help="config file path")
@click.option("--host", default="localhost", show_default=True, help="http server host")
@click.option("--port", default="8080", show_default=True, help="http server port")
@click.option("-v", "--verbose", is_flag=True, default=False, help="print verbose actions")
@click.pass_context
def api(ctx: click.Context, config: str, host: str, port: str, verbose: bool) -> None:
    """Group the API commands; without a subcommand show help."""
    ctx.obj = _ApiOptions(config=config, host=host, port=port, verbose=verbose)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@api.command(name="healthz", help="Checks health of http API server")
@click.pass_context
def healthz(ctx: click.Context) -> None:
    """Check the API server and, when it is not healthy, the database."""
    options = _options(ctx)
    log = new_logger(options.verbose)

    try:
        cfg = config_module.load(options.config)
    except (OSError, ValueError) as exc:
        log.error("Failed to load config err=%s", exc)
        raise click.ClickException(f"loading config err: {exc}") from exc

    url = "http://" + _join_host_port(cfg.http.host, cfg.http.port) + HEALTHZ_PATH
    log.info("Sending request url=%s", url)
    try:
        with urllib.request.urlopen(url) as response:
            status = response.status
    except urllib.error.HTTPError as exc:
        status = exc.code
        exc.close()
    except (urllib.error.URLError, OSError, ValueError) as exc:
        log.error("Failed to do request with a client err=%s", exc)
        raise click.ClickException(f"client do request err: {exc}") from exc

    if status == 200:
        log.info("Received response and server OK statusCode=%d", status)
        return
    if status == 404:
        log.info("Received not found statusCode=%d", status)
    else:
        log.info("Received response statusCode=%d", status)

    try:
        pool = database.create_pool(cfg.database)
    except (ValueError, sqlite3.Error) as exc:
        log.error("Failed to get db pool err=%s", exc)
        raise click.ClickException(f"db pool: {exc}") from exc
    with pool:
        log.info("Pinging database...")
        try:
            retry.ping(pool, retry.MAX_RETRIES)
        except retry.RetryError as exc:
            log.error("Pinging db pool failed err=%s", exc)
            raise click.ClickException(f"db pool: {exc}") from exc
        log.info("Pinging db success.")
        try:
            conn = database.connect(pool)
        except (ConnectionError, sqlite3.Error) as exc:
            log.error("Failed to connect to a database err=%s", exc)
            raise click.ClickException(f"db connection: {exc}") from exc
        conn.close()
    log.info("Program completed successfully.")


@api.command(name="start", help="Starts http API server.")
@click.pass_context
def start(ctx: click.Context) -> None:
    """Serve the API with the configuration named by CONFIG_PATH."""
    options = _options(ctx)
    log = new_logger(options.verbose)

    try:
        cfg = config_module.load(os.environ.get("CONFIG_PATH", ""))
    except (OSError, ValueError) as exc:
        log.error("Loading database config err=%s", exc)
        raise click.ClickException(f"config load: {exc}") from exc

    click.echo(f"CONFIG: {cfg!r}")

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
            database.apply_schema(conn)
            svc = Service(database.Queries(conn), log)
            server = Server(cfg.http, svc, log)
            server.start()
        except (OSError, ValueError, RuntimeError, sqlite3.Error) as exc:
            log.error("Failed to listen and serve err=%s", exc)
            raise click.ClickException(f"listen and serve err: {exc}") from exc
        finally:
            conn.close()
    log.info("Program completed successfully.")