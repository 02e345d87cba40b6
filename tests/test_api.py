import logging
import socket
import threading
import time

import pytest

from piccrack.api.server import Server
from piccrack.api.service import Service
from piccrack.cli.main import main
from piccrack.config import APIConfig, DatabaseConfig
from piccrack.database import Pool, Queries, apply_schema, connect

LOGGER = logging.getLogger("test-api")


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _wait_listening(port):
    deadline = time.monotonic() + 5
    while time.monotonic() < deadline:
        try:
            socket.create_connection(("127.0.0.1", port), timeout=0.2).close()
            return
        except OSError:
            time.sleep(0.05)
    raise AssertionError("server did not start listening")


def _write_config(path, port, database=True):
    text = f'http:\n  host: "127.0.0.1"\n  port: "{port}"\n'
    if database:
        text += "database:\n  user: testuser\n  host: localhost\n  port: 5433\n  name: piccrack\n"
    path.write_text(text, encoding="utf-8")
    return path


def _combined(capsys):
    captured = capsys.readouterr()
    return captured.out + captured.err


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    return work


@pytest.fixture
def running_server():
    pool = Pool(DatabaseConfig(name=":memory:"))
    conn = connect(pool)
    apply_schema(conn)
    port = _free_port()
    server = Server(
        APIConfig(host="127.0.0.1", port=str(port)), Service(Queries(conn), LOGGER), LOGGER
    )
    stop = threading.Event()
    thread = threading.Thread(target=server.start, args=(stop,), daemon=True)
    thread.start()
    _wait_listening(port)
    yield port
    stop.set()
    thread.join(5)
    conn.close()
    pool.close()


def test_api_without_subcommand_shows_help(capsys):
    assert main(["api"]) == 0
    output = _combined(capsys)
    assert "healthz" in output
    assert "start" in output


def test_healthz_reports_server_ok(tmp_path, running_server, capsys):
    path = _write_config(tmp_path / "config.yaml", running_server)
    assert main(["api", "--config", str(path), "-v", "healthz"]) == 0
    assert "server OK" in _combined(capsys)


def test_healthz_fails_when_server_is_down(tmp_path, capsys):
    path = _write_config(tmp_path / "config.yaml", _free_port())
    assert main(["api", "--config", str(path), "healthz"]) == 1
    assert "client do request err" in _combined(capsys)


def test_healthz_fails_without_config(tmp_path, capsys):
    assert main(["api", "--config", str(tmp_path / "missing.yaml"), "healthz"]) == 1
    assert "loading config err" in _combined(capsys)


def test_start_requires_config_path(monkeypatch, capsys):
    monkeypatch.delenv("CONFIG_PATH", raising=False)
    assert main(["api", "start"]) == 1
    assert "config load" in _combined(capsys)


def test_start_rejects_invalid_database_config(tmp_path, monkeypatch, capsys):
    path = _write_config(tmp_path / "config.yaml", _free_port(), database=False)
    monkeypatch.setenv("CONFIG_PATH", str(path))
    assert main(["api", "start"]) == 1
    output = _combined(capsys)
    assert "CONFIG: Config(" in output
    assert "invalid configuration: missing required fields" in output