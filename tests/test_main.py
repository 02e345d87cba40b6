import json

import pytest

from piccrack.cli.main import main


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    return work


def _combined(capsys):
    captured = capsys.readouterr()
    return captured.out + captured.err


def test_help_lists_commands(isolated, capsys):
    assert main(["--help"]) == 0
    out = capsys.readouterr().out
    assert "words" in out
    assert "api" in out


def test_no_subcommand_shows_help(isolated, capsys):
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "Analyze text from screenshots and performing word frequency analysis." in out


def test_unknown_command_exits_with_one(isolated, capsys):
    assert main(["nosuch"]) == 1
    assert "nosuch" in capsys.readouterr().err


def test_failing_command_exits_with_one(isolated, capsys):
    assert main(["words", "add", "x"]) == 1
    assert "config load" in capsys.readouterr().err


def test_analyze_through_main(isolated):
    source = isolated / "words.txt"
    source.write_text("go go py", encoding="utf-8")
    out_dir = isolated / "out"
    out_dir.mkdir()

    code = main(
        ["words", "frequency", "analyze", "--path", str(source), "--out", str(out_dir)]
    )
    assert code == 0
    files = list(out_dir.glob("*.json"))
    assert len(files) == 1
    data = json.loads(files[0].read_text(encoding="utf-8"))
    assert data["wordFrequency"] == {"go": 2, "py": 1}


def test_config_flag_reports_file(isolated, capsys):
    config_file = isolated / "settings.yaml"
    config_file.write_text("app:\n  environment: testing\n", encoding="utf-8")
    assert main(["--config", str(config_file)]) == 0
    assert f"Using config file: {config_file}" in _combined(capsys)


def test_unreadable_config_is_not_reported(isolated, capsys):
    config_file = isolated / "broken.yaml"
    config_file.write_text("app: [", encoding="utf-8")
    assert main(["--config", str(config_file)]) == 0
    assert "Using config file" not in _combined(capsys)


def test_home_config_is_found(isolated, tmp_path, capsys):
    home_config = tmp_path / "home" / ".piccrack.yaml"
    home_config.write_text("app:\n  environment: testing\n", encoding="utf-8")
    assert main([]) == 0
    assert f"Using config file: {home_config}" in _combined(capsys)


def test_env_file_in_working_directory_is_found(isolated, capsys):
    (isolated / ".env").write_text("CONFIG_PATH=config.yaml\n", encoding="utf-8")
    assert main([]) == 0
    output = _combined(capsys)
    assert "Using config file:" in output
    assert ".env" in output


def test_no_config_found_reports_nothing(isolated, capsys):
    assert main([]) == 0
    assert "Using config file" not in _combined(capsys)