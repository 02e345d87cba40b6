import logging

from piccrack.logger import new_logger


def test_verbose_logger_writes_info_to_stdout(capsys):
    logger = new_logger(True)
    logger.info("scanned sentences")

    out = capsys.readouterr().out
    assert "scanned sentences" in out
    assert "level=INFO" in out


def test_quiet_logger_suppresses_info(capsys):
    logger = new_logger(False)
    logger.info("hidden message")

    assert capsys.readouterr().out == ""


def test_quiet_logger_still_writes_errors(capsys):
    logger = new_logger(False)
    logger.error("broken pipe")

    out = capsys.readouterr().out
    assert "broken pipe" in out
    assert "level=ERROR" in out


def test_levels_follow_verbose_flag():
    assert new_logger(True).isEnabledFor(logging.INFO) is True
    assert new_logger(False).isEnabledFor(logging.INFO) is False