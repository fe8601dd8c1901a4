"""Tests for log_config.logger sinks."""

from __future__ import annotations

import pytest

import log_config.logger as log_module
from log_config.logger import configure_console_logging, configure_file_logging, get_logger


@pytest.fixture
def logs_dir(tmp_path):
    path = tmp_path / "logs" / "nested"
    yield path
    handler_id = log_module._file_handler_ids.pop(path, None)
    if handler_id is not None:
        log_module.logger.remove(handler_id)


def test_file_logging_creates_directory_and_writes(logs_dir) -> None:
    assert not logs_dir.exists()

    assert configure_file_logging(logs_dir) == logs_dir
    get_logger("tests.logger").info("state written")
    log_module.logger.complete()

    files = list(logs_dir.glob("themekeeper_*.log"))
    assert len(files) == 1
    assert "state written" in files[0].read_text()


def test_file_logging_is_idempotent(logs_dir) -> None:
    configure_file_logging(logs_dir)
    handler_id = log_module._file_handler_ids[logs_dir]

    assert configure_file_logging(logs_dir) == logs_dir
    assert log_module._file_handler_ids[logs_dir] == handler_id


def test_console_logging_level(capsys) -> None:
    try:
        configure_console_logging("WARNING")
        logger = get_logger("tests.logger")
        logger.info("quiet info")
        logger.warning("loud warning")

        err = capsys.readouterr().err
        assert "loud warning" in err
        assert "quiet info" not in err
    finally:
        with capsys.disabled():
            configure_console_logging("INFO")
