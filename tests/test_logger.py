"""Tests for logging setup."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from vitalzen.utils.logger import get_logger, setup_logger


def test_console_only_by_default() -> None:
    logger = setup_logger(name="vitalzen.test_console", log_level="warning")
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1
    assert not isinstance(logger.handlers[0], RotatingFileHandler)


def test_file_handler_creates_directory(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "vitalzen.log"
    logger = setup_logger(name="vitalzen.test_file", log_file=str(log_file))

    logger.info("hello")
    for handler in logger.handlers:
        handler.flush()

    assert log_file.parent.is_dir()
    assert any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
    assert " - vitalzen.test_file - INFO - hello" in log_file.read_text(encoding="utf-8")


def test_reconfiguring_does_not_stack_handlers() -> None:
    setup_logger(name="vitalzen.test_repeat")
    logger = setup_logger(name="vitalzen.test_repeat")
    assert len(logger.handlers) == 1


def test_library_loggers_share_handlers_and_stay_quiet() -> None:
    logger = setup_logger(name="vitalzen.test_libs", library_loggers=("vitalzen_lib",))
    library = logging.getLogger("vitalzen_lib")

    assert library.level == logging.WARNING
    assert library.handlers == logger.handlers


def test_library_loggers_follow_debug() -> None:
    setup_logger(name="vitalzen.test_debug", log_level="DEBUG", library_loggers=("vitalzen_lib2",))
    assert logging.getLogger("vitalzen_lib2").level == logging.DEBUG


def test_unknown_level_falls_back_to_info() -> None:
    logger = setup_logger(name="vitalzen.test_unknown", log_level="chatty")
    assert logger.level == logging.INFO
    assert get_logger("vitalzen.test_unknown") is logger
