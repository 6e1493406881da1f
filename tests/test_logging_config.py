from __future__ import annotations

import logging

import pytest

from gamedesk.logging_config import DEFAULT_LOG_LEVEL, LOGGER_NAME, setup_logging


@pytest.fixture(autouse=True)
def _restore_logger():
    app_logger = logging.getLogger(LOGGER_NAME)
    level = app_logger.level
    handlers = list(app_logger.handlers)
    yield
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
    for handler in handlers:
        app_logger.addHandler(handler)
    app_logger.setLevel(level)


def test_setup_logging_accepts_level_names() -> None:
    app_logger = setup_logging("warning")

    assert app_logger.name == LOGGER_NAME
    assert app_logger.level == logging.WARNING


def test_setup_logging_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GAMEDESK_LOG_LEVEL", "DEBUG")

    assert setup_logging().level == logging.DEBUG


def test_setup_logging_falls_back_on_invalid_names(
    capsys: pytest.CaptureFixture[str],
) -> None:
    app_logger = setup_logging("chatty")

    assert app_logger.level == DEFAULT_LOG_LEVEL
    assert "Invalid log level 'CHATTY'" in capsys.readouterr().err


def test_setup_logging_does_not_duplicate_handlers() -> None:
    setup_logging(logging.INFO)
    app_logger = setup_logging(logging.INFO)

    assert len(app_logger.handlers) == 1
