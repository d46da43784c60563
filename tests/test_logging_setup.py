import logging

import pytest

from expense_classifier.logging_setup import (
    LOG_LEVEL_ENV,
    PACKAGE_LOGGER,
    configure_logging,
    resolve_level,
)


@pytest.mark.parametrize(
    "level, expected",
    [(logging.DEBUG, logging.DEBUG), ("warning", logging.WARNING), (" 15 ", 15), (None, logging.INFO)],
)
def test_resolve_level(level, expected, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
    assert resolve_level(level) == expected


def test_unknown_name_falls_back_to_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv(LOG_LEVEL_ENV, "ERROR")
    assert resolve_level("chatty") == logging.ERROR
    assert resolve_level(None) == logging.ERROR
    monkeypatch.setenv(LOG_LEVEL_ENV, "nonsense")
    assert resolve_level(None) == logging.INFO


def test_configure_logging_runs_once():
    logger = logging.getLogger(PACKAGE_LOGGER)
    configure_logging("DEBUG")
    stream_handlers = [h for h in logger.handlers if type(h) is logging.StreamHandler]
    configure_logging("ERROR")

    assert logger.level == logging.DEBUG
    assert not logger.propagate
    assert len([h for h in logger.handlers if type(h) is logging.StreamHandler]) == len(stream_handlers)
    assert not any(isinstance(h, logging.NullHandler) for h in logger.handlers)
