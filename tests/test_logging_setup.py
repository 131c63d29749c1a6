import io
import logging

import pytest

from transaction_ingest.config import Settings
from transaction_ingest.logging_setup import configure_logging, get_logger, parse_level


def test_library_logging_is_silent_by_default():
    get_logger("transaction_ingest.normalizer")
    pkg = logging.getLogger("transaction_ingest")
    assert any(isinstance(h, logging.NullHandler) for h in pkg.handlers)


def test_configure_logging_once():
    first, second = io.StringIO(), io.StringIO()
    handler = configure_logging("DEBUG", stream=first, fmt="%(levelname)s %(message)s")
    assert configure_logging("ERROR", stream=second) is handler

    get_logger("transaction_ingest.pipeline").debug("hello %s", "there")

    assert first.getvalue() == "DEBUG hello there\n"
    assert second.getvalue() == ""
    pkg = logging.getLogger("transaction_ingest")
    assert pkg.handlers == [handler]
    assert pkg.propagate is False


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("warning", logging.WARNING),
        (" Debug ", logging.DEBUG),
        ("40", logging.ERROR),
        (5, 5),
        (None, logging.INFO),
        ("verbose", logging.INFO),
        ("", logging.INFO),
        (True, logging.INFO),
    ],
)
def test_parse_level(value, expected):
    assert parse_level(value) == expected


def test_level_from_settings(monkeypatch):
    monkeypatch.setenv("TRANSACTION_INGEST_LOG_LEVEL", "warning")
    buf = io.StringIO()
    configure_logging(Settings.from_env().log_level, stream=buf, fmt="%(message)s")

    log = get_logger("transaction_ingest.identity")
    log.info("quiet")
    log.warning("loud")

    assert buf.getvalue() == "loud\n"


def test_unknown_level_name_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("TRANSACTION_INGEST_LOG_LEVEL", "verbose")
    assert Settings.from_env().log_level == logging.INFO
