import io
import logging

import pytest

import tallybook.logging_setup as logging_setup
from tallybook.logging_setup import configure_logging, get_logger, resolve_level


@pytest.fixture
def restore_pkg_logger(monkeypatch):
    pkg = logging.getLogger("tallybook")
    saved = (list(pkg.handlers), pkg.level, pkg.propagate)
    monkeypatch.setattr(logging_setup, "_handler", None)
    yield pkg
    pkg.handlers[:] = saved[0]
    pkg.setLevel(saved[1])
    pkg.propagate = saved[2]


@pytest.mark.parametrize(
    ("value", "expected"),
    [(logging.DEBUG, logging.DEBUG), ("warning", logging.WARNING), ("15", 15), ("nonsense", logging.INFO)],
)
def test_resolve_level(value, expected):
    assert resolve_level(value) == expected


def test_resolve_level_reads_env(monkeypatch):
    monkeypatch.setenv("TALLYBOOK_LOG_LEVEL", "ERROR")
    assert resolve_level(None) == logging.ERROR
    monkeypatch.delenv("TALLYBOOK_LOG_LEVEL")
    assert resolve_level(None) == logging.INFO


def test_configure_logging_installs_one_handler(restore_pkg_logger):
    first, second = io.StringIO(), io.StringIO()
    configure_logging("INFO", fmt="%(name)s:%(message)s", stream=first)
    configure_logging("DEBUG", stream=second)  # ignored without force

    get_logger("tallybook.rules").info("hello")
    get_logger("tallybook.rules").debug("hidden")
    assert first.getvalue() == "tallybook.rules:hello\n"
    assert second.getvalue() == ""

    configure_logging("DEBUG", fmt="%(message)s", stream=second, force=True)
    get_logger("tallybook.rules").debug("now visible")
    assert second.getvalue() == "now visible\n"
    handlers = [h for h in restore_pkg_logger.handlers if not isinstance(h, logging.NullHandler)]
    assert len(handlers) == 1
