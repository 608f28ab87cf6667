from __future__ import annotations

import logging

import pytest

from soulbound.core.logging import _ContainerFormatter, setup_logging


def _record(level: int, msg: str = "hello", pathname: str = "registry.py", lineno: int = 1):
    return logging.LogRecord(
        name="soulbound.services.registry",
        level=level,
        pathname=pathname,
        lineno=lineno,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


@pytest.mark.parametrize("name", ["uvicorn", "httpx", "httpcore"])
def test_setup_logging_quiets_third_party_at_debug(name: str) -> None:
    setup_logging("debug")
    assert logging.getLogger(name).level == logging.WARNING


def test_setup_logging_allows_uvicorn_at_error() -> None:
    setup_logging("error")
    assert logging.getLogger("uvicorn").level == logging.ERROR


def test_formatter_excludes_location_for_info() -> None:
    output = _ContainerFormatter().format(_record(logging.INFO, "Certificate issued"))
    assert "Certificate issued" in output
    assert "[registry.py:" not in output


def test_formatter_includes_location_for_warning() -> None:
    output = _ContainerFormatter().format(
        _record(logging.WARNING, "Issuance rejected", lineno=42)
    )
    assert "Issuance rejected" in output
    assert "[registry.py:42]" in output


def test_formatter_timestamp_has_milliseconds() -> None:
    record = _record(logging.INFO)
    record.msecs = 7.0
    timestamp = _ContainerFormatter().format(record).split(" ", 1)[0]
    assert ".007" in timestamp
