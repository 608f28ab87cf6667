"""JSON log lines must stay machine-parseable, with context as top-level keys."""

from __future__ import annotations

import json
import logging
import sys

from soulbound.core.logging import (
    _ContainerFormatter,
    _JsonFormatter,
    request_id_var,
    setup_logging,
)


def _record(msg: str = "Certificate revoked", args: tuple = (), **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="soulbound.services.registry",
        level=logging.INFO,
        pathname="registry.py",
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_produces_valid_json() -> None:
    parsed = json.loads(_JsonFormatter().format(_record("Revoked %d", (7,))))

    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "soulbound.services.registry"
    assert parsed["message"] == "Revoked 7"
    assert "timestamp" in parsed


def test_json_formatter_lifts_registry_fields() -> None:
    record = _record(
        caller="0x" + "ab" * 20,
        operation="revoke_certificate",
        token_id=7,
        error_code="already_revoked",
    )

    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["caller"] == "0x" + "ab" * 20
    assert parsed["operation"] == "revoke_certificate"
    assert parsed["token_id"] == 7
    assert parsed["error_code"] == "already_revoked"


def test_json_formatter_lifts_request_fields() -> None:
    record = _record(
        request_id="abc-123",
        method="GET",
        path="/v1/certificates/7/verify",
        status_code=200,
        duration_ms=1.5,
    )

    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "abc-123"
    assert parsed["path"] == "/v1/certificates/7/verify"
    assert parsed["status_code"] == 200
    assert parsed["duration_ms"] == 1.5


def test_json_formatter_omits_unknown_extras() -> None:
    parsed = json.loads(_JsonFormatter().format(_record(secret="s3cret")))
    assert "secret" not in parsed


def test_json_formatter_includes_exception_info() -> None:
    formatter = _JsonFormatter()
    try:
        raise ValueError("ledger write failed")
    except ValueError:
        record = _record()
        record.exc_info = sys.exc_info()
        output = formatter.format(record)

    parsed = json.loads(output)
    assert "ValueError: ledger write failed" in parsed["exception"]


def test_container_formatter_is_plain_text() -> None:
    output = _ContainerFormatter().format(_record("server started"))

    assert "INFO" in output
    assert "soulbound.services.registry" in output
    assert "server started" in output
    assert not output.lstrip().startswith("{")


def test_handler_stamps_request_id_from_context() -> None:
    setup_logging("info", json_format=True)
    handler = logging.getLogger().handlers[0]
    token = request_id_var.set("req-42")
    try:
        record = _record()
        assert handler.filter(record)
    finally:
        request_id_var.reset(token)

    assert json.loads(handler.format(record))["request_id"] == "req-42"


def test_explicit_request_id_wins_over_context() -> None:
    setup_logging("info")
    handler = logging.getLogger().handlers[0]
    record = _record(request_id="from-extra")
    handler.filter(record)
    assert record.request_id == "from-extra"  # type: ignore[attr-defined]
