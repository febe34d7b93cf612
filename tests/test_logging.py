import json
import logging
import sys

from outreach.logging_config import AUDIT_LOGGER_NAME, MinimalJSONFormatter, configure_logging
from outreach.telemetry import traced_duration


def test_formatter_merges_dict_messages() -> None:
    record = logging.LogRecord("outreach.test", logging.INFO, __file__, 1, {"step": "ingest", "count": 2}, None, None)

    payload = json.loads(MinimalJSONFormatter().format(record))

    assert payload["step"] == "ingest"
    assert payload["count"] == 2
    assert payload["level"] == "INFO"
    assert payload["ts"].endswith("Z")


def test_formatter_renders_plain_messages_and_exceptions() -> None:
    try:
        raise RuntimeError("store offline")
    except RuntimeError:
        exc_info = sys.exc_info()
    record = logging.LogRecord("outreach.test", logging.ERROR, __file__, 1, "Query for %s failed", ("owner-1",), exc_info)

    payload = json.loads(MinimalJSONFormatter().format(record))

    assert payload["message"] == "Query for owner-1 failed"
    assert payload["logger"] == "outreach.test"
    assert "RuntimeError: store offline" in payload["exc"]


def test_audit_events_are_written_to_file(tmp_path) -> None:
    configure_logging(tmp_path)
    audit = logging.getLogger(AUDIT_LOGGER_NAME)

    audit.info({"event": "ingest", "document_id": "doc-1", "chunk_count": 3})
    for handler in audit.handlers:
        handler.flush()

    lines = (tmp_path / "ingest_audit.log").read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[-1])
    assert entry["event"] == "ingest"
    assert entry["chunk_count"] == 3


def test_traced_duration_logs_start_and_complete(caplog) -> None:
    logger = logging.getLogger("outreach.tests.trace")
    logger.propagate = True

    with caplog.at_level(logging.INFO, logger="outreach.tests.trace"):
        with traced_duration("unit.step", logger=logger, document_id="doc-1"):
            pass

    steps = [record.msg["step"] for record in caplog.records if isinstance(record.msg, dict)]
    assert steps == ["unit.step.start", "unit.step.complete"]
