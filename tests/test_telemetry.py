from __future__ import annotations

import asyncio
import logging

import pytest

from layoutrag.errors import LayoutPayloadError
from layoutrag.ingest.pipeline import IngestPipeline
from layoutrag.telemetry import log_event, traced_duration


def test_log_event_emits_structured_dict(caplog) -> None:
    logger = logging.getLogger("layoutrag.tests.telemetry")

    with caplog.at_level(logging.INFO, logger="layoutrag.tests.telemetry"):
        log_event(logger, "chunking.completed", document_id="doc-3", duration_ms=1.23456, details={"children": 4})

    (record,) = caplog.records
    assert record.msg == {
        "step": "chunking.completed",
        "module": "layoutrag.tests.telemetry",
        "document_id": "doc-3",
        "duration_ms": 1.235,
        "details": {"children": 4},
    }


def test_traced_duration_reports_errors(caplog) -> None:
    with caplog.at_level(logging.ERROR, logger="layoutrag.telemetry"):
        with pytest.raises(RuntimeError):
            with traced_duration("ingest.summaries", requests=2):
                raise RuntimeError("boom")

    (record,) = caplog.records
    assert record.msg["step"] == "ingest.summaries.error"
    assert record.msg["details"] == {"requests": 2}
    assert "RuntimeError: boom" in record.msg["exc"]


def test_failed_ingest_emits_exception_event(caplog) -> None:
    with caplog.at_level(logging.ERROR, logger="layoutrag.telemetry"):
        with pytest.raises(LayoutPayloadError):
            asyncio.run(IngestPipeline().ingest("not a payload", document_id="doc-bad"))

    events = [record.msg for record in caplog.records if isinstance(record.msg, dict)]
    assert events[-1]["step"] == "exception"
    assert events[-1]["document_id"] == "doc-bad"
