from __future__ import annotations

import json
import logging
import sys

import pytest

from smartfill.logger import JsonFormatter, log_document_event
from smartfill.metrics import MetricsCollector
from smartfill.service import SmartFillService


def test_json_formatter_includes_document_fields() -> None:
    logger = logging.getLogger("test-observability")
    record = logger.makeRecord(
        name=logger.name,
        level=logging.INFO,
        fn="test",
        lno=1,
        msg="reconciled",
        args=(),
        exc_info=None,
        extra={
            "document_id": "doc-1",
            "stage": "reconciliation",
            "vendor_id": "v1",
            "match_score": 142,
            "outcome": "matched",
        },
    )
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "reconciled"
    assert payload["document_id"] == "doc-1"
    assert payload["vendor_id"] == "v1"
    assert payload["match_score"] == 142
    assert "latency_ms" not in payload


def test_json_formatter_includes_exception_text() -> None:
    logger = logging.getLogger("test-observability-exc")
    try:
        raise RuntimeError("stage exploded")
    except RuntimeError:
        record = logger.makeRecord(logger.name, logging.ERROR, "test", 1, "failed", (), sys.exc_info())
    payload = json.loads(JsonFormatter().format(record))
    assert "stage exploded" in payload["exception"]


def test_log_document_event_sets_extras(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("test-observability-helper")
    with caplog.at_level(logging.INFO, logger=logger.name):
        log_document_event(logger, logging.INFO, "done", document_id="doc-22", stage="extraction", field_count=7)
    record = caplog.records[-1]
    assert record.document_id == "doc-22"
    assert record.field_count == 7
    assert not hasattr(record, "vendor_id")


def test_metrics_collector_snapshot() -> None:
    metrics = MetricsCollector()
    metrics.increment("documents_extracted_total")
    metrics.increment("fields_detected_total", 5)
    metrics.observe_latency(50)
    metrics.observe_latency(200)
    metrics.observe_latency(100)

    snapshot = metrics.snapshot()
    assert snapshot["documents_extracted_total"] == 1
    assert snapshot["fields_detected_total"] == 5
    assert snapshot["documents_empty_total"] == 0
    assert snapshot["extraction_latency_p95_ms"] >= 100


def test_service_records_extraction_metrics() -> None:
    service = SmartFillService()
    service.extract("Total 10.00", document_id="doc-1")
    service.extract("", document_id="doc-2")

    snapshot = service.metrics.snapshot()
    assert snapshot["documents_extracted_total"] == 2
    assert snapshot["documents_empty_total"] == 1
    assert snapshot["fields_detected_total"] == 2
