from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

_EXTRA_FIELDS = ("document_id", "stage", "outcome", "latency_ms", "field_count", "vendor_id", "match_score")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                payload[name] = getattr(record, name)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())
    if root.handlers:
        for handler in root.handlers:
            handler.setFormatter(JsonFormatter())
        return
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)


def log_document_event(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    document_id: str,
    stage: str | None = None,
    outcome: str | None = None,
    latency_ms: int | None = None,
    field_count: int | None = None,
    vendor_id: str | None = None,
    match_score: int | None = None,
) -> None:
    extra: dict[str, Any] = {"document_id": document_id}
    if stage is not None:
        extra["stage"] = stage
    if outcome is not None:
        extra["outcome"] = outcome
    if latency_ms is not None:
        extra["latency_ms"] = latency_ms
    if field_count is not None:
        extra["field_count"] = field_count
    if vendor_id is not None:
        extra["vendor_id"] = vendor_id
    if match_score is not None:
        extra["match_score"] = match_score
    logger.log(level, message, extra=extra)
