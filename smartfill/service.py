from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Iterable, Mapping
from uuid import uuid4

from pydantic.alias_generators import to_camel

from schemas.expense_schema import ExpenseForm, ExtractedFields, VendorProfile
from smartfill.config import Settings
from smartfill.field_extractor import extract
from smartfill.form_reconciler import ReconcileResult, reconcile
from smartfill.logger import log_document_event
from smartfill.metrics import MetricsCollector
from smartfill.rules import ExtractionRules
from smartfill.vendor_index import VendorDirectory

logger = logging.getLogger(__name__)


class SmartFillService:
    """Extract-then-reconcile entry point shared by the HTTP API and the CLI."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        rules: ExtractionRules | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.rules = rules or self.settings.load_rules()
        self.metrics = metrics or MetricsCollector()

    def extract(self, text: str | None, *, document_id: str | None = None) -> ExtractedFields:
        doc_id = document_id or str(uuid4())
        started = time.perf_counter()
        fields = extract(text, rules=self.rules)
        latency_ms = int((time.perf_counter() - started) * 1000)

        detected = len(fields.present())
        self.metrics.increment("documents_extracted_total")
        self.metrics.increment("fields_detected_total", detected)
        self.metrics.observe_latency(latency_ms)
        if fields.is_empty():
            self.metrics.increment("documents_empty_total")
        log_document_event(
            logger,
            logging.INFO,
            "Smart fill extraction finished",
            document_id=doc_id,
            stage="extraction",
            outcome="empty" if fields.is_empty() else "success",
            latency_ms=latency_ms,
            field_count=detected,
        )
        return fields

    def reconcile(
        self,
        form: ExpenseForm | Mapping[str, Any],
        extracted: ExtractedFields,
        vendors: Iterable[VendorProfile | dict] | None = None,
        *,
        today: date | None = None,
        home_country: str | None = None,
        document_id: str | None = None,
    ) -> ReconcileResult:
        directory = VendorDirectory.from_profiles(vendors) if vendors is not None else None
        result = reconcile(
            form,
            extracted,
            directory,
            today=today,
            home_country=home_country or self.settings.home_country,
            rules=self.rules,
        )
        self.metrics.increment("reconciliations_total")
        matched = result.matched_vendor
        if matched is not None:
            self.metrics.increment("vendor_matches_total")
        log_document_event(
            logger,
            logging.INFO,
            "Smart fill reconciliation finished",
            document_id=document_id or str(uuid4()),
            stage="reconciliation",
            outcome="matched" if matched is not None else "unmatched",
            field_count=len(result.applied_fields),
            vendor_id=matched.id if matched is not None else None,
            match_score=result.match_score if matched is not None else None,
        )
        return result


def reconcile_payload(result: ReconcileResult) -> dict[str, Any]:
    matched = result.matched_vendor
    return {
        "form": result.form.model_dump(by_alias=True),
        "matchedVendor": matched.model_dump(by_alias=True) if matched is not None else None,
        "matchScore": result.match_score,
        "appliedFields": [to_camel(name) for name in result.applied_fields],
    }
