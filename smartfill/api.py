from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import FastAPI
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from schemas.expense_schema import ExpenseForm, ExtractedFields, VendorProfile
from smartfill.config import Settings
from smartfill.service import SmartFillService, reconcile_payload


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractRequest(_CamelModel):
    text: str = ""
    document_id: str | None = None


class ReconcileRequest(_CamelModel):
    form: ExpenseForm = Field(default_factory=ExpenseForm)
    text: str | None = None
    extracted: ExtractedFields | None = None
    vendors: list[VendorProfile] | None = None
    today: date | None = None
    home_country: str | None = None


def create_app(settings: Settings | None = None, *, service: SmartFillService | None = None) -> FastAPI:
    active = service or SmartFillService(settings)
    app = FastAPI(title="Smart Fill API", version="0.1.0")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/extract")
    def extract_fields(request: ExtractRequest) -> dict[str, Any]:
        fields = active.extract(request.text, document_id=request.document_id)
        return fields.present()

    @app.post("/reconcile")
    def reconcile_form(request: ReconcileRequest) -> dict[str, Any]:
        extracted = request.extracted
        if extracted is None:
            extracted = active.extract(request.text or "")
        result = active.reconcile(
            request.form,
            extracted,
            request.vendors,
            today=request.today,
            home_country=request.home_country,
        )
        return reconcile_payload(result)

    @app.get("/stats")
    def stats() -> dict[str, Any]:
        return active.metrics.snapshot()

    return app
