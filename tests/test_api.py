from __future__ import annotations

from fastapi.testclient import TestClient

from smartfill.api import create_app
from smartfill.config import Settings

INVOICE_TEXT = "Invoice Number: INV-77\nAcme Logistics Ltd\nKeizersgracht 12\nAmsterdam\nTotal €250.00"


def _client() -> TestClient:
    return TestClient(create_app(Settings()))


def test_health_endpoint() -> None:
    response = _client().get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_extract_endpoint_returns_sparse_camel_case_fields() -> None:
    response = _client().post("/extract", json={"text": INVOICE_TEXT, "documentId": "doc-1"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["invoiceNumber"] == "INV-77"
    assert payload["vendor"] == "Acme Logistics Ltd"
    assert payload["vendorCountry"] == "NL"
    assert payload["amount"] == "250.00"
    assert payload["currency"] == "EUR"
    assert "dueDate" not in payload


def test_extract_endpoint_empty_text() -> None:
    response = _client().post("/extract", json={"text": ""})
    assert response.status_code == 200
    assert response.json() == {}


def test_reconcile_endpoint_matches_saved_vendor() -> None:
    response = _client().post(
        "/reconcile",
        json={
            "form": {"vendor": "", "amount": "0.00", "notes": "keep me"},
            "extracted": {"invoiceNumber": "XYZ-1", "vendor": "Acme Corp", "amount": "99.00"},
            "vendors": [{"id": "v1", "name": "Acme Corporation Ltd", "invoiceNumbers": ["XYZ-1"]}],
            "today": "2024-03-01",
        },
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["matchedVendor"]["id"] == "v1"
    assert payload["matchScore"] > 0
    assert payload["form"]["vendor"] == "Acme Corporation Ltd"
    assert payload["form"]["vendorId"] == "v1"
    assert payload["form"]["amount"] == "99.00"
    assert payload["form"]["notes"] == "keep me"
    assert "invoiceNumber" in payload["appliedFields"]


def test_reconcile_endpoint_extracts_from_text_and_updates_stats() -> None:
    client = _client()
    response = client.post("/reconcile", json={"form": {}, "text": INVOICE_TEXT})
    assert response.status_code == 200
    payload = response.json()
    assert payload["matchedVendor"] is None
    assert payload["form"]["invoiceNumber"] == "INV-77"

    stats = client.get("/stats").json()
    assert stats["documents_extracted_total"] == 1
    assert stats["reconciliations_total"] == 1
    assert stats["vendor_matches_total"] == 0


def test_reconcile_endpoint_rejects_invalid_vendor_profile() -> None:
    response = _client().post("/reconcile", json={"form": {}, "text": "", "vendors": [{"id": "v1"}]})
    assert response.status_code == 422


def test_reconcile_endpoint_rejects_invalid_form_value() -> None:
    response = _client().post("/reconcile", json={"form": {"reverseCharge": "maybe"}, "text": "Total 10.00"})
    assert response.status_code == 422
