from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class ExtractedFields(BaseModel):
    """Fields inferred from one document's raw text. Every field is optional."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    document_type: Literal["invoice", "receipt", "statement", "other"] | None = None
    invoice_number: str | None = Field(default=None, pattern=r"^[A-Z0-9][A-Z0-9\-_/]*$")
    date: str | None = Field(default=None, pattern=ISO_DATE_PATTERN)
    invoice_date: str | None = Field(default=None, pattern=ISO_DATE_PATTERN)
    due_date: str | None = Field(default=None, pattern=ISO_DATE_PATTERN)
    date_ambiguous: bool | None = None
    amount: str | None = Field(default=None, pattern=r"^\d+\.\d{2}$")
    currency: str | None = Field(default=None, pattern=r"^[A-Z]{3}$")
    vendor: str | None = Field(default=None, min_length=1)
    vendor_address: str | None = Field(default=None, min_length=1)
    vendor_country: str | None = Field(default=None, pattern=r"^[A-Z]{2}$")
    vat_number: str | None = Field(default=None, pattern=r"^[A-Z0-9]+$")
    chamber_of_commerce_number: str | None = Field(default=None, pattern=r"^[A-Z0-9]{4,20}$")
    btw: int | None = Field(default=None, ge=0, le=99)
    reverse_charge: bool | None = None
    description: str | None = Field(default=None, min_length=1)
    payment_status: Literal["open", "paid"] | None = None
    payment_method: str | None = None
    category: str | None = None

    def present(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class ExpenseForm(BaseModel):
    """The in-progress expense record a user is editing.

    UI-only keys the reconciler does not know about are kept as extras.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    date: str = ""
    invoice_date: str = ""
    due_date: str = ""
    document_type: str = ""
    invoice_number: str = ""
    vendor: str = ""
    vendor_id: str = ""
    vendor_address: str = ""
    vendor_country: str = ""
    vat_number: str = ""
    chamber_of_commerce_number: str = ""
    amount: str | float | None = ""
    currency: str = ""
    btw: int | str | None = None
    reverse_charge: bool = False
    description: str = ""
    category: str = ""
    payment_method: str = ""
    payment_status: str = ""
    notes: str = ""


class VendorProfile(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    normalized_name: str = ""
    name_history: tuple[str, ...] = ()
    search_tokens: tuple[str, ...] = ()
    invoice_numbers: tuple[str, ...] = ()
    last_invoice_number: str | None = None
    country: str | None = None
    countries: tuple[str, ...] = ()
    preferred_currency: str | None = None
    currencies: tuple[str, ...] = ()
    primary_address: str | None = None
    addresses: tuple[str, ...] = ()
    primary_vat_number: str | None = None
    primary_chamber_of_commerce_number: str | None = None
    default_payment_method: str | None = None
    usage_count: int = Field(default=0, ge=0)
