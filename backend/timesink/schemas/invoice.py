"""
Schemas Pydantic per la Fatturazione
Progetto: Timesink (Fatturazione Freelance)
"""

import datetime
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from timesink.models import InvoiceStatus


class InvoiceCreate(BaseModel):
    """
    Schema per la creazione di una bozza.

    Se entry_ids è vuoto vengono aggiunte tutte le voci non fatturate
    del cliente nel periodo.
    """

    client_id: int = Field(..., gt=0)
    period_start: datetime.date
    period_end: datetime.date
    tax_rate: Optional[Decimal] = Field(
        None, ge=0, le=1, description="Aliquota (default da impostazioni)"
    )
    entry_ids: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_period(self) -> "InvoiceCreate":
        if self.period_end < self.period_start:
            raise ValueError("La fine del periodo non può precedere l'inizio")
        return self


class InvoiceAddEntries(BaseModel):
    entry_ids: list[int] = Field(..., min_length=1)


class InvoiceTotalsUpdate(BaseModel):
    tax_rate: Decimal = Field(..., ge=0, le=1, description="Aliquota come frazione")

    @field_validator("tax_rate", mode="before")
    @classmethod
    def convert_decimal_from_string(cls, v):
        """Gestisce input con virgola convertendolo in punto."""
        if isinstance(v, str):
            v = v.replace(",", ".")
        return v


class InvoiceFinalize(BaseModel):
    due_days: Optional[int] = Field(
        None, ge=0, description="Giorni alla scadenza (default da impostazioni)"
    )
    export: bool = Field(True, description="Scrive l'export testuale dopo la finalizzazione")


class InvoicePay(BaseModel):
    paid_date: Optional[datetime.date] = None


class InvoiceLineItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_id: int
    entry_id: int
    entry_date: datetime.date = Field(
        ...,
        validation_alias=AliasChoices("entry_date", "date"),
        serialization_alias="date",
    )
    description: str
    hours: Decimal
    rate: Decimal
    amount: Decimal


class InvoiceRead(BaseModel):
    """Schema di risposta per una fattura, con righe."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    client_id: int
    period_start: datetime.date
    period_end: datetime.date
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    status: InvoiceStatus
    due_date: Optional[datetime.date]
    paid_date: Optional[datetime.date]
    created_at: datetime.datetime
    updated_at: datetime.datetime
    line_items: list[InvoiceLineItemRead] = Field(default_factory=list)


class InvoiceList(BaseModel):
    items: list[InvoiceRead] = Field(default_factory=list)
    total: int = 0


class InvoiceExportRead(BaseModel):
    invoice_number: str
    path: Optional[str] = None
    content: str
