"""
Schemas Pydantic per l'entità Client
Progetto: Timesink (Fatturazione Freelance)
"""
# Definisce gli schemi di validazione e serializzazione per l'API.

import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class ClientBase(BaseModel):
    """
    Schema base per i dati del cliente.

    Configurazione:
    - from_attributes=True: supporta conversione ORM → Pydantic
    """

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Nome visualizzato (univoco)",
    )

    email: Optional[EmailStr] = Field(
        None,
        description="Email di contatto",
    )

    hourly_rate: Decimal = Field(
        default=Decimal("0.00"),
        ge=0,
        max_digits=10,
        decimal_places=2,
        description="Tariffa oraria",
    )

    notes: Optional[str] = Field(None, description="Note interne")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Il nome del cliente è obbligatorio")
        return v


class ClientCreate(ClientBase):
    """Schema per la creazione di un cliente."""


class ClientUpdate(BaseModel):
    """
    Schema per l'aggiornamento parziale di un cliente.

    Tutti i campi sono opzionali: solo quelli inviati vengono modificati.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    hourly_rate: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    notes: Optional[str] = None


class ClientRead(ClientBase):
    """Schema di risposta per un cliente."""

    id: int
    is_archived: bool
    created_at: datetime.datetime
    updated_at: datetime.datetime


class ClientList(BaseModel):
    """Lista clienti."""

    items: list[ClientRead] = Field(default_factory=list)
    total: int = Field(0, description="Numero totale di clienti")
