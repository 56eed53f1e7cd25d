"""
Schemas Pydantic per le Voci di Tempo
Progetto: Timesink (Fatturazione Freelance)
"""

import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


def to_naive_utc(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """Gli orari vengono salvati in UTC senza tzinfo."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value


class EntryCreate(BaseModel):
    """
    Schema per la registrazione manuale di una voce.

    Se hourly_rate è omessa viene usata la tariffa corrente del cliente.
    """

    client_id: int = Field(..., gt=0, description="Cliente")
    description: str = Field("", description="Descrizione attività")
    start_time: datetime.datetime = Field(..., description="Inizio (UTC)")
    end_time: Optional[datetime.datetime] = Field(None, description="Fine (UTC)")
    hourly_rate: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_billable: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_times(self) -> "EntryCreate":
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("L'ora di fine non può precedere l'ora di inizio")
        return self


class EntryUpdate(BaseModel):
    """
    Schema per la modifica di una voce.

    Il motivo è obbligatorio: viene registrato nello storico per ogni
    campo modificato.
    """

    reason: str = Field(..., min_length=1, description="Motivo della modifica")
    client_id: Optional[int] = Field(None, gt=0)
    description: Optional[str] = None
    start_time: Optional[datetime.datetime] = None
    end_time: Optional[datetime.datetime] = None
    hourly_rate: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_billable: Optional[bool] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
        return to_naive_utc(v)


class EntryDelete(BaseModel):
    reason: str = Field(..., min_length=1, description="Motivo dell'eliminazione")


class EntryRead(BaseModel):
    """Schema di risposta per una voce di tempo."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    description: str
    start_time: datetime.datetime
    end_time: Optional[datetime.datetime]
    duration_seconds: Optional[int]
    hourly_rate: Decimal
    is_billable: bool
    invoice_id: Optional[int]
    is_deleted: bool
    created_at: datetime.datetime
    updated_at: datetime.datetime

    @computed_field
    @property
    def is_locked(self) -> bool:
        return self.invoice_id is not None


class EntryList(BaseModel):
    items: list[EntryRead] = Field(default_factory=list)
    total: int = 0


class EntryHistoryRead(BaseModel):
    """Riga di storico."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    entry_id: int
    field_name: str
    old_value: Optional[str]
    new_value: Optional[str]
    change_reason: str
    changed_at: datetime.datetime
