"""
Schemas Pydantic per il Timer
Progetto: Timesink (Fatturazione Freelance)
"""

import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from timesink.models import TimerState


class TimerStart(BaseModel):
    client_id: int = Field(..., gt=0, description="Cliente")
    description: str = Field("", description="Descrizione attività")


class TimerRead(BaseModel):
    """Stato del timer; i campi del timer sono None quando idle."""

    model_config = ConfigDict(from_attributes=True)

    state: TimerState
    client_id: Optional[int] = None
    description: Optional[str] = None
    start_time: Optional[datetime.datetime] = None
    paused_at: Optional[datetime.datetime] = None
    total_paused_seconds: int = 0
    elapsed_seconds: int = Field(0, description="Secondi lavorati, pause escluse")
    accrued_value: Decimal = Field(
        Decimal("0.00"), description="Valore maturato alla tariffa del cliente"
    )
