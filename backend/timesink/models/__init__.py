"""
Modelli Database SQLAlchemy
Progetto: Timesink (Fatturazione Freelance)

Import centralizzato di tutti i modelli per create_all e usage generico.

Modelli:
- Client: Anagrafica clienti con tariffa oraria
- TimeEntry: Voci di tempo (bloccate quando agganciate a una fattura)
- EntryHistory: Storico append-only delle modifiche alle voci
- Invoice: Fatture
- InvoiceLineItem: Righe fattura (snapshot di una voce)
- ActiveTimer: Timer attivo (al più una riga)
"""

# SQLAlchemy 2.0 Base declarativa
# Importato qui per essere disponibile per tutti i modelli
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


# Import modelli implementati
from timesink.models.client import Client
from timesink.models.time_entry import EntryHistory, TimeEntry
from timesink.models.invoice import Invoice, InvoiceLineItem, InvoiceStatus
from timesink.models.timer import ACTIVE_TIMER_ID, ActiveTimer, TimerState

# Esportazione di tutti i modelli
__all__ = [
    "Base",
    "Client",
    "TimeEntry",
    "EntryHistory",
    "Invoice",
    "InvoiceLineItem",
    "InvoiceStatus",
    "ActiveTimer",
    "ACTIVE_TIMER_ID",
    "TimerState",
]
