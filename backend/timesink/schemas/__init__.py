"""
Schemas Pydantic per il progetto Timesink

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle richieste e risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from timesink.schemas import ClientRead, InvoiceRead, etc.

from timesink.schemas.client import ClientCreate, ClientList, ClientRead, ClientUpdate
from timesink.schemas.entry import (
    EntryCreate,
    EntryDelete,
    EntryHistoryRead,
    EntryList,
    EntryRead,
    EntryUpdate,
)
from timesink.schemas.invoice import (
    InvoiceAddEntries,
    InvoiceCreate,
    InvoiceExportRead,
    InvoiceFinalize,
    InvoiceLineItemRead,
    InvoiceList,
    InvoicePay,
    InvoiceRead,
    InvoiceTotalsUpdate,
)
from timesink.schemas.timer import TimerRead, TimerStart

__all__ = [
    "ClientCreate",
    "ClientList",
    "ClientRead",
    "ClientUpdate",
    "EntryCreate",
    "EntryDelete",
    "EntryHistoryRead",
    "EntryList",
    "EntryRead",
    "EntryUpdate",
    "InvoiceAddEntries",
    "InvoiceCreate",
    "InvoiceExportRead",
    "InvoiceFinalize",
    "InvoiceLineItemRead",
    "InvoiceList",
    "InvoicePay",
    "InvoiceRead",
    "InvoiceTotalsUpdate",
    "TimerRead",
    "TimerStart",
]
