"""
Repository (gateway di persistenza)
Progetto: Timesink (Fatturazione Freelance)
"""

from timesink.repositories.client_repository import ClientRepository
from timesink.repositories.entry_repository import EntryRepository
from timesink.repositories.invoice_repository import InvoiceRepository
from timesink.repositories.timer_repository import TimerRepository

__all__ = [
    "ClientRepository",
    "EntryRepository",
    "InvoiceRepository",
    "TimerRepository",
]
