"""
Dependency Injection per i service
Progetto: Timesink (Fatturazione Freelance)

Costruisce repository e service per ogni richiesta. Tutti i repository
di una richiesta condividono la stessa sessione (get_db è in cache per
richiesta in FastAPI), quindi le unità atomiche dei service coprono
tutte le scritture coinvolte.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from timesink.core.config import Settings, get_settings
from timesink.core.database import get_db
from timesink.repositories import (
    ClientRepository,
    EntryRepository,
    InvoiceRepository,
    TimerRepository,
)
from timesink.services.export_service import InvoiceExportService
from timesink.services.invoice_service import InvoiceService
from timesink.services.timer_service import TimerService

DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_client_repository(db: DbSession) -> ClientRepository:
    return ClientRepository(db)


def get_entry_repository(db: DbSession) -> EntryRepository:
    return EntryRepository(db)


def get_timer_service(db: DbSession) -> TimerService:
    """Service timer con i repository sulla sessione della richiesta."""
    return TimerService(
        timers=TimerRepository(db),
        entries=EntryRepository(db),
        clients=ClientRepository(db),
    )


def get_invoice_service(db: DbSession) -> InvoiceService:
    """Service fatture con i repository sulla sessione della richiesta."""
    return InvoiceService(
        invoices=InvoiceRepository(db),
        entries=EntryRepository(db),
        clients=ClientRepository(db),
    )


def get_export_service(settings: AppSettings) -> InvoiceExportService:
    """Service di export con i dati del mittente presi dalle impostazioni."""
    return InvoiceExportService(
        sender={
            "name": settings.invoice_sender_name,
            "email": settings.invoice_sender_email,
            "address": settings.invoice_sender_address,
            "phone": settings.invoice_sender_phone,
        },
        currency_symbol=settings.invoice_currency_symbol,
    )


ClientRepositoryDep = Annotated[ClientRepository, Depends(get_client_repository)]
EntryRepositoryDep = Annotated[EntryRepository, Depends(get_entry_repository)]
TimerServiceDep = Annotated[TimerService, Depends(get_timer_service)]
InvoiceServiceDep = Annotated[InvoiceService, Depends(get_invoice_service)]
ExportServiceDep = Annotated[InvoiceExportService, Depends(get_export_service)]
