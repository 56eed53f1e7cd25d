import argparse
import asyncio

from timesink.core.database import AsyncSessionLocal, close_db, engine
from timesink.models import Base
from timesink.repositories import ClientRepository, EntryRepository, InvoiceRepository
from timesink.services.invoice_service import InvoiceService


async def reset_all():
    print("Connessione al database, eliminazione tabelle...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        print("Tabelle eliminate. Creazione nuove tabelle...")
        await conn.run_sync(Base.metadata.create_all)
    print("Database resettato con successo!")


async def reset_invoices():
    print("Eliminazione fatture e sblocco voci...")
    async with AsyncSessionLocal() as session:
        service = InvoiceService(
            InvoiceRepository(session),
            EntryRepository(session),
            ClientRepository(session),
        )
        deleted = await service.reset_invoices()
    print(f"Fatture eliminate: {deleted}. Le voci sono di nuovo fatturabili.")


async def main(invoices_only: bool):
    try:
        if invoices_only:
            await reset_invoices()
        else:
            await reset_all()
    finally:
        await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Reset del database Timesink")
    parser.add_argument(
        "--invoices-only",
        action="store_true",
        help="elimina solo le fatture, mantenendo clienti e voci",
    )
    args = parser.parse_args()
    asyncio.run(main(args.invoices_only))
