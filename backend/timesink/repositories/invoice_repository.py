"""
Repository Fatture
Progetto: Timesink (Fatturazione Freelance)

Persistenza di fatture e righe. Le righe sono gestite tramite la
relazione Invoice.line_items (cascade delete-orphan), così la collezione
caricata resta allineata al database.
"""

import logging
import re
from typing import List, Optional, Sequence

from sqlalchemy import select

from timesink.core.exceptions import (
    ClientNotFoundError,
    DuplicateError,
    InvoiceNotFoundError,
    LineItemNotFoundError,
)
from timesink.models import Client, Invoice, InvoiceLineItem, InvoiceStatus
from timesink.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


def format_invoice_number(prefix: str, year: int, sequence: int) -> str:
    """Formato PREFIX-YYYY-NNN (almeno tre cifre)."""
    return f"{prefix}-{year}-{sequence:03d}"


class InvoiceRepository(BaseRepository):
    """Persistenza di fatture e righe fattura."""

    async def create_invoice(self, invoice: Invoice) -> Invoice:
        """
        Raises:
            BusinessValidationError: fattura non valida
            ClientNotFoundError: cliente inesistente
            DuplicateError: numero fattura già usato
        """
        invoice.validate()

        client = await self.db.execute(select(Client.id).where(Client.id == invoice.client_id))
        if client.first() is None:
            raise ClientNotFoundError(f"Cliente {invoice.client_id} non trovato")

        existing = await self.db.execute(
            select(Invoice.id).where(Invoice.invoice_number == invoice.invoice_number)
        )
        if existing.first() is not None:
            raise DuplicateError(
                f"Il numero fattura {invoice.invoice_number} è già in uso",
                extra={"invoice_number": invoice.invoice_number},
            )

        async with self.atomic("creazione fattura"):
            self.db.add(invoice)
            await self.db.flush()

        logger.info("Fattura creata: %s (id=%s)", invoice.invoice_number, invoice.id)
        return invoice

    async def get_invoice(self, invoice_id: int) -> Invoice:
        """
        Restituisce la fattura con le righe caricate.

        Raises:
            InvoiceNotFoundError: se la fattura non esiste
        """
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise InvoiceNotFoundError(f"Fattura {invoice_id} non trovata")
        return invoice

    async def get_invoice_by_number(self, invoice_number: str) -> Invoice:
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.invoice_number == invoice_number)
            .execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise InvoiceNotFoundError(f"Fattura {invoice_number} non trovata")
        return invoice

    async def list_invoices(
        self,
        client_id: Optional[int] = None,
        status: Optional[InvoiceStatus] = None,
    ) -> List[Invoice]:
        """Elenca le fatture, dalla più recente."""
        query = select(Invoice)
        if client_id is not None:
            query = query.where(Invoice.client_id == client_id)
        if status is not None:
            query = query.where(Invoice.status == status)

        result = await self.db.execute(
            query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
        )
        return list(result.scalars().all())

    async def update_invoice(self, invoice: Invoice) -> Invoice:
        """
        Salva le modifiche alla fattura (totali, stato, scadenze).

        Raises:
            BusinessValidationError: fattura non valida
        """
        try:
            invoice.validate()
        except Exception:
            await self.discard_changes(invoice)
            raise

        async with self.atomic("aggiornamento fattura"):
            if invoice not in self.db:
                invoice = await self.db.merge(invoice)
            await self.db.flush()

        logger.debug("Fattura %s aggiornata (stato=%s)", invoice.invoice_number, invoice.status)
        return invoice

    async def add_line_item(self, invoice: Invoice, item: InvoiceLineItem) -> InvoiceLineItem:
        """Aggiunge una singola riga alla fattura."""
        await self.add_line_items(invoice, [item])
        return item

    async def add_line_items(
        self, invoice: Invoice, items: Sequence[InvoiceLineItem]
    ) -> List[InvoiceLineItem]:
        """Aggiunge più righe in un'unica transazione (tutte o nessuna)."""
        async with self.atomic("aggiunta righe fattura"):
            invoice.line_items.extend(items)
            await self.db.flush()

        logger.info(
            "Fattura %s: aggiunte %d righe", invoice.invoice_number, len(items)
        )
        return list(items)

    async def delete_line_item(self, invoice: Invoice, entry_id: int) -> None:
        """
        Rimuove la riga relativa alla voce indicata.

        Raises:
            LineItemNotFoundError: la voce non è tra le righe della fattura
        """
        item = next((i for i in invoice.line_items if i.entry_id == entry_id), None)
        if item is None:
            raise LineItemNotFoundError(
                f"La voce {entry_id} non è presente nella fattura {invoice.invoice_number}"
            )

        async with self.atomic("rimozione riga fattura"):
            invoice.line_items.remove(item)
            await self.db.flush()

        logger.info("Fattura %s: rimossa la voce %s", invoice.invoice_number, entry_id)

    async def get_line_items(self, invoice_id: int) -> List[InvoiceLineItem]:
        """Righe della fattura ordinate per data."""
        result = await self.db.execute(
            select(InvoiceLineItem)
            .where(InvoiceLineItem.invoice_id == invoice_id)
            .order_by(InvoiceLineItem.entry_date, InvoiceLineItem.id)
        )
        return list(result.scalars().all())

    async def get_next_invoice_number(self, prefix: str, year: int) -> str:
        """
        Prossimo numero libero per prefisso e anno.

        Considera solo i numeri nel formato PREFIX-YYYY-NNN; se nessuno
        esiste la sequenza parte da 001.
        """
        pattern = re.compile(rf"^{re.escape(prefix)}-{year}-(\d+)$")
        result = await self.db.execute(
            select(Invoice.invoice_number).where(
                Invoice.invoice_number.startswith(f"{prefix}-{year}-", autoescape=True)
            )
        )

        highest = 0
        for number in result.scalars():
            match = pattern.match(number)
            if match:
                highest = max(highest, int(match.group(1)))

        return format_invoice_number(prefix, year, highest + 1)

    async def delete_invoice(self, invoice: Invoice) -> None:
        """Elimina la fattura e le sue righe (le voci vanno sbloccate prima)."""
        async with self.atomic("eliminazione fattura"):
            await self.db.delete(invoice)
            await self.db.flush()

        logger.info("Fattura %s eliminata", invoice.invoice_number)
