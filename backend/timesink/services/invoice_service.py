"""
Service Layer per la Fatturazione
Progetto: Timesink (Fatturazione Freelance)

Definisce la logica di business per il ciclo di vita delle fatture:
bozza → finalizzata → inviata → pagata (o scaduta).

Regole principali:
- righe aggiunte o rimosse solo in bozza
- una voce compare al più una volta per fattura, solo se del cliente
  della fattura e non già bloccata
- la finalizzazione blocca tutte le voci e cambia stato in un'unica
  transazione: o tutto o niente
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

from timesink.core.clock import Clock, today, utcnow
from timesink.core.exceptions import (
    AlreadyLockedError,
    BusinessValidationError,
    ClientMismatchError,
    DuplicateError,
    EmptyInvoiceError,
    EntryNotFoundError,
    InvalidTransitionError,
    NotEditableError,
)
from timesink.models import Invoice, InvoiceLineItem, InvoiceStatus
from timesink.models.invoice import validate_tax_rate
from timesink.repositories import ClientRepository, EntryRepository, InvoiceRepository

# Logger per questo modulo
logger = logging.getLogger(__name__)


class InvoiceService:
    """
    Service per la gestione delle operazioni sulle fatture.

    Riceve i repository nel costruttore e non legge la configurazione:
    prefisso, aliquota e giorni di scadenza arrivano come parametri.

    Implementa:
    - Creazione bozza con numerazione progressiva annuale
    - Aggiunta/rimozione voci come righe snapshot
    - Calcolo totali con arrotondamento al centesimo
    - Finalizzazione atomica con blocco delle voci
    - Transizioni di stato (inviata, pagata, scaduta)
    """

    def __init__(
        self,
        invoices: InvoiceRepository,
        entries: EntryRepository,
        clients: ClientRepository,
        clock: Clock = utcnow,
    ) -> None:
        self.invoices = invoices
        self.entries = entries
        self.clients = clients
        self.clock = clock

    # ------------------------------------------------------------
    # Letture
    # ------------------------------------------------------------
    async def get_invoice(self, invoice_id: int) -> Invoice:
        return await self.invoices.get_invoice(invoice_id)

    async def get_invoice_by_number(self, invoice_number: str) -> Invoice:
        return await self.invoices.get_invoice_by_number(invoice_number)

    async def list_invoices(
        self,
        client_id: Optional[int] = None,
        status: Optional[InvoiceStatus] = None,
    ) -> List[Invoice]:
        return await self.invoices.list_invoices(client_id=client_id, status=status)

    async def get_line_items(self, invoice_id: int) -> List[InvoiceLineItem]:
        await self.invoices.get_invoice(invoice_id)
        return await self.invoices.get_line_items(invoice_id)

    # ------------------------------------------------------------
    # Bozza
    # ------------------------------------------------------------
    async def create_draft(
        self,
        client_id: int,
        period_start: date,
        period_end: date,
        prefix: str,
        tax_rate: Decimal = Decimal("0"),
    ) -> Invoice:
        """
        Crea una fattura in bozza con il prossimo numero disponibile.

        Args:
            client_id: Cliente intestatario
            period_start: Inizio periodo fatturato
            period_end: Fine periodo fatturato
            prefix: Prefisso numerazione (es. "INV")
            tax_rate: Aliquota iniziale come frazione

        Returns:
            Invoice: Bozza vuota con totali a zero

        Raises:
            ClientNotFoundError: Se il cliente non esiste
            BusinessValidationError: Periodo invertito o aliquota non valida
        """
        client = await self.clients.get_client(client_id)
        year = period_end.year
        invoice_number = await self.invoices.get_next_invoice_number(prefix, year)

        invoice = Invoice(
            invoice_number=invoice_number,
            client_id=client.id,
            period_start=period_start,
            period_end=period_end,
            tax_rate=validate_tax_rate(tax_rate),
        )
        invoice = await self.invoices.create_invoice(invoice)

        logger.info(
            "Bozza %s creata per %s (%s → %s)",
            invoice.invoice_number,
            client.name,
            period_start,
            period_end,
        )
        return invoice

    async def add_entries_to_invoice(
        self, invoice_id: int, entry_ids: Iterable[int]
    ) -> List[InvoiceLineItem]:
        """
        Aggiunge le voci come righe della bozza.

        Ogni riga è uno snapshot (data, descrizione, ore, tariffa, importo)
        della voce al momento dell'aggiunta. Tutte le voci vengono
        verificate prima di scrivere: se una non è valida nessuna riga
        viene aggiunta. I totali non vengono ricalcolati.

        Raises:
            InvoiceNotFoundError: Fattura inesistente
            NotEditableError: Fattura non in bozza
            EntryNotFoundError: Voce inesistente o eliminata
            AlreadyLockedError: Voce già bloccata da una fattura
            ClientMismatchError: Voce di un altro cliente
            DuplicateError: Voce già presente nella fattura
        """
        invoice = await self.invoices.get_invoice(invoice_id)
        if not invoice.can_edit:
            raise NotEditableError(
                f"La fattura {invoice.invoice_number} non è in bozza ({invoice.status.value})"
            )

        already_listed = {item.entry_id for item in invoice.line_items}
        now = self.clock()
        items: List[InvoiceLineItem] = []

        for entry_id in dict.fromkeys(entry_ids):
            entry = await self.entries.get_entry(entry_id)
            if entry.is_deleted:
                raise EntryNotFoundError(f"Voce {entry_id} non trovata")
            if entry.is_locked:
                raise AlreadyLockedError(
                    f"La voce {entry_id} è già bloccata dalla fattura {entry.invoice_id}",
                    extra={"entry_id": entry_id, "invoice_id": entry.invoice_id},
                )
            if entry.client_id != invoice.client_id:
                raise ClientMismatchError(
                    f"La voce {entry_id} appartiene al cliente {entry.client_id}, "
                    f"la fattura al cliente {invoice.client_id}",
                    extra={"entry_id": entry_id},
                )
            if entry_id in already_listed:
                raise DuplicateError(
                    f"La voce {entry_id} è già presente nella fattura {invoice.invoice_number}",
                    extra={"entry_id": entry_id},
                )
            if entry.is_running:
                raise BusinessValidationError(
                    f"La voce {entry_id} è ancora aperta e non può essere fatturata"
                )
            items.append(InvoiceLineItem.from_entry(entry, now))

        if not items:
            return []

        return await self.invoices.add_line_items(invoice, items)

    async def remove_entry_from_invoice(self, invoice_id: int, entry_id: int) -> Invoice:
        """
        Rimuove la riga della voce e ricalcola i totali con l'aliquota corrente.

        Una bozza rimasta senza righe è ammessa (viene solo segnalata nei log).

        Raises:
            InvoiceNotFoundError: Fattura inesistente
            NotEditableError: Fattura non in bozza
            LineItemNotFoundError: La voce non è nella fattura
        """
        invoice = await self.invoices.get_invoice(invoice_id)
        if not invoice.can_edit:
            raise NotEditableError(
                f"La fattura {invoice.invoice_number} non è in bozza ({invoice.status.value})"
            )

        async with self.invoices.atomic("rimozione voce da fattura"):
            await self.invoices.delete_line_item(invoice, entry_id)
            invoice.calculate_totals()
            invoice = await self.invoices.update_invoice(invoice)

        if not invoice.line_items:
            logger.warning("La bozza %s è rimasta senza righe", invoice.invoice_number)
        return invoice

    async def calculate_totals(self, invoice_id: int, tax_rate: Decimal) -> Invoice:
        """
        Imposta l'aliquota e ricalcola subtotale, imposta e totale.

        Idempotente: stesse righe e stessa aliquota danno gli stessi totali.
        Solo le bozze: dopo la finalizzazione i totali restano quelli emessi.

        Raises:
            InvoiceNotFoundError: Fattura inesistente
            NotEditableError: Fattura non in bozza
            BusinessValidationError: Aliquota fuori da [0, 1]
        """
        rate = validate_tax_rate(tax_rate)
        invoice = await self.invoices.get_invoice(invoice_id)
        if not invoice.can_edit:
            raise NotEditableError(
                f"I totali della fattura {invoice.invoice_number} sono congelati"
            )

        invoice.tax_rate = rate
        invoice.calculate_totals()
        invoice = await self.invoices.update_invoice(invoice)

        logger.info(
            "Totali fattura %s: imponibile %s, imposta %s, totale %s",
            invoice.invoice_number,
            invoice.subtotal,
            invoice.tax_amount,
            invoice.total,
        )
        return invoice

    # ------------------------------------------------------------
    # Ciclo di vita
    # ------------------------------------------------------------
    async def finalize(self, invoice_id: int, due_days: Optional[int] = None) -> Invoice:
        """
        Finalizza la bozza bloccando tutte le sue voci.

        Blocco delle voci, ricalcolo dei totali e cambio di stato sono
        un'unica transazione: se una voce risulta già bloccata nulla
        viene salvato e la fattura resta in bozza.

        Args:
            invoice_id: Fattura da finalizzare
            due_days: Giorni alla scadenza, applicati se la scadenza non è impostata

        Raises:
            InvoiceNotFoundError: Fattura inesistente
            NotEditableError: Fattura non in bozza
            EmptyInvoiceError: Fattura senza righe
            AlreadyLockedError: Una voce è già bloccata da un'altra fattura
        """
        invoice = await self.invoices.get_invoice(invoice_id)
        if not invoice.can_edit:
            raise NotEditableError(
                f"La fattura {invoice.invoice_number} è già stata finalizzata"
            )
        if not invoice.line_items:
            raise EmptyInvoiceError(
                f"La fattura {invoice.invoice_number} non ha righe"
            )

        entry_ids = [item.entry_id for item in invoice.line_items]
        async with self.invoices.atomic("finalizzazione fattura"):
            await self.entries.lock_entries_for_invoice(entry_ids, invoice.id)
            invoice.calculate_totals()
            invoice.finalize()
            if due_days is not None and invoice.due_date is None:
                invoice.due_date = today(self.clock) + timedelta(days=due_days)
            invoice = await self.invoices.update_invoice(invoice)

        logger.info(
            "Fattura %s finalizzata: %d voci bloccate, totale %s",
            invoice.invoice_number,
            len(entry_ids),
            invoice.total,
        )
        return invoice

    async def mark_sent(self, invoice_id: int) -> Invoice:
        """
        Segna la fattura come inviata.

        Raises:
            InvalidTransitionError: la fattura è ancora in bozza
        """
        invoice = await self.invoices.get_invoice(invoice_id)
        if invoice.status == InvoiceStatus.DRAFT:
            raise InvalidTransitionError(
                f"La fattura {invoice.invoice_number} va finalizzata prima dell'invio"
            )

        invoice.status = InvoiceStatus.SENT
        invoice = await self.invoices.update_invoice(invoice)
        logger.info("Fattura %s inviata", invoice.invoice_number)
        return invoice

    async def mark_paid(self, invoice_id: int, paid_date: Optional[date] = None) -> Invoice:
        """Registra il pagamento (da qualsiasi stato)."""
        invoice = await self.invoices.get_invoice(invoice_id)
        if invoice.status == InvoiceStatus.DRAFT:
            logger.warning(
                "Fattura %s segnata come pagata senza finalizzazione",
                invoice.invoice_number,
            )

        invoice.status = InvoiceStatus.PAID
        invoice.paid_date = paid_date or today(self.clock)
        invoice = await self.invoices.update_invoice(invoice)
        logger.info("Fattura %s pagata il %s", invoice.invoice_number, invoice.paid_date)
        return invoice

    async def check_overdue(self) -> List[Invoice]:
        """
        Segna come scadute le fatture inviate oltre la scadenza.

        Returns:
            Le fatture passate allo stato overdue
        """
        current_day = today(self.clock)
        sent = await self.invoices.list_invoices(status=InvoiceStatus.SENT)
        overdue = [invoice for invoice in sent if invoice.is_overdue_on(current_day)]
        if not overdue:
            return []

        async with self.invoices.atomic("verifica scadenze"):
            for invoice in overdue:
                invoice.status = InvoiceStatus.OVERDUE
                await self.invoices.update_invoice(invoice)

        logger.info(
            "Fatture scadute: %s",
            ", ".join(invoice.invoice_number for invoice in overdue),
        )
        return overdue

    # ------------------------------------------------------------
    # Eliminazione
    # ------------------------------------------------------------
    async def delete_invoice(self, invoice_id: int) -> None:
        """Elimina la fattura e sblocca le sue voci in un'unica transazione."""
        invoice = await self.invoices.get_invoice(invoice_id)
        invoice_number = invoice.invoice_number

        async with self.invoices.atomic("eliminazione fattura"):
            await self.entries.unlock_entries_for_invoice(invoice.id)
            await self.invoices.delete_invoice(invoice)

        logger.warning("Fattura %s eliminata, voci sbloccate", invoice_number)

    async def reset_invoices(self) -> int:
        """
        Elimina tutte le fatture e sblocca tutte le voci.

        Returns:
            Numero di fatture eliminate
        """
        all_invoices = await self.invoices.list_invoices()

        async with self.invoices.atomic("reset fatture"):
            for invoice in all_invoices:
                await self.entries.unlock_entries_for_invoice(invoice.id)
                await self.invoices.delete_invoice(invoice)

        logger.warning("Reset fatture: %d eliminate", len(all_invoices))
        return len(all_invoices)
