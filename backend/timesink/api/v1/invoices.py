"""
Router FastAPI per la Fatturazione
Progetto: Timesink (Fatturazione Freelance)

Definisce gli endpoint API per il ciclo di vita delle fatture:
bozza, righe, totali, finalizzazione, invio, pagamento ed export.
"""

import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Query, status

from timesink.core.deps import AppSettings, ExportServiceDep, InvoiceServiceDep
from timesink.models import InvoiceStatus
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

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/invoices",
    tags=["Fatture"],
)


@router.get(
    "/",
    name="fatture_lista",
    summary="Lista fatture",
    response_model=InvoiceList,
)
async def list_invoices(
    service: InvoiceServiceDep,
    client_id: Optional[int] = Query(None, description="Filtra per cliente"),
    invoice_status: Optional[InvoiceStatus] = Query(None, alias="status", description="Filtra per stato"),
) -> InvoiceList:
    invoices = await service.list_invoices(client_id=client_id, status=invoice_status)
    return InvoiceList(
        items=[InvoiceRead.model_validate(i) for i in invoices],
        total=len(invoices),
    )


@router.post(
    "/",
    name="fattura_crea",
    summary="Crea bozza",
    description=(
        "Crea una bozza per il cliente e il periodo, aggiunge le voci indicate "
        "(o tutte quelle non fatturate del periodo) e calcola i totali."
    ),
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    data: InvoiceCreate,
    service: InvoiceServiceDep,
    settings: AppSettings,
) -> InvoiceRead:
    """
    Crea una bozza completa di righe e totali.

    Raises:
        ClientNotFoundError (404): cliente inesistente
        AlreadyLockedError (409): una voce indicata è già fatturata
        ClientMismatchError (422): una voce indicata è di un altro cliente
    """
    tax_rate = data.tax_rate if data.tax_rate is not None else settings.default_tax_rate

    # Bozza, righe e totali: tutto o niente
    async with service.invoices.atomic("creazione fattura completa"):
        invoice = await service.create_draft(
            client_id=data.client_id,
            period_start=data.period_start,
            period_end=data.period_end,
            prefix=settings.invoice_number_prefix,
            tax_rate=tax_rate,
        )

        entry_ids = data.entry_ids
        if not entry_ids:
            unbilled = await service.entries.get_unbilled_by_client(
                data.client_id,
                start=datetime.datetime.combine(data.period_start, datetime.time.min),
                end=datetime.datetime.combine(
                    data.period_end + datetime.timedelta(days=1), datetime.time.min
                ),
            )
            entry_ids = [entry.id for entry in unbilled]

        if entry_ids:
            await service.add_entries_to_invoice(invoice.id, entry_ids)
        invoice = await service.calculate_totals(invoice.id, tax_rate)
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/check-overdue",
    name="fatture_verifica_scadenze",
    summary="Segna le fatture scadute",
    response_model=InvoiceList,
)
async def check_overdue(service: InvoiceServiceDep) -> InvoiceList:
    flipped = await service.check_overdue()
    return InvoiceList(
        items=[InvoiceRead.model_validate(i) for i in flipped],
        total=len(flipped),
    )


@router.get(
    "/by-number/{invoice_number}",
    name="fattura_per_numero",
    summary="Fattura per numero",
    response_model=InvoiceRead,
)
async def get_invoice_by_number(invoice_number: str, service: InvoiceServiceDep) -> InvoiceRead:
    return InvoiceRead.model_validate(await service.get_invoice_by_number(invoice_number))


@router.get(
    "/{invoice_id}",
    name="fattura_dettaglio",
    summary="Dettaglio fattura",
    response_model=InvoiceRead,
)
async def get_invoice(invoice_id: int, service: InvoiceServiceDep) -> InvoiceRead:
    return InvoiceRead.model_validate(await service.get_invoice(invoice_id))


@router.get(
    "/{invoice_id}/line-items",
    name="fattura_righe",
    summary="Righe fattura",
    response_model=list[InvoiceLineItemRead],
)
async def get_line_items(invoice_id: int, service: InvoiceServiceDep) -> list[InvoiceLineItemRead]:
    items = await service.get_line_items(invoice_id)
    return [InvoiceLineItemRead.model_validate(item) for item in items]


@router.post(
    "/{invoice_id}/entries",
    name="fattura_aggiungi_voci",
    summary="Aggiungi voci alla bozza",
    response_model=InvoiceRead,
)
async def add_entries(
    invoice_id: int, data: InvoiceAddEntries, service: InvoiceServiceDep
) -> InvoiceRead:
    invoice = await service.get_invoice(invoice_id)
    await service.add_entries_to_invoice(invoice_id, data.entry_ids)
    invoice = await service.calculate_totals(invoice_id, invoice.tax_rate)
    return InvoiceRead.model_validate(invoice)


@router.delete(
    "/{invoice_id}/entries/{entry_id}",
    name="fattura_rimuovi_voce",
    summary="Rimuovi voce dalla bozza",
    response_model=InvoiceRead,
)
async def remove_entry(invoice_id: int, entry_id: int, service: InvoiceServiceDep) -> InvoiceRead:
    invoice = await service.remove_entry_from_invoice(invoice_id, entry_id)
    return InvoiceRead.model_validate(invoice)


@router.put(
    "/{invoice_id}/totals",
    name="fattura_totali",
    summary="Imposta aliquota e ricalcola i totali",
    response_model=InvoiceRead,
)
async def update_totals(
    invoice_id: int, data: InvoiceTotalsUpdate, service: InvoiceServiceDep
) -> InvoiceRead:
    invoice = await service.calculate_totals(invoice_id, data.tax_rate)
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/finalize",
    name="fattura_finalizza",
    summary="Finalizza fattura",
    description="Blocca tutte le voci della fattura e la porta in stato finalizzato.",
    response_model=InvoiceRead,
)
async def finalize_invoice(
    invoice_id: int,
    data: InvoiceFinalize,
    service: InvoiceServiceDep,
    exporter: ExportServiceDep,
    settings: AppSettings,
) -> InvoiceRead:
    """
    Raises:
        NotEditableError (409): fattura già finalizzata
        EmptyInvoiceError (422): fattura senza righe
        AlreadyLockedError (409): una voce è già bloccata
    """
    due_days = data.due_days if data.due_days is not None else settings.default_due_days
    invoice = await service.finalize(invoice_id, due_days=due_days)

    if data.export:
        client = await service.clients.get_client(invoice.client_id)
        exporter.write(
            invoice,
            client,
            invoice.line_items,
            settings.invoice_export_dir,
        )
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/send",
    name="fattura_invia",
    summary="Segna come inviata",
    response_model=InvoiceRead,
)
async def send_invoice(invoice_id: int, service: InvoiceServiceDep) -> InvoiceRead:
    return InvoiceRead.model_validate(await service.mark_sent(invoice_id))


@router.post(
    "/{invoice_id}/pay",
    name="fattura_paga",
    summary="Segna come pagata",
    response_model=InvoiceRead,
)
async def pay_invoice(invoice_id: int, data: InvoicePay, service: InvoiceServiceDep) -> InvoiceRead:
    return InvoiceRead.model_validate(await service.mark_paid(invoice_id, data.paid_date))


@router.get(
    "/{invoice_id}/export",
    name="fattura_export",
    summary="Export testuale",
    response_model=InvoiceExportRead,
)
async def export_invoice(
    invoice_id: int,
    service: InvoiceServiceDep,
    exporter: ExportServiceDep,
) -> InvoiceExportRead:
    invoice = await service.get_invoice(invoice_id)
    client = await service.clients.get_client(invoice.client_id)
    content = exporter.render(invoice, client, invoice.line_items)
    return InvoiceExportRead(invoice_number=invoice.invoice_number, content=content)


@router.delete(
    "/{invoice_id}",
    name="fattura_elimina",
    summary="Elimina fattura",
    description="Elimina la fattura e sblocca le voci agganciate.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_invoice(invoice_id: int, service: InvoiceServiceDep) -> None:
    await service.delete_invoice(invoice_id)
