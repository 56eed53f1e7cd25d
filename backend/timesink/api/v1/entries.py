"""
Router FastAPI per le Voci di Tempo
Progetto: Timesink (Fatturazione Freelance)

Le voci bloccate da una fattura rispondono 409 a modifiche ed eliminazioni.
"""

import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Query, status

from timesink.core.deps import ClientRepositoryDep, EntryRepositoryDep
from timesink.models import TimeEntry
from timesink.schemas.entry import (
    EntryCreate,
    EntryDelete,
    EntryHistoryRead,
    EntryList,
    EntryRead,
    EntryUpdate,
    to_naive_utc,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/entries",
    tags=["Voci di tempo"],
)


@router.get(
    "/",
    name="voci_lista",
    summary="Lista voci",
    response_model=EntryList,
)
async def list_entries(
    repository: EntryRepositoryDep,
    client_id: Optional[int] = Query(None, description="Filtra per cliente"),
    start: Optional[datetime.datetime] = Query(None, description="Inizio intervallo (incluso)"),
    end: Optional[datetime.datetime] = Query(None, description="Fine intervallo (esclusa)"),
    include_locked: bool = Query(False, description="Includi voci già fatturate"),
) -> EntryList:
    entries = await repository.list_entries(
        client_id=client_id,
        start=to_naive_utc(start),
        end=to_naive_utc(end),
        include_locked=include_locked,
    )
    return EntryList(
        items=[EntryRead.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.get(
    "/unbilled",
    name="voci_da_fatturare",
    summary="Voci non fatturate di un cliente",
    response_model=EntryList,
)
async def list_unbilled(
    repository: EntryRepositoryDep,
    client_id: int = Query(..., description="Cliente"),
    start: Optional[datetime.datetime] = Query(None),
    end: Optional[datetime.datetime] = Query(None),
) -> EntryList:
    entries = await repository.get_unbilled_by_client(
        client_id, start=to_naive_utc(start), end=to_naive_utc(end)
    )
    return EntryList(
        items=[EntryRead.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.post(
    "/",
    name="voce_crea",
    summary="Registra voce manuale",
    response_model=EntryRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_entry(
    data: EntryCreate,
    repository: EntryRepositoryDep,
    clients: ClientRepositoryDep,
) -> EntryRead:
    """Registra una voce; senza tariffa esplicita usa quella corrente del cliente."""
    client = await clients.get_client(data.client_id)
    values = data.model_dump()
    if values["hourly_rate"] is None:
        values["hourly_rate"] = client.hourly_rate

    entry = await repository.create_entry(TimeEntry(**values))
    return EntryRead.model_validate(entry)


@router.get(
    "/{entry_id}",
    name="voce_dettaglio",
    summary="Dettaglio voce",
    response_model=EntryRead,
)
async def get_entry(entry_id: int, repository: EntryRepositoryDep) -> EntryRead:
    return EntryRead.model_validate(await repository.get_entry(entry_id))


@router.patch(
    "/{entry_id}",
    name="voce_aggiorna",
    summary="Modifica voce",
    description="Modifica una voce non bloccata. Ogni campo cambiato viene storicizzato con il motivo.",
    response_model=EntryRead,
)
async def update_entry(
    entry_id: int, data: EntryUpdate, repository: EntryRepositoryDep
) -> EntryRead:
    entry = await repository.get_entry(entry_id)
    changes = data.model_dump(exclude_unset=True, exclude={"reason"})
    for field, value in changes.items():
        setattr(entry, field, value)

    entry = await repository.update_entry(entry, data.reason)
    return EntryRead.model_validate(entry)


@router.delete(
    "/{entry_id}",
    name="voce_elimina",
    summary="Elimina voce",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_entry(entry_id: int, data: EntryDelete, repository: EntryRepositoryDep) -> None:
    await repository.soft_delete_entry(entry_id, data.reason)


@router.get(
    "/{entry_id}/history",
    name="voce_storico",
    summary="Storico modifiche",
    response_model=list[EntryHistoryRead],
)
async def get_entry_history(entry_id: int, repository: EntryRepositoryDep) -> list[EntryHistoryRead]:
    await repository.get_entry(entry_id)
    history = await repository.get_history(entry_id)
    return [EntryHistoryRead.model_validate(h) for h in history]
