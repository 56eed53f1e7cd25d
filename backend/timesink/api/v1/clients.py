"""
Router FastAPI per l'entità Client
Progetto: Timesink (Fatturazione Freelance)

Definisce gli endpoint API per la gestione dei clienti.
"""

import logging

from fastapi import APIRouter, Query, status

from timesink.core.deps import ClientRepositoryDep
from timesink.models import Client
from timesink.schemas.client import ClientCreate, ClientList, ClientRead, ClientUpdate

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/clients",
    tags=["Clienti"],
)


@router.get(
    "/",
    name="clienti_lista",
    summary="Lista clienti",
    response_model=ClientList,
    status_code=status.HTTP_200_OK,
)
async def list_clients(
    repository: ClientRepositoryDep,
    include_archived: bool = Query(False, description="Includi clienti archiviati"),
) -> ClientList:
    clients = await repository.list_clients(include_archived=include_archived)
    return ClientList(
        items=[ClientRead.model_validate(c) for c in clients],
        total=len(clients),
    )


@router.post(
    "/",
    name="cliente_crea",
    summary="Crea cliente",
    response_model=ClientRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_client(data: ClientCreate, repository: ClientRepositoryDep) -> ClientRead:
    """
    Crea un nuovo cliente.

    Raises:
        DuplicateError (409): nome già in uso
    """
    client = await repository.create_client(Client(**data.model_dump()))
    return ClientRead.model_validate(client)


@router.get(
    "/{client_id}",
    name="cliente_dettaglio",
    summary="Dettaglio cliente",
    response_model=ClientRead,
)
async def get_client(client_id: int, repository: ClientRepositoryDep) -> ClientRead:
    return ClientRead.model_validate(await repository.get_client(client_id))


@router.patch(
    "/{client_id}",
    name="cliente_aggiorna",
    summary="Aggiorna cliente",
    description="Aggiorna i dati del cliente. Le voci esistenti mantengono la tariffa registrata.",
    response_model=ClientRead,
)
async def update_client(
    client_id: int, data: ClientUpdate, repository: ClientRepositoryDep
) -> ClientRead:
    client = await repository.get_client(client_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(client, field, value)
    client = await repository.update_client(client)
    return ClientRead.model_validate(client)


@router.post(
    "/{client_id}/archive",
    name="cliente_archivia",
    summary="Archivia cliente",
    response_model=ClientRead,
)
async def archive_client(client_id: int, repository: ClientRepositoryDep) -> ClientRead:
    return ClientRead.model_validate(await repository.set_archived(client_id, True))


@router.post(
    "/{client_id}/unarchive",
    name="cliente_ripristina",
    summary="Ripristina cliente archiviato",
    response_model=ClientRead,
)
async def unarchive_client(client_id: int, repository: ClientRepositoryDep) -> ClientRead:
    return ClientRead.model_validate(await repository.set_archived(client_id, False))
