"""
Repository Clienti
Progetto: Timesink (Fatturazione Freelance)
"""

import logging
from typing import List, Optional

from sqlalchemy import func, select

from timesink.core.exceptions import ClientNotFoundError, DuplicateError
from timesink.models import Client
from timesink.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class ClientRepository(BaseRepository):
    """Persistenza dei clienti."""

    async def create_client(self, client: Client) -> Client:
        """
        Crea un nuovo cliente.

        Raises:
            BusinessValidationError: dati non validi
            DuplicateError: nome già in uso
        """
        client.validate()
        await self._ensure_unique_name(client.name)

        async with self.atomic("creazione cliente"):
            self.db.add(client)
            await self.db.flush()

        logger.info("Cliente creato: %s (id=%s)", client.name, client.id)
        return client

    async def get_client(self, client_id: int) -> Client:
        """
        Raises:
            ClientNotFoundError: se il cliente non esiste
        """
        result = await self.db.execute(select(Client).where(Client.id == client_id))
        client = result.scalar_one_or_none()
        if client is None:
            raise ClientNotFoundError(f"Cliente {client_id} non trovato")
        return client

    async def get_client_by_name(self, name: str) -> Client:
        """Ricerca per nome esatto (spazi esterni ignorati)."""
        result = await self.db.execute(select(Client).where(Client.name == name.strip()))
        client = result.scalar_one_or_none()
        if client is None:
            raise ClientNotFoundError(f"Cliente '{name}' non trovato")
        return client

    async def list_clients(self, include_archived: bool = False) -> List[Client]:
        query = select(Client)
        if not include_archived:
            query = query.where(Client.is_archived.is_(False))
        result = await self.db.execute(query.order_by(func.lower(Client.name), Client.id))
        return list(result.scalars().all())

    async def update_client(self, client: Client) -> Client:
        """
        Salva le modifiche a un cliente.

        Le voci già registrate conservano la tariffa catturata alla creazione.

        Raises:
            BusinessValidationError: dati non validi
            DuplicateError: nome già in uso da un altro cliente
        """
        try:
            client.validate()
            await self._ensure_unique_name(client.name, exclude_id=client.id)
        except Exception:
            await self.discard_changes(client)
            raise

        async with self.atomic("aggiornamento cliente"):
            await self.db.flush()

        logger.info("Cliente aggiornato: %s (id=%s)", client.name, client.id)
        return client

    async def set_archived(self, client_id: int, archived: bool) -> Client:
        """Archivia o ripristina un cliente (nessun effetto su voci e fatture)."""
        client = await self.get_client(client_id)
        async with self.atomic("archiviazione cliente"):
            client.is_archived = archived
        logger.info(
            "Cliente %s %s", client_id, "archiviato" if archived else "ripristinato"
        )
        return client

    async def _ensure_unique_name(
        self, name: str, exclude_id: Optional[int] = None
    ) -> None:
        query = select(Client.id).where(Client.name == name.strip())
        if exclude_id is not None:
            query = query.where(Client.id != exclude_id)
        result = await self.db.execute(query)
        if result.first() is not None:
            raise DuplicateError(
                f"Esiste già un cliente con nome '{name}'",
                extra={"field": "name"},
            )
