"""
Repository base
Progetto: Timesink (Fatturazione Freelance)

Ogni repository riceve la sessione nel costruttore; più repository
costruiti sulla stessa sessione condividono le stesse transazioni.
"""

from contextlib import AbstractAsyncContextManager

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from timesink.core.database import atomic


class BaseRepository:
    """Accesso allo storage tramite una AsyncSession iniettata."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def atomic(self, operation: str) -> AbstractAsyncContextManager[AsyncSession]:
        """Apre (o partecipa a) un'unità di scrittura tutto-o-niente."""
        return atomic(self.db, operation)

    async def discard_changes(self, instance) -> None:
        """
        Ripristina un'istanza ai valori persistiti.

        Usato quando una scrittura viene rifiutata dopo che il chiamante
        ha già modificato l'oggetto.
        """
        state = inspect(instance)
        if state.persistent:
            await self.db.refresh(instance)
