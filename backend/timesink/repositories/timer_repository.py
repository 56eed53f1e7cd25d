"""
Repository Timer Attivo
Progetto: Timesink (Fatturazione Freelance)

La tabella active_timer contiene al più una riga: salvare sovrascrive,
eliminare riporta il timer in stato idle.
"""

import logging
from typing import Optional

from sqlalchemy import select

from timesink.models import ACTIVE_TIMER_ID, ActiveTimer
from timesink.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class TimerRepository(BaseRepository):
    """Persistenza del timer singleton."""

    async def get_active_timer(self) -> Optional[ActiveTimer]:
        """Timer corrente, None se idle."""
        result = await self.db.execute(
            select(ActiveTimer)
            .where(ActiveTimer.id == ACTIVE_TIMER_ID)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def save_active_timer(self, timer: ActiveTimer) -> ActiveTimer:
        """Crea o sovrascrive interamente la riga del timer."""
        timer.id = ACTIVE_TIMER_ID
        async with self.atomic("salvataggio timer"):
            timer = await self.db.merge(timer)
            await self.db.flush()
        return timer

    async def delete_active_timer(self) -> None:
        """Elimina il timer; nessun effetto se già idle."""
        async with self.atomic("eliminazione timer"):
            timer = await self.get_active_timer()
            if timer is not None:
                await self.db.delete(timer)
                await self.db.flush()
