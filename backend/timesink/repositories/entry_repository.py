"""
Repository Voci di Tempo
Progetto: Timesink (Fatturazione Freelance)

Unico punto in cui vengono applicati il blocco delle voci fatturate e
lo storico delle modifiche:
- update/delete di una voce bloccata → LockedError, nessuna scrittura
- ogni campo modificato → una riga EntryHistory con lo stesso motivo
- il blocco per fattura è tutto-o-niente
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, List, Optional, Tuple

from sqlalchemy import select

from timesink.core.exceptions import (
    AlreadyLockedError,
    BusinessValidationError,
    ClientNotFoundError,
    EntryNotFoundError,
    LockedError,
)
from timesink.models import Client, EntryHistory, TimeEntry
from timesink.models.time_entry import CENT
from timesink.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


def _format_datetime(value: Optional[datetime]) -> str:
    return value.isoformat() if value is not None else ""


def _format_money(value: Any) -> str:
    return str(Decimal(str(value)).quantize(CENT)) if value is not None else ""


# Campi soggetti a storico: (nome campo, formattatore del valore).
# Accetta sia istanze ORM sia righe Core della tabella time_entries.
AUDITED_FIELDS: Tuple[Tuple[str, Callable[[Any], str]], ...] = (
    ("client_id", lambda e: str(e.client_id)),
    ("description", lambda e: e.description or ""),
    ("start_time", lambda e: _format_datetime(e.start_time)),
    ("end_time", lambda e: _format_datetime(e.end_time)),
    ("duration_seconds", lambda e: "" if e.duration_seconds is None else str(e.duration_seconds)),
    ("hourly_rate", lambda e: _format_money(e.hourly_rate)),
    ("is_billable", lambda e: str(bool(e.is_billable)).lower()),
)


def diff_entry(old: Any, new: Any) -> List[Tuple[str, str, str]]:
    """Restituisce (campo, vecchio, nuovo) per ogni campo storicizzato cambiato."""
    changes = []
    for field_name, extract in AUDITED_FIELDS:
        old_value, new_value = extract(old), extract(new)
        if old_value != new_value:
            changes.append((field_name, old_value, new_value))
    return changes


def _require_reason(reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        raise BusinessValidationError(
            "Il motivo della modifica è obbligatorio",
            extra={"field": "reason"},
        )
    return reason.strip()


class EntryRepository(BaseRepository):
    """Persistenza delle voci di tempo e del loro storico."""

    async def create_entry(self, entry: TimeEntry) -> TimeEntry:
        """
        Registra una nuova voce.

        Se la voce è chiusa e la durata non è impostata viene calcolata
        come fine meno inizio.

        Raises:
            BusinessValidationError: voce non valida
            ClientNotFoundError: cliente inesistente
        """
        entry.validate()
        await self._ensure_client_exists(entry.client_id)
        if entry.end_time is not None and entry.duration_seconds is None:
            entry.duration_seconds = int((entry.end_time - entry.start_time).total_seconds())

        async with self.atomic("creazione voce"):
            self.db.add(entry)
            await self.db.flush()

        logger.info(
            "Voce creata: id=%s cliente=%s durata=%ss",
            entry.id,
            entry.client_id,
            entry.duration_seconds,
        )
        return entry

    async def get_entry(self, entry_id: int) -> TimeEntry:
        """
        Restituisce la voce, anche se eliminata logicamente.

        Raises:
            EntryNotFoundError: se la voce non esiste
        """
        result = await self.db.execute(
            select(TimeEntry)
            .where(TimeEntry.id == entry_id)
            .execution_options(populate_existing=True)
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(f"Voce {entry_id} non trovata")
        return entry

    async def list_entries(
        self,
        client_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_locked: bool = False,
    ) -> List[TimeEntry]:
        """
        Elenca le voci non eliminate, dalla più recente.

        Args:
            client_id: filtra per cliente
            start: inizio intervallo (incluso) su start_time
            end: fine intervallo (esclusa) su start_time
            include_locked: includi le voci già fatturate
        """
        query = select(TimeEntry).where(TimeEntry.is_deleted.is_(False))
        if client_id is not None:
            query = query.where(TimeEntry.client_id == client_id)
        if start is not None:
            query = query.where(TimeEntry.start_time >= start)
        if end is not None:
            query = query.where(TimeEntry.start_time < end)
        if not include_locked:
            query = query.where(TimeEntry.invoice_id.is_(None))

        result = await self.db.execute(
            query.order_by(TimeEntry.start_time.desc(), TimeEntry.id.desc())
        )
        return list(result.scalars().all())

    async def get_unbilled_by_client(
        self,
        client_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[TimeEntry]:
        """Voci chiuse, non eliminate e non bloccate del cliente, in ordine cronologico."""
        query = select(TimeEntry).where(
            TimeEntry.client_id == client_id,
            TimeEntry.is_deleted.is_(False),
            TimeEntry.invoice_id.is_(None),
            TimeEntry.end_time.is_not(None),
        )
        if start is not None:
            query = query.where(TimeEntry.start_time >= start)
        if end is not None:
            query = query.where(TimeEntry.start_time < end)

        result = await self.db.execute(
            query.order_by(TimeEntry.start_time.asc(), TimeEntry.id.asc())
        )
        return list(result.scalars().all())

    async def is_locked(self, entry_id: int) -> bool:
        """
        Raises:
            EntryNotFoundError: se la voce non esiste
        """
        result = await self.db.execute(
            select(TimeEntry.invoice_id).where(TimeEntry.id == entry_id)
        )
        row = result.first()
        if row is None:
            raise EntryNotFoundError(f"Voce {entry_id} non trovata")
        return row.invoice_id is not None

    async def update_entry(self, entry: TimeEntry, reason: str) -> TimeEntry:
        """
        Salva le modifiche a una voce e ne registra lo storico.

        Il confronto avviene con la riga persistita, letta senza flush:
        ogni campo cambiato produce una riga EntryHistory con lo stesso
        motivo, nella stessa transazione dell'aggiornamento.

        Raises:
            BusinessValidationError: motivo mancante o voce non valida,
                oppure modifica di invoice_id o is_deleted
            EntryNotFoundError: voce inesistente o eliminata
            LockedError: voce agganciata a una fattura
            ClientNotFoundError: nuovo cliente inesistente
        """
        try:
            reason = _require_reason(reason)
            stored = await self._load_stored(entry.id)
            if stored is None or stored.is_deleted:
                raise EntryNotFoundError(f"Voce {entry.id} non trovata")
            if stored.invoice_id is not None:
                raise LockedError(
                    f"La voce {entry.id} è bloccata dalla fattura {stored.invoice_id}",
                    extra={"entry_id": entry.id, "invoice_id": stored.invoice_id},
                )
            if entry.invoice_id != stored.invoice_id or bool(entry.is_deleted) != bool(stored.is_deleted):
                raise BusinessValidationError(
                    "Blocco ed eliminazione non si modificano con un aggiornamento",
                    extra={"entry_id": entry.id},
                )
            entry.validate()
            if entry.client_id != stored.client_id:
                await self._ensure_client_exists(entry.client_id)
        except Exception:
            await self.discard_changes(entry)
            raise

        # Intervallo modificato senza una durata esplicita: vale la nuova ampiezza
        span_changed = (
            entry.start_time != stored.start_time or entry.end_time != stored.end_time
        )
        if (
            span_changed
            and entry.end_time is not None
            and entry.duration_seconds == stored.duration_seconds
        ):
            entry.duration_seconds = int((entry.end_time - entry.start_time).total_seconds())

        changes = diff_entry(stored, entry)
        if not changes:
            await self.discard_changes(entry)
            return entry

        async with self.atomic("aggiornamento voce"):
            if entry not in self.db:
                entry = await self.db.merge(entry)
            for field_name, old_value, new_value in changes:
                self.db.add(
                    EntryHistory(
                        entry_id=entry.id,
                        field_name=field_name,
                        old_value=old_value,
                        new_value=new_value,
                        change_reason=reason,
                    )
                )
            await self.db.flush()

        logger.info(
            "Voce %s aggiornata (%s): %s",
            entry.id,
            reason,
            ", ".join(name for name, _, _ in changes),
        )
        return entry

    async def soft_delete_entry(self, entry_id: int, reason: str) -> None:
        """
        Elimina logicamente una voce registrando il motivo nello storico.

        Raises:
            BusinessValidationError: motivo mancante
            EntryNotFoundError: voce inesistente o già eliminata
            LockedError: voce agganciata a una fattura
        """
        reason = _require_reason(reason)
        entry = await self.get_entry(entry_id)
        if entry.is_deleted:
            raise EntryNotFoundError(f"Voce {entry_id} già eliminata")
        if entry.is_locked:
            raise LockedError(
                f"La voce {entry_id} è bloccata dalla fattura {entry.invoice_id}",
                extra={"entry_id": entry_id, "invoice_id": entry.invoice_id},
            )

        async with self.atomic("eliminazione voce"):
            entry.is_deleted = True
            self.db.add(
                EntryHistory(
                    entry_id=entry_id,
                    field_name="is_deleted",
                    old_value="false",
                    new_value="true",
                    change_reason=reason,
                )
            )
            await self.db.flush()

        logger.info("Voce %s eliminata: %s", entry_id, reason)

    async def lock_entries_for_invoice(
        self, entry_ids: Iterable[int], invoice_id: int
    ) -> None:
        """
        Aggancia le voci alla fattura, tutte o nessuna.

        Raises:
            EntryNotFoundError: una voce non esiste o è eliminata
            AlreadyLockedError: una voce è già bloccata
        """
        ids = list(dict.fromkeys(entry_ids))
        if not ids:
            return

        async with self.atomic("blocco voci per fattura"):
            result = await self.db.execute(
                select(TimeEntry)
                .where(TimeEntry.id.in_(ids))
                .execution_options(populate_existing=True)
            )
            entries = {entry.id: entry for entry in result.scalars().all()}

            for entry_id in ids:
                entry = entries.get(entry_id)
                if entry is None or entry.is_deleted:
                    raise EntryNotFoundError(f"Voce {entry_id} non trovata")
                if entry.is_locked:
                    raise AlreadyLockedError(
                        f"La voce {entry_id} è già bloccata dalla fattura {entry.invoice_id}",
                        extra={"entry_id": entry_id, "invoice_id": entry.invoice_id},
                    )
                entry.invoice_id = invoice_id
            await self.db.flush()

        logger.info("Bloccate %d voci per la fattura %s", len(ids), invoice_id)

    async def unlock_entries_for_invoice(self, invoice_id: int) -> int:
        """
        Sgancia tutte le voci bloccate dalla fattura.

        Usato solo quando la fattura stessa viene eliminata.

        Returns:
            Numero di voci sbloccate
        """
        async with self.atomic("sblocco voci fattura"):
            result = await self.db.execute(
                select(TimeEntry).where(TimeEntry.invoice_id == invoice_id)
            )
            entries = list(result.scalars().all())
            for entry in entries:
                entry.invoice_id = None
            await self.db.flush()

        if entries:
            logger.info("Sbloccate %d voci della fattura %s", len(entries), invoice_id)
        return len(entries)

    async def get_history(self, entry_id: int) -> List[EntryHistory]:
        """Storico delle modifiche, dalla più recente."""
        result = await self.db.execute(
            select(EntryHistory)
            .where(EntryHistory.entry_id == entry_id)
            .order_by(EntryHistory.changed_at.desc(), EntryHistory.id.desc())
        )
        return list(result.scalars().all())

    async def _load_stored(self, entry_id: Optional[int]):
        """Riga persistita della voce, senza passare dall'identity map."""
        if entry_id is None:
            return None
        table = TimeEntry.__table__
        result = await self.db.execute(select(table).where(table.c.id == entry_id))
        return result.first()

    async def _ensure_client_exists(self, client_id: int) -> None:
        result = await self.db.execute(select(Client.id).where(Client.id == client_id))
        if result.first() is None:
            raise ClientNotFoundError(f"Cliente {client_id} non trovato")
