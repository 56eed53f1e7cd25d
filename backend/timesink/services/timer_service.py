"""
Service Layer per il Timer
Progetto: Timesink (Fatturazione Freelance)

Macchina a stati del timer singleton:

    idle --start--> running --pause--> paused --resume--> running
    running|paused --stop--> idle (crea una voce di tempo)
    running|paused --discard--> idle (nessuna voce)

Lo stato vive solo nel database: se il processo termina, il timer
riprende da dove era rimasto al riavvio successivo.
"""

import logging
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from timesink.core.clock import Clock, utcnow
from timesink.core.exceptions import (
    AlreadyRunningError,
    NoActiveTimerError,
    NotPausedError,
    NotRunningError,
)
from timesink.models import ActiveTimer, TimeEntry, TimerState
from timesink.models.time_entry import CENT, SECONDS_PER_HOUR
from timesink.repositories import ClientRepository, EntryRepository, TimerRepository

# Logger per questo modulo
logger = logging.getLogger(__name__)


class TimerService:
    """
    Service per il timer attivo.

    Riceve i repository nel costruttore; l'orologio è iniettabile per i test.
    """

    def __init__(
        self,
        timers: TimerRepository,
        entries: EntryRepository,
        clients: ClientRepository,
        clock: Clock = utcnow,
    ) -> None:
        self.timers = timers
        self.entries = entries
        self.clients = clients
        self.clock = clock

    async def get_state(self) -> TimerState:
        timer = await self.timers.get_active_timer()
        return timer.state if timer is not None else TimerState.IDLE

    async def get_active_timer(self) -> Optional[ActiveTimer]:
        return await self.timers.get_active_timer()

    async def start(self, client_id: int, description: str = "") -> ActiveTimer:
        """
        Avvia un nuovo timer per il cliente.

        Args:
            client_id: Cliente per cui si lavora
            description: Descrizione dell'attività

        Returns:
            ActiveTimer: Il timer in esecuzione

        Raises:
            AlreadyRunningError: se un timer (anche in pausa) esiste già
            ClientNotFoundError: se il cliente non esiste
        """
        existing = await self.timers.get_active_timer()
        if existing is not None:
            raise AlreadyRunningError(
                f"Timer già attivo per il cliente {existing.client_id} ({existing.state.value})",
                extra={"client_id": existing.client_id, "state": existing.state.value},
            )

        client = await self.clients.get_client(client_id)

        timer = ActiveTimer(
            client_id=client.id,
            description=(description or "").strip(),
            start_time=self.clock(),
        )
        timer = await self.timers.save_active_timer(timer)

        logger.info("Timer avviato per il cliente %s (%s)", client.name, client.id)
        return timer

    async def pause(self) -> ActiveTimer:
        """
        Mette in pausa il timer in corso.

        Raises:
            NoActiveTimerError: nessun timer attivo
            NotRunningError: il timer è già in pausa
        """
        timer = await self._require_timer()
        if timer.is_paused:
            raise NotRunningError("Il timer è già in pausa")

        timer.pause(self.clock())
        timer = await self.timers.save_active_timer(timer)
        logger.info("Timer in pausa dopo %s", self._format_elapsed(timer.elapsed()))
        return timer

    async def resume(self) -> ActiveTimer:
        """
        Riprende il timer in pausa.

        Raises:
            NoActiveTimerError: nessun timer attivo
            NotPausedError: il timer non è in pausa
        """
        timer = await self._require_timer()
        if not timer.is_paused:
            raise NotPausedError()

        timer.resume(self.clock())
        timer = await self.timers.save_active_timer(timer)
        logger.info("Timer ripreso (pausa totale %ss)", timer.total_paused_seconds)
        return timer

    async def stop(self) -> TimeEntry:
        """
        Ferma il timer e registra la voce di tempo.

        Creazione della voce ed eliminazione del timer avvengono nella
        stessa transazione. La tariffa è quella corrente del cliente; la
        durata esclude tutto il tempo in pausa.

        Returns:
            TimeEntry: La voce creata

        Raises:
            NoActiveTimerError: nessun timer attivo
            ClientNotFoundError: il cliente del timer non esiste più
        """
        timer = await self._require_timer()
        client = await self.clients.get_client(timer.client_id)

        entry = timer.to_time_entry(client.hourly_rate, now=self.clock())
        async with self.timers.atomic("arresto timer"):
            entry = await self.entries.create_entry(entry)
            await self.timers.delete_active_timer()

        logger.info(
            "Timer fermato: voce %s per %s, durata %s",
            entry.id,
            client.name,
            self._format_elapsed(timedelta(seconds=entry.duration_seconds or 0)),
        )
        return entry

    async def discard(self) -> None:
        """
        Annulla il timer senza creare voci.

        Raises:
            NoActiveTimerError: nessun timer attivo
        """
        timer = await self._require_timer()
        client_id = timer.client_id
        await self.timers.delete_active_timer()
        logger.info("Timer annullato (cliente %s)", client_id)

    async def elapsed_duration(self) -> timedelta:
        """Tempo lavorato dal timer corrente; zero se idle."""
        timer = await self.timers.get_active_timer()
        if timer is None:
            return timedelta(0)
        return timer.elapsed(self.clock())

    async def accrued_value(self, hourly_rate: Optional[Decimal] = None) -> Decimal:
        """
        Valore maturato finora dal timer corrente.

        Args:
            hourly_rate: Tariffa da applicare (default: tariffa del cliente)
        """
        timer = await self.timers.get_active_timer()
        if timer is None:
            return Decimal("0.00")
        if hourly_rate is None:
            hourly_rate = (await self.clients.get_client(timer.client_id)).hourly_rate

        hours = Decimal(str(timer.elapsed(self.clock()).total_seconds())) / SECONDS_PER_HOUR
        return (hours * Decimal(str(hourly_rate))).quantize(CENT, rounding=ROUND_HALF_UP)

    async def recover_from_crash(self) -> Optional[ActiveTimer]:
        """
        Verifica all'avvio se un timer è sopravvissuto a un riavvio.

        Il timer non viene modificato: il tempo trascorso continua a
        essere calcolato dall'orario di avvio persistito.
        """
        timer = await self.timers.get_active_timer()
        if timer is not None:
            logger.warning(
                "Timer recuperato dopo il riavvio: cliente %s, stato %s, trascorso %s",
                timer.client_id,
                timer.state.value,
                self._format_elapsed(timer.elapsed(self.clock())),
            )
        return timer

    async def _require_timer(self) -> ActiveTimer:
        timer = await self.timers.get_active_timer()
        if timer is None:
            raise NoActiveTimerError()
        return timer

    @staticmethod
    def _format_elapsed(elapsed: timedelta) -> str:
        total = max(int(elapsed.total_seconds()), 0)
        hours, rest = divmod(total, 3600)
        minutes, seconds = divmod(rest, 60)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
