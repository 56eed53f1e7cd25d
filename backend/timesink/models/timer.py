"""
Modello SQLAlchemy per il Timer Attivo
Progetto: Timesink (Fatturazione Freelance)

Al più un timer esiste in ogni momento: la tabella ha un'unica riga
con id fisso. Lo stato (idle/running/paused) è derivato dalla presenza
della riga e da paused_at, non è mai memorizzato.
"""

from __future__ import annotations

import enum
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from timesink.core.clock import utcnow
from timesink.models import Base
from timesink.models.time_entry import TimeEntry

ACTIVE_TIMER_ID = 1


class TimerState(str, enum.Enum):
    """Stati del timer."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class ActiveTimer(Base):
    """
    Timer in corso.

    Attributes:
        id: Sempre ACTIVE_TIMER_ID
        client_id: FK al cliente
        description: Descrizione del lavoro
        start_time: Avvio (UTC)
        paused_at: Inizio della pausa corrente, None se in esecuzione
        total_paused_seconds: Secondi di pausa accumulati dalle pause concluse
    """

    __tablename__ = "active_timer"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False,
        default=ACTIVE_TIMER_ID,
    )

    client_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    paused_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    total_paused_seconds: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    __table_args__ = (
        CheckConstraint(f"id = {ACTIVE_TIMER_ID}", name="ck_active_timer_singleton"),
        CheckConstraint(
            "total_paused_seconds >= 0", name="ck_active_timer_paused_positive"
        ),
    )

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("id", ACTIVE_TIMER_ID)
        kwargs.setdefault("description", "")
        kwargs.setdefault("paused_at", None)
        kwargs.setdefault("total_paused_seconds", 0)
        super().__init__(**kwargs)

    @property
    def state(self) -> TimerState:
        if self.paused_at is not None:
            return TimerState.PAUSED
        return TimerState.RUNNING

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None

    def elapsed(self, now: Optional[datetime] = None) -> timedelta:
        """
        Tempo lavorato: dall'avvio, meno le pause concluse e quella in corso.

        Durante una pausa il valore resta fermo a paused_at.
        """
        end = self.paused_at if self.paused_at is not None else (now or utcnow())
        return end - self.start_time - timedelta(seconds=self.total_paused_seconds)

    def pause(self, now: Optional[datetime] = None) -> None:
        """Inizia una pausa; nessun effetto se il timer è già in pausa."""
        if self.paused_at is not None:
            return
        self.paused_at = now or utcnow()

    def resume(self, now: Optional[datetime] = None) -> None:
        """
        Chiude la pausa corrente sommandone la durata (secondi interi).

        Nessun effetto se il timer non è in pausa.
        """
        if self.paused_at is None:
            return
        paused = (now or utcnow()) - self.paused_at
        self.total_paused_seconds += max(int(paused.total_seconds()), 0)
        self.paused_at = None

    def to_time_entry(
        self, hourly_rate: Decimal, now: Optional[datetime] = None
    ) -> TimeEntry:
        """
        Converte il timer in una voce di tempo chiusa.

        Un timer in pausa viene prima ripreso, così la pausa in corso non
        viene fatturata. La durata registrata esclude tutto il tempo in pausa.
        """
        now = now or utcnow()
        if self.paused_at is not None:
            self.resume(now)
        duration = max(int(self.elapsed(now).total_seconds()), 0)
        return TimeEntry(
            client_id=self.client_id,
            description=self.description or "",
            start_time=self.start_time,
            end_time=now,
            duration_seconds=duration,
            hourly_rate=Decimal(str(hourly_rate)),
            is_billable=True,
        )

    def __repr__(self) -> str:
        return (
            f"<ActiveTimer(client_id={self.client_id}, state={self.state.value}, "
            f"start={self.start_time})>"
        )
