"""
Modello SQLAlchemy per le Voci di Tempo
Progetto: Timesink (Fatturazione Freelance)

Una voce di tempo è un intervallo lavorato per un cliente. Quando viene
agganciata a una fattura finalizzata (invoice_id valorizzato) diventa
immutabile: modifiche ed eliminazione vengono rifiutate dal repository.
Ogni modifica consentita lascia una riga append-only in EntryHistory.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from timesink.core.clock import utcnow
from timesink.core.exceptions import BusinessValidationError
from timesink.models import Base
from timesink.models.mixins import IDMixin, SoftDeleteMixin, TimestampMixin

CENT = Decimal("0.01")
SECONDS_PER_HOUR = Decimal(3600)


class TimeEntry(Base, IDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Voce di tempo fatturabile.

    Attributes:
        id: Primary key
        client_id: FK al cliente
        description: Descrizione del lavoro svolto
        start_time: Inizio (UTC)
        end_time: Fine (UTC), None finché la voce è aperta
        duration_seconds: Durata fatturata; per le voci nate da un timer
            esclude il tempo in pausa
        hourly_rate: Tariffa catturata alla creazione, mai ricalcolata dal cliente
        is_billable: Se False l'importo è sempre zero
        invoice_id: Fattura che blocca la voce (None = modificabile)
        is_deleted: Eliminazione logica
    """

    __tablename__ = "time_entries"

    client_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="FK al cliente",
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        doc="Descrizione attività",
    )

    start_time: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        doc="Inizio lavoro (UTC)",
    )

    end_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
        doc="Fine lavoro (UTC)",
    )

    duration_seconds: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        doc="Durata fatturata in secondi",
    )

    hourly_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Tariffa oraria catturata alla creazione",
    )

    is_billable: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Voce fatturabile",
    )

    invoice_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("invoices.id"),
        nullable=True,
        index=True,
        doc="Fattura che blocca la voce",
    )

    __table_args__ = (
        CheckConstraint("hourly_rate >= 0", name="ck_time_entries_rate_positive"),
        CheckConstraint(
            "duration_seconds IS NULL OR duration_seconds >= 0",
            name="ck_time_entries_duration_positive",
        ),
        Index("ix_time_entries_client_start", "client_id", "start_time"),
    )

    def __init__(self, **kwargs) -> None:
        # I default di colonna valgono solo all'INSERT: qui servono subito
        # per calcolare importi su voci non ancora salvate.
        kwargs.setdefault("description", "")
        kwargs.setdefault("hourly_rate", Decimal("0.00"))
        kwargs.setdefault("is_billable", True)
        kwargs.setdefault("is_deleted", False)
        super().__init__(**kwargs)

    # ------------------------------------------------------------
    # Stato
    # ------------------------------------------------------------
    @property
    def is_locked(self) -> bool:
        """True se la voce è agganciata a una fattura."""
        return self.invoice_id is not None

    @property
    def is_running(self) -> bool:
        """True se la voce non ha ancora un orario di fine."""
        return self.end_time is None

    # ------------------------------------------------------------
    # Calcoli
    # ------------------------------------------------------------
    def duration(self, now: Optional[datetime] = None) -> timedelta:
        """
        Durata della voce.

        Per una voce chiusa vale la durata fatturata se presente,
        altrimenti fine meno inizio. Per una voce aperta è il tempo
        trascorso fino a `now`.
        """
        if self.end_time is None:
            return (now or utcnow()) - self.start_time
        if self.duration_seconds is not None:
            return timedelta(seconds=self.duration_seconds)
        return self.end_time - self.start_time

    def hours(self, now: Optional[datetime] = None) -> Decimal:
        """Durata in ore decimali (non arrotondate)."""
        return Decimal(str(self.duration(now).total_seconds())) / SECONDS_PER_HOUR

    def amount(self, now: Optional[datetime] = None) -> Decimal:
        """
        Importo della voce: ore per tariffa, arrotondato al centesimo.

        Zero per voci non fatturabili.
        """
        if not self.is_billable:
            return Decimal("0.00")
        rate = Decimal(str(self.hourly_rate))
        return (self.hours(now) * rate).quantize(CENT, rounding=ROUND_HALF_UP)

    # ------------------------------------------------------------
    # Operazioni
    # ------------------------------------------------------------
    def stop(self, end_time: Optional[datetime] = None) -> None:
        """
        Chiude la voce e ne fissa la durata.

        Raises:
            BusinessValidationError: voce già chiusa o fine precedente all'inizio
        """
        if self.end_time is not None:
            raise BusinessValidationError("La voce è già chiusa")
        end_time = end_time or utcnow()
        if end_time < self.start_time:
            raise BusinessValidationError(
                "L'ora di fine non può precedere l'ora di inizio"
            )
        self.end_time = end_time
        self.duration_seconds = int((end_time - self.start_time).total_seconds())

    def validate(self) -> None:
        """
        Verifica la coerenza della voce prima del salvataggio.

        Raises:
            BusinessValidationError: cliente mancante, inizio mancante,
                fine precedente all'inizio, tariffa o durata negativa
        """
        if not self.client_id or self.client_id <= 0:
            raise BusinessValidationError("Il cliente è obbligatorio")
        if self.start_time is None:
            raise BusinessValidationError("L'ora di inizio è obbligatoria")
        if self.end_time is not None and self.end_time < self.start_time:
            raise BusinessValidationError(
                "L'ora di fine non può precedere l'ora di inizio"
            )
        if self.hourly_rate is None or Decimal(str(self.hourly_rate)) < 0:
            raise BusinessValidationError("La tariffa oraria non può essere negativa")
        if self.duration_seconds is not None and self.duration_seconds < 0:
            raise BusinessValidationError("La durata non può essere negativa")

    def __repr__(self) -> str:
        return (
            f"<TimeEntry(id={self.id}, client_id={self.client_id}, "
            f"start={self.start_time}, invoice_id={self.invoice_id})>"
        )


class EntryHistory(Base, IDMixin):
    """
    Riga di storico per una modifica a una voce di tempo.

    Append-only: le righe non vengono mai aggiornate né cancellate.
    Valori vecchio/nuovo sono serializzati in testo.
    """

    __tablename__ = "entry_history"

    entry_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("time_entries.id"),
        nullable=False,
        index=True,
    )

    field_name: Mapped[str] = mapped_column(String(50), nullable=False)

    old_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    new_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    change_reason: Mapped[str] = mapped_column(Text, nullable=False)

    changed_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return (
            f"<EntryHistory(entry_id={self.entry_id}, field={self.field_name!r}, "
            f"{self.old_value!r} -> {self.new_value!r})>"
        )
