"""
Mixin SQLAlchemy per modelli
Progetto: Timesink (Fatturazione Freelance)

Mixin riutilizzabili per aggiungere funzionalità comuni ai modelli.
"""

import datetime

from sqlalchemy import Boolean, DateTime, Integer
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, Session

from timesink.core.clock import utcnow


class SoftDeleteMixin:
    """
    Mixin per implementare la cancellazione logica (soft delete).

    Aggiunge il campo is_deleted che, se impostato a True,
    indica che il record è stato "eliminato" ma non rimosso fisicamente.

    Usage:
        class MyModel(Base, SoftDeleteMixin):
            __tablename__ = "my_table"
            ...
    """

    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Flag per soft delete: True = eliminato, False = attivo",
    )


class TimestampMixin:
    """
    Mixin per gestione automatica timestamp creazione e aggiornamento.

    Aggiunge i campi:
    - created_at: data/ora di creazione record (impostato automaticamente)
    - updated_at: data/ora ultimo aggiornamento (aggiornato automaticamente)

    Default calcolati lato Python (UTC naive), disponibili sull'istanza
    subito dopo il flush.
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
        doc="Data/ora di creazione del record (UTC)",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
        doc="Data/ora ultimo aggiornamento del record (UTC)",
    )


class IDMixin:
    """
    Mixin per ID intero autoincrementale.

    Gli identificativi sono interi positivi: un riferimento <= 0
    è considerato non impostato dalle validazioni di dominio.
    """

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        doc="Primary key intera",
    )


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """
    Event listener per aggiornare automaticamente il campo updated_at.

    Questo listener viene eseguito prima di ogni flush e aggiorna il campo
    updated_at di tutti gli oggetti modificati (dirty) e nuovi (new).
    """
    now = utcnow()

    for obj in session.dirty:
        if hasattr(obj, "updated_at"):
            # Only update if the object was actually modified
            if session.is_modified(obj, include_collections=False):
                obj.updated_at = now

    for obj in session.new:
        if hasattr(obj, "updated_at") and obj.updated_at is None:
            obj.updated_at = now
