"""
Modello SQLAlchemy per i Clienti
Progetto: Timesink (Fatturazione Freelance)

Il cliente è referenziato da voci, fatture e timer solo tramite id:
nessuna relazione inversa. Non viene mai eliminato fisicamente,
solo archiviato (operazione reversibile e senza cascata).
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from timesink.core.exceptions import BusinessValidationError
from timesink.models import Base
from timesink.models.mixins import IDMixin, TimestampMixin


class Client(Base, IDMixin, TimestampMixin):
    """
    Modello per i clienti.

    Attributes:
        id: Primary key
        name: Nome visualizzato (univoco)
        email: Email di contatto
        hourly_rate: Tariffa oraria corrente (>= 0)
        notes: Note libere
        is_archived: Flag archiviazione
    """

    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        doc="Nome visualizzato del cliente (univoco)",
    )

    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="Email di contatto",
    )

    hourly_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Tariffa oraria corrente; le voci ne catturano una copia alla creazione",
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        doc="Note interne",
    )

    is_archived: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Cliente archiviato (nascosto dalle liste di default)",
    )

    __table_args__ = (
        CheckConstraint("hourly_rate >= 0", name="ck_clients_hourly_rate_positive"),
    )

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("hourly_rate", Decimal("0.00"))
        kwargs.setdefault("is_archived", False)
        if isinstance(kwargs.get("name"), str):
            kwargs["name"] = kwargs["name"].strip()
        super().__init__(**kwargs)

    def validate(self) -> None:
        """
        Verifica i campi obbligatori.

        Raises:
            BusinessValidationError: nome mancante o tariffa negativa
        """
        if not self.name or not self.name.strip():
            raise BusinessValidationError("Il nome del cliente è obbligatorio")
        if self.hourly_rate is None or Decimal(str(self.hourly_rate)) < 0:
            raise BusinessValidationError("La tariffa oraria non può essere negativa")

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name!r}, rate={self.hourly_rate})>"
