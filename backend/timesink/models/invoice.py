"""
Modelli SQLAlchemy per la Fatturazione
Progetto: Timesink (Fatturazione Freelance)

Contiene:
- InvoiceStatus: Stati della fattura (draft → finalized → sent → paid/overdue)
- Invoice: Fattura per un cliente su un periodo
- InvoiceLineItem: Riga fattura, snapshot congelato di una voce di tempo
"""

from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timesink.core.exceptions import BusinessValidationError, NotEditableError
from timesink.models import Base
from timesink.models.mixins import IDMixin, TimestampMixin
from timesink.models.time_entry import CENT, TimeEntry


class InvoiceStatus(str, enum.Enum):
    """Stati di una fattura."""

    DRAFT = "draft"
    FINALIZED = "finalized"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class Invoice(Base, IDMixin, TimestampMixin):
    """
    Modello per le fatture.

    Solo una bozza accetta righe nuove o rimosse; dopo la finalizzazione
    cambiano solo stato, scadenza e data di pagamento.

    Attributes:
        id: Primary key
        invoice_number: Numero univoco (formato: PREFIX-YYYY-NNN)
        client_id: FK al cliente
        period_start: Inizio periodo fatturato
        period_end: Fine periodo fatturato
        subtotal: Somma degli importi delle righe
        tax_rate: Aliquota come frazione (0.0825 = 8.25%)
        tax_amount: subtotal × tax_rate arrotondato al centesimo
        total: subtotal + tax_amount
        status: Stato corrente
        due_date: Scadenza pagamento
        paid_date: Data pagamento

    Relationships:
        line_items: Righe della fattura, ordinate per data
    """

    __tablename__ = "invoices"

    invoice_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        doc="Numero fattura univoco",
    )

    client_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        doc="FK al cliente",
    )

    period_start: Mapped[date] = mapped_column(Date, nullable=False)

    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        nullable=False,
        default=Decimal("0"),
    )

    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    status: Mapped[InvoiceStatus] = mapped_column(
        SAEnum(
            InvoiceStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=InvoiceStatus.DRAFT,
    )

    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    paid_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    line_items: Mapped[List["InvoiceLineItem"]] = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="[InvoiceLineItem.entry_date, InvoiceLineItem.id]",
        doc="Righe della fattura",
    )

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        Index("ix_invoices_client_id", "client_id"),
        Index("ix_invoices_status", "status"),
        CheckConstraint("subtotal >= 0", name="ck_invoices_subtotal_positive"),
        CheckConstraint(
            "tax_rate >= 0 AND tax_rate <= 1", name="ck_invoices_tax_rate_range"
        ),
        CheckConstraint("total >= 0", name="ck_invoices_total_positive"),
    )

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("status", InvoiceStatus.DRAFT)
        kwargs.setdefault("subtotal", Decimal("0.00"))
        kwargs.setdefault("tax_rate", Decimal("0"))
        kwargs.setdefault("tax_amount", Decimal("0.00"))
        kwargs.setdefault("total", Decimal("0.00"))
        # Collezione inizializzata: evita un lazy load implicito dopo l'INSERT
        kwargs.setdefault("line_items", [])
        super().__init__(**kwargs)

    # ------------------------------------------------------------
    # Properties Calcolate
    # ------------------------------------------------------------
    @property
    def can_edit(self) -> bool:
        """True se la fattura è in bozza."""
        return self.status == InvoiceStatus.DRAFT

    @property
    def is_finalized(self) -> bool:
        return self.status != InvoiceStatus.DRAFT

    def is_overdue_on(self, day: date) -> bool:
        """True se inviata e scaduta rispetto al giorno indicato."""
        return (
            self.status == InvoiceStatus.SENT
            and self.due_date is not None
            and day > self.due_date
        )

    # ------------------------------------------------------------
    # Metodi
    # ------------------------------------------------------------
    def calculate_totals(self) -> None:
        """
        Ricalcola subtotale, imposta e totale dalle righe correnti.

        L'imposta è arrotondata al centesimo (ROUND_HALF_UP).
        """
        subtotal = sum(
            (Decimal(str(item.amount)) for item in self.line_items),
            Decimal("0.00"),
        )
        rate = Decimal(str(self.tax_rate or 0))
        self.subtotal = subtotal.quantize(CENT, rounding=ROUND_HALF_UP)
        self.tax_amount = (self.subtotal * rate).quantize(CENT, rounding=ROUND_HALF_UP)
        self.total = self.subtotal + self.tax_amount

    def finalize(self) -> None:
        """
        Porta la bozza in stato finalizzato.

        Raises:
            NotEditableError: se la fattura non è in bozza
        """
        if not self.can_edit:
            raise NotEditableError(
                f"La fattura {self.invoice_number} è già stata finalizzata"
            )
        self.status = InvoiceStatus.FINALIZED

    def validate(self) -> None:
        """
        Verifica la coerenza della fattura.

        Raises:
            BusinessValidationError: numero o cliente mancanti, periodo
                invertito, aliquota fuori da [0, 1]
        """
        if not self.invoice_number or not self.invoice_number.strip():
            raise BusinessValidationError("Il numero fattura è obbligatorio")
        if not self.client_id or self.client_id <= 0:
            raise BusinessValidationError("Il cliente è obbligatorio")
        if self.period_start is None or self.period_end is None:
            raise BusinessValidationError("Il periodo di fatturazione è obbligatorio")
        if self.period_end < self.period_start:
            raise BusinessValidationError(
                "La fine del periodo non può precedere l'inizio"
            )
        validate_tax_rate(self.tax_rate)

    def __repr__(self) -> str:
        return (
            f"<Invoice(id={self.id}, number={self.invoice_number!r}, "
            f"status={self.status}, total={self.total})>"
        )


def validate_tax_rate(rate) -> Decimal:
    """
    Normalizza e verifica un'aliquota espressa come frazione.

    Raises:
        BusinessValidationError: aliquota mancante o fuori da [0, 1]
    """
    if rate is None:
        raise BusinessValidationError("L'aliquota è obbligatoria")
    value = Decimal(str(rate))
    if value < 0 or value > 1:
        raise BusinessValidationError(
            "L'aliquota deve essere compresa tra 0 e 1 (es. 0.22)"
        )
    return value


class InvoiceLineItem(Base, IDMixin):
    """
    Riga fattura.

    Snapshot di una voce di tempo al momento dell'aggiunta: ore, tariffa
    e importo non seguono modifiche successive della voce.
    """

    __tablename__ = "invoice_line_items"

    invoice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    entry_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("time_entries.id"),
        nullable=False,
        index=True,
    )

    entry_date: Mapped[date] = mapped_column(
        "date",
        Date,
        nullable=False,
        doc="Data della voce (giorno di inizio)",
    )

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    hours: Mapped[Decimal] = mapped_column(
        Numeric(10, 4),
        nullable=False,
        doc="Ore decimali",
    )

    rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    invoice: Mapped["Invoice"] = relationship(
        "Invoice",
        back_populates="line_items",
    )

    __table_args__ = (
        CheckConstraint("hours >= 0", name="ck_line_items_hours_positive"),
        CheckConstraint("amount >= 0", name="ck_line_items_amount_positive"),
    )

    @classmethod
    def from_entry(
        cls, entry: TimeEntry, now: Optional[datetime] = None
    ) -> "InvoiceLineItem":
        """Crea lo snapshot di una voce di tempo."""
        return cls(
            entry_id=entry.id,
            entry_date=entry.start_time.date(),
            description=entry.description or "",
            hours=entry.hours(now).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP),
            rate=Decimal(str(entry.hourly_rate)),
            amount=entry.amount(now),
        )

    def __repr__(self) -> str:
        return (
            f"<InvoiceLineItem(invoice_id={self.invoice_id}, entry_id={self.entry_id}, "
            f"amount={self.amount})>"
        )
