"""
Test per i calcoli dei modelli.

Importi, durate e totali sono puri: nessun database necessario.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from timesink.core.exceptions import BusinessValidationError, NotEditableError
from timesink.models import ActiveTimer, Invoice, InvoiceLineItem, InvoiceStatus, TimeEntry, TimerState
from timesink.models.invoice import validate_tax_rate

T0 = datetime(2026, 3, 2, 9, 0, 0)


def make_entry(**kwargs) -> TimeEntry:
    kwargs.setdefault("client_id", 1)
    kwargs.setdefault("start_time", T0)
    kwargs.setdefault("hourly_rate", Decimal("100.00"))
    return TimeEntry(**kwargs)


# ============================================================
# Test TimeEntry
# ============================================================


class TestEntryAmount:
    """Test per durata e importo delle voci."""

    def test_two_hours_at_hundred(self):
        """Test 2 ore a 100/h = 200.00."""
        entry = make_entry(end_time=T0 + timedelta(hours=2))
        assert entry.hours() == Decimal("2")
        assert entry.amount() == Decimal("200.00")

    def test_fractional_hours_round_half_up(self):
        """Test arrotondamento al centesimo (ROUND_HALF_UP)."""
        # 1 minuto a 0.30/h = 0.005 → 0.01
        entry = make_entry(end_time=T0 + timedelta(minutes=1), hourly_rate=Decimal("0.30"))
        assert entry.amount() == Decimal("0.01")

    def test_non_billable_is_zero(self):
        """Test voce non fatturabile: importo zero."""
        entry = make_entry(end_time=T0 + timedelta(hours=3), is_billable=False)
        assert entry.amount() == Decimal("0.00")

    def test_open_entry_uses_now(self):
        """Test voce aperta: durata fino a now."""
        entry = make_entry()
        assert entry.is_running
        assert entry.duration(T0 + timedelta(minutes=30)) == timedelta(minutes=30)
        assert entry.amount(T0 + timedelta(minutes=30)) == Decimal("50.00")

    def test_billed_duration_excludes_pauses(self):
        """Test durata fatturata prevale su fine meno inizio."""
        entry = make_entry(end_time=T0 + timedelta(hours=2), duration_seconds=3600)
        assert entry.duration() == timedelta(hours=1)
        assert entry.amount() == Decimal("100.00")

    def test_zero_length_allowed(self):
        """Test fine uguale a inizio è ammessa."""
        entry = make_entry(end_time=T0)
        entry.validate()
        assert entry.amount() == Decimal("0.00")


class TestEntryValidation:
    """Test per la validazione delle voci."""

    def test_end_before_start(self):
        """Test fine precedente all'inizio."""
        entry = make_entry(end_time=T0 - timedelta(minutes=1))
        with pytest.raises(BusinessValidationError):
            entry.validate()

    def test_negative_rate(self):
        """Test tariffa negativa."""
        entry = make_entry(hourly_rate=Decimal("-1"))
        with pytest.raises(BusinessValidationError):
            entry.validate()

    def test_missing_client(self):
        """Test cliente mancante."""
        entry = make_entry(client_id=0)
        with pytest.raises(BusinessValidationError):
            entry.validate()

    def test_stop_sets_duration(self):
        """Test stop fissa fine e durata."""
        entry = make_entry()
        entry.stop(T0 + timedelta(minutes=90))
        assert entry.duration_seconds == 5400
        assert not entry.is_running

    def test_stop_twice(self):
        """Test stop su voce già chiusa."""
        entry = make_entry(end_time=T0 + timedelta(hours=1))
        with pytest.raises(BusinessValidationError):
            entry.stop(T0 + timedelta(hours=2))

    def test_is_locked(self):
        """Test voce bloccata quando agganciata a una fattura."""
        assert not make_entry().is_locked
        assert make_entry(invoice_id=7).is_locked


# ============================================================
# Test ActiveTimer
# ============================================================


class TestActiveTimer:
    """Test per il calcolo del tempo trascorso."""

    def test_running_elapsed(self):
        """Test tempo trascorso senza pause."""
        timer = ActiveTimer(client_id=1, start_time=T0)
        assert timer.state == TimerState.RUNNING
        assert timer.elapsed(T0 + timedelta(seconds=45)) == timedelta(seconds=45)

    def test_elapsed_frozen_while_paused(self):
        """Test tempo fermo durante la pausa."""
        timer = ActiveTimer(client_id=1, start_time=T0)
        timer.pause(T0 + timedelta(seconds=10))
        assert timer.state == TimerState.PAUSED
        assert timer.elapsed(T0 + timedelta(seconds=500)) == timedelta(seconds=10)

    def test_resume_accumulates_pause(self):
        """Test pausa di 30s esclusa dal conteggio."""
        timer = ActiveTimer(client_id=1, start_time=T0)
        timer.pause(T0 + timedelta(seconds=10))
        timer.resume(T0 + timedelta(seconds=40))
        assert timer.total_paused_seconds == 30
        assert timer.elapsed(T0 + timedelta(seconds=50)) == timedelta(seconds=20)

    def test_pause_twice_keeps_first(self):
        """Test doppia pausa: vale l'inizio della prima."""
        timer = ActiveTimer(client_id=1, start_time=T0)
        timer.pause(T0 + timedelta(seconds=5))
        timer.pause(T0 + timedelta(seconds=60))
        assert timer.paused_at == T0 + timedelta(seconds=5)

    def test_resume_idempotent(self):
        """Test ripresa senza pausa: nessun effetto."""
        timer = ActiveTimer(client_id=1, start_time=T0)
        timer.pause(T0 + timedelta(seconds=10))
        timer.resume(T0 + timedelta(seconds=20))
        timer.resume(T0 + timedelta(seconds=90))
        assert timer.paused_at is None
        assert timer.total_paused_seconds == 10

    def test_to_time_entry_while_paused(self):
        """Test conversione da timer in pausa: la pausa in corso non è fatturata."""
        timer = ActiveTimer(client_id=3, description="Call", start_time=T0)
        timer.pause(T0 + timedelta(minutes=30))
        entry = timer.to_time_entry(Decimal("60"), now=T0 + timedelta(minutes=90))

        assert entry.client_id == 3
        assert entry.end_time == T0 + timedelta(minutes=90)
        assert entry.duration_seconds == 1800
        assert entry.amount() == Decimal("30.00")


# ============================================================
# Test Invoice
# ============================================================


def make_invoice(**kwargs) -> Invoice:
    kwargs.setdefault("invoice_number", "INV-2026-001")
    kwargs.setdefault("client_id", 1)
    kwargs.setdefault("period_start", date(2026, 3, 1))
    kwargs.setdefault("period_end", date(2026, 3, 31))
    return Invoice(**kwargs)


def make_item(amount: str, entry_id: int = 1) -> InvoiceLineItem:
    return InvoiceLineItem(
        entry_id=entry_id,
        entry_date=date(2026, 3, 2),
        description="Lavoro",
        hours=Decimal("1"),
        rate=Decimal(amount),
        amount=Decimal(amount),
    )


class TestInvoiceTotals:
    """Test per il calcolo dei totali."""

    def test_defaults(self):
        """Test nuova fattura: bozza a zero."""
        invoice = make_invoice()
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.can_edit
        assert invoice.total == Decimal("0.00")
        assert invoice.line_items == []

    def test_subtotal_and_tax(self):
        """Test imponibile 200 con aliquota 10% = 220."""
        invoice = make_invoice(tax_rate=Decimal("0.10"))
        invoice.line_items.extend([make_item("150.00", 1), make_item("50.00", 2)])
        invoice.calculate_totals()

        assert invoice.subtotal == Decimal("200.00")
        assert invoice.tax_amount == Decimal("20.00")
        assert invoice.total == Decimal("220.00")

    def test_tax_rounding(self):
        """Test imposta arrotondata al centesimo."""
        invoice = make_invoice(tax_rate=Decimal("0.0825"))
        invoice.line_items.append(make_item("10.10"))
        invoice.calculate_totals()

        # 10.10 * 0.0825 = 0.833250 → 0.83
        assert invoice.tax_amount == Decimal("0.83")
        assert invoice.total == Decimal("10.93")

    def test_idempotent(self):
        """Test ricalcolo idempotente."""
        invoice = make_invoice(tax_rate=Decimal("0.22"))
        invoice.line_items.append(make_item("99.99"))
        invoice.calculate_totals()
        first = (invoice.subtotal, invoice.tax_amount, invoice.total)
        invoice.calculate_totals()
        assert (invoice.subtotal, invoice.tax_amount, invoice.total) == first

    def test_finalize_twice(self):
        """Test doppia finalizzazione."""
        invoice = make_invoice()
        invoice.finalize()
        assert invoice.is_finalized
        with pytest.raises(NotEditableError):
            invoice.finalize()

    def test_overdue(self):
        """Test scadenza solo per fatture inviate oltre la data."""
        invoice = make_invoice(status=InvoiceStatus.SENT, due_date=date(2026, 4, 1))
        assert not invoice.is_overdue_on(date(2026, 4, 1))
        assert invoice.is_overdue_on(date(2026, 4, 2))

        invoice.status = InvoiceStatus.PAID
        assert not invoice.is_overdue_on(date(2026, 5, 1))

    def test_period_inverted(self):
        """Test periodo invertito."""
        invoice = make_invoice(period_start=date(2026, 4, 1))
        with pytest.raises(BusinessValidationError):
            invoice.validate()


class TestTaxRate:
    """Test per la validazione dell'aliquota."""

    @pytest.mark.parametrize("rate", ["0", "0.22", "1", 0.1])
    def test_valid(self, rate):
        """Test aliquote valide."""
        assert validate_tax_rate(rate) == Decimal(str(rate))

    @pytest.mark.parametrize("rate", ["-0.01", "1.01", "22"])
    def test_out_of_range(self, rate):
        """Test aliquote fuori intervallo."""
        with pytest.raises(BusinessValidationError):
            validate_tax_rate(rate)


class TestLineItemSnapshot:
    """Test per lo snapshot delle righe."""

    def test_from_entry(self):
        """Test riga creata dalla voce."""
        entry = make_entry(
            id=5,
            description="Refactoring",
            end_time=T0 + timedelta(minutes=90),
            hourly_rate=Decimal("80.00"),
        )
        item = InvoiceLineItem.from_entry(entry)

        assert item.entry_id == 5
        assert item.entry_date == date(2026, 3, 2)
        assert item.hours == Decimal("1.5000")
        assert item.rate == Decimal("80.00")
        assert item.amount == Decimal("120.00")
