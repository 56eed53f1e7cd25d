"""
Test per l'export testuale delle fatture.

Il rendering è puro: fattura, cliente e righe sono costruiti in memoria.
"""

import os
from datetime import date
from decimal import Decimal

import pytest

from timesink.models import Client, Invoice, InvoiceLineItem
from timesink.services.export_service import (
    LINE_WIDTH,
    InvoiceExportService,
    format_money,
    format_percent,
    truncate_text,
)


@pytest.fixture
def invoice():
    invoice = Invoice(
        invoice_number="INV-2026-004",
        client_id=1,
        period_start=date(2026, 3, 1),
        period_end=date(2026, 3, 31),
        tax_rate=Decimal("0.10"),
        due_date=date(2026, 4, 30),
    )
    invoice.line_items.extend(
        [
            InvoiceLineItem(
                entry_id=1,
                entry_date=date(2026, 3, 2),
                description="Sviluppo API fatturazione con export testuale",
                hours=Decimal("2.0000"),
                rate=Decimal("100.00"),
                amount=Decimal("200.00"),
            ),
            InvoiceLineItem(
                entry_id=2,
                entry_date=date(2026, 3, 9),
                description="Call",
                hours=Decimal("0.5000"),
                rate=Decimal("100.00"),
                amount=Decimal("50.00"),
            ),
        ]
    )
    invoice.calculate_totals()
    return invoice


@pytest.fixture
def client():
    return Client(name="Acme S.r.l.", email="billing@acme.test", hourly_rate=Decimal("100"))


# ============================================================
# Test Formattazione
# ============================================================


class TestFormatters:
    """Test per i filtri di formattazione."""

    def test_money(self):
        """Test importi con separatore delle migliaia."""
        assert format_money(Decimal("1234.5")) == "€1,234.50"
        assert format_money(Decimal("0"), "$") == "$0.00"

    def test_percent(self):
        """Test percentuali senza zeri superflui."""
        assert format_percent(Decimal("0.0825")) == "8.25"
        assert format_percent(Decimal("0.1")) == "10"

    def test_truncate(self):
        """Test troncamento con puntini."""
        assert truncate_text("abcdefghij", 6) == "abc..."
        assert truncate_text("abc", 6) == "abc"
        assert truncate_text(None, 6) == ""


# ============================================================
# Test Rendering
# ============================================================


class TestInvoiceExport:
    """Test per il documento testuale."""

    def test_render_contents(self, invoice, client):
        """Test intestazione, righe e totali."""
        exporter = InvoiceExportService(sender={"name": "Mario Rossi", "email": "mario@example.test"})
        text = exporter.render(invoice, client, invoice.line_items, issued_on=date(2026, 4, 1))

        assert text.startswith("FATTURA\n" + "=" * LINE_WIDTH)
        assert "Numero:     INV-2026-004" in text
        assert "Data:       01/04/2026" in text
        assert "Scadenza:   30/04/2026" in text
        assert "Periodo:    01/03/2026 - 31/03/2026" in text
        assert "Mario Rossi" in text
        assert "Acme S.r.l." in text
        assert "billing@acme.test" in text
        assert "Sviluppo API fatturaz..." in text
        assert "02/03" in text
        assert "€200.00" in text
        assert "Imposta (10%)" in text
        assert "€25.00" in text
        assert "€275.00" in text

    def test_lines_fit_width(self, invoice, client):
        """Test nessuna riga oltre la larghezza fissa."""
        text = InvoiceExportService().render(invoice, client, invoice.line_items, date(2026, 4, 1))
        assert max(len(line) for line in text.splitlines()) <= LINE_WIDTH

    def test_no_tax_label(self, invoice, client):
        """Test aliquota zero: etichetta senza percentuale."""
        invoice.tax_rate = Decimal("0")
        invoice.calculate_totals()
        text = InvoiceExportService().render(invoice, client, invoice.line_items, date(2026, 4, 1))
        assert "Imposta (" not in text
        assert "Da:" not in text

    def test_currency_symbol(self, invoice, client):
        """Test simbolo valuta configurabile."""
        text = InvoiceExportService(currency_symbol="$").render(
            invoice, client, invoice.line_items, date(2026, 4, 1)
        )
        assert "$275.00" in text
        assert "€" not in text

    def test_write_file(self, invoice, client, tmp_path):
        """Test file <numero>.txt nella cartella indicata (creata se manca)."""
        output_dir = tmp_path / "fatture"
        path = InvoiceExportService().write(
            invoice, client, invoice.line_items, str(output_dir), issued_on=date(2026, 4, 1)
        )

        assert path == os.path.join(str(output_dir), "INV-2026-004.txt")
        with open(path, encoding="utf-8") as handle:
            content = handle.read()
        assert "INV-2026-004" in content
        assert content.endswith("=" * LINE_WIDTH + "\n")
