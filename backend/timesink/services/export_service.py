"""
Service per l'export testuale delle fatture con Jinja2.
Progetto: Timesink (Fatturazione Freelance)

Produce un documento a larghezza fissa (56 colonne) salvato come
<numero fattura>.txt nella cartella indicata.
"""

import logging
import os
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from timesink.core.clock import today
from timesink.models import Client, Invoice, InvoiceLineItem

logger = logging.getLogger(__name__)

# Path alla cartella templates
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")

LINE_WIDTH = 56


def format_money(value, symbol: str = "€") -> str:
    amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_hours(value) -> str:
    return f"{Decimal(str(value)):.2f}"


def format_percent(rate) -> str:
    """0.0825 → '8.25', 0.1 → '10'."""
    pct = (Decimal(str(rate)) * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{pct.normalize():f}"


def truncate_text(value: Optional[str], width: int) -> str:
    value = value or ""
    if len(value) > width:
        return value[: width - 3] + "..."
    return value


class InvoiceExportService:
    """
    Genera l'export testuale di una fattura da template Jinja2.

    Il chiamante passa fattura, cliente e righe già caricati; i dati del
    mittente arrivano dal livello di wiring (impostazioni).
    """

    def __init__(
        self,
        sender: Optional[Mapping[str, str]] = None,
        currency_symbol: str = "€",
        templates_dir: str = TEMPLATES_DIR,
    ):
        self.sender = {
            "name": "",
            "email": "",
            "address": "",
            "phone": "",
            **(sender or {}),
        }
        self.currency_symbol = currency_symbol
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters["money"] = lambda v: format_money(v, self.currency_symbol)
        self.env.filters["ore"] = format_hours
        self.env.filters["tronca"] = truncate_text
        self.env.filters["data"] = lambda d: d.strftime("%d/%m/%Y")
        self.env.filters["data_breve"] = lambda d: d.strftime("%d/%m")

    def render(
        self,
        invoice: Invoice,
        client: Client,
        line_items: Sequence[InvoiceLineItem],
        issued_on: Optional[date] = None,
    ) -> str:
        """
        Restituisce il testo della fattura.

        Args:
            invoice: Fattura (totali già calcolati)
            client: Cliente intestatario
            line_items: Righe in ordine di data
            issued_on: Data di emissione (default: oggi)
        """
        tax_rate = Decimal(str(invoice.tax_rate or 0))
        tax_label = (
            f"Imposta ({format_percent(tax_rate)}%)" if tax_rate > 0 else "Imposta"
        )

        context = {
            "invoice": invoice,
            "client": client,
            "line_items": list(line_items),
            "issued_on": issued_on or today(),
            "sender": self.sender,
            "tax_label": tax_label,
            "sep": "=" * LINE_WIDTH,
            "rule": "-" * LINE_WIDTH,
        }
        return self.env.get_template("invoice.txt.j2").render(context)

    def write(
        self,
        invoice: Invoice,
        client: Client,
        line_items: Sequence[InvoiceLineItem],
        output_dir: str,
        issued_on: Optional[date] = None,
    ) -> str:
        """
        Salva l'export come <numero>.txt in output_dir (creata se manca).

        Returns:
            str: Path del file scritto
        """
        os.makedirs(output_dir, exist_ok=True)
        file_path = os.path.join(output_dir, f"{invoice.invoice_number}.txt")

        content = self.render(invoice, client, line_items, issued_on=issued_on)
        with open(file_path, "w", encoding="utf-8") as handle:
            handle.write(content)

        logger.info("Export fattura %s scritto in %s", invoice.invoice_number, file_path)
        return file_path
