"""Invoice-level tax rows from persisted line items.

Each line contributes to up to three streams (CGST, SGST, IGST) keyed by that
tax's percentage. Within a (stream, percentage) group the tax is
``percentage / 100 * average(amount - discount)``.

Tax rows already issued were computed with the average, not the sum, so an
invoice with two lines in one bracket reports less tax here than on the lines
themselves. Keep it until the business confirms which one the returns need.
"""
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from app.services.tax_calculator import HUNDRED, ZERO, quantize, quantize_percent, to_decimal

TAX_TYPES = ("cgst", "sgst", "igst")


@dataclass(frozen=True)
class InvoiceTaxRow:
    serial: int
    percentage: Decimal
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    igst: Decimal = ZERO


def _tax_streams(line_items) -> Dict[Tuple[str, Decimal], List[Decimal]]:
    """Collect taxable bases per (tax type, percentage), skipping zero percentages."""
    streams: Dict[Tuple[str, Decimal], List[Decimal]] = defaultdict(list)
    for line in line_items:
        base = to_decimal(line.amount, "amount") - to_decimal(line.discount or 0, "discount")
        for tax_type in TAX_TYPES:
            percentage = to_decimal(getattr(line, f"{tax_type}_percent") or 0, f"{tax_type}_percent")
            if percentage > 0:
                streams[(tax_type, quantize_percent(percentage))].append(base)
    return streams


def aggregate_invoice_tax(line_items: Iterable, existing_max_serial: int = 0) -> List[InvoiceTaxRow]:
    """Group line items into one tax row per distinct percentage.

    ``line_items`` are InvoiceItem rows or anything exposing amount, discount,
    cgst_percent, sgst_percent and igst_percent. Serials continue from
    ``existing_max_serial`` in ascending percentage order. Returns an empty
    list when no line carries tax.
    """
    merged: Dict[Decimal, Dict[str, Decimal]] = {}
    for (tax_type, percentage), bases in _tax_streams(line_items).items():
        average = sum(bases, ZERO) / len(bases)
        row = merged.setdefault(percentage, {t: ZERO for t in TAX_TYPES})
        row[tax_type] = quantize(percentage / HUNDRED * average)

    return [
        InvoiceTaxRow(serial=existing_max_serial + offset, percentage=percentage, **merged[percentage])
        for offset, percentage in enumerate(sorted(merged), start=1)
    ]
