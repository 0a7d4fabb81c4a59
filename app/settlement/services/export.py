"""
CSV export of an owner's ledger.

Rows are produced lazily so the view can stream large ledgers. The file is
';'-delimited with a UTF-8 BOM, which spreadsheet apps in locales using a
decimal comma open correctly.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Iterator

from django.utils import timezone

from settlement.models import LedgerEntry

BOM = "﻿"

EXPORT_HEADER = [
    "Due date",
    "Invoice",
    "Type",
    "Status",
    "Customer",
    "Description",
    "Service",
    "Amount",
    "Payment method",
    "Paid at",
]


class _Echo:
    """File-like object whose write() hands the line back to csv.writer."""

    def write(self, value: str) -> str:
        return value


def entry_row(entry: LedgerEntry) -> list[str]:
    paid_at = timezone.localtime(entry.paid_at).strftime("%Y-%m-%d %H:%M") if entry.paid_at else ""
    return [
        entry.due_date.isoformat(),
        entry.invoice_number,
        entry.get_kind_display(),
        entry.get_status_display(),
        entry.customer_name,
        entry.description,
        (entry.appointment_context or {}).get("service_type") or "",
        str(entry.amount.to_decimal()),
        entry.get_payment_method_display() if entry.payment_method else "",
        paid_at,
    ]


def iter_csv(entries: Iterable[LedgerEntry]) -> Iterator[str]:
    """Yield the export file line by line, BOM first."""
    writer = csv.writer(_Echo(), delimiter=";")
    yield BOM + writer.writerow(EXPORT_HEADER)
    for entry in entries:
        yield writer.writerow(entry_row(entry))


def export_filename() -> str:
    return f"ledger_export_{timezone.localtime().strftime('%Y%m%d_%H%M%S')}.csv"
