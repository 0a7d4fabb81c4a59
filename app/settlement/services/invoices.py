"""
Public invoice gateway service.

The paying customer holds nothing but the capability token from their
invoice link. Everything here is scoped by that token: an unknown, malformed
or otherwise unresolvable token always produces the same InvalidTokenError,
and the invoice view never carries internal ids (owner id, customer id,
appointment id, entry id) or data of other entries.
"""

from __future__ import annotations

import re
from typing import Any

from core.services import BaseService

from settlement.exceptions import InvalidTokenError
from settlement.models import LedgerEntry, PaymentSettings
from settlement.services.ledger import LedgerEntryService

TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{32,64}$")


class PublicInvoiceService(BaseService):
    """Read and declare operations for the token-scoped invoice page."""

    @classmethod
    def resolve(cls, token: str) -> LedgerEntry:
        """
        Find the entry a public token points at.

        Raises:
            InvalidTokenError: For every unresolvable or malformed token
        """
        if not isinstance(token, str) or not TOKEN_PATTERN.match(token):
            raise InvalidTokenError()
        entry = (
            LedgerEntry.objects.select_related("owner")
            .filter(public_token=token)
            .first()
        )
        if entry is None:
            raise InvalidTokenError()
        return entry

    @classmethod
    def get_invoice(cls, token: str) -> dict[str, Any]:
        """Public invoice payload for a token."""
        entry = cls.resolve(token)
        return cls.build_invoice(entry)

    @classmethod
    def build_invoice(cls, entry: LedgerEntry) -> dict[str, Any]:
        owner = entry.owner
        payment_settings = PaymentSettings.objects.filter(owner=owner).first()
        context = entry.appointment_context or {}

        if payment_settings is not None:
            business = {
                "name": payment_settings.business_name or owner.get_full_name(),
                "logo_url": payment_settings.business_logo_url,
                "payment_instructions": payment_settings.payment_instructions,
            }
            methods = payment_settings.public_methods(entry.payment_link_url)
        else:
            business = {
                "name": owner.get_full_name(),
                "logo_url": "",
                "payment_instructions": "",
            }
            methods = {}

        return {
            "invoice": {
                "number": entry.invoice_number,
                "amount": str(entry.amount.to_decimal()),
                "currency": entry.amount.currency,
                "description": entry.description,
                "due_date": entry.due_date.isoformat(),
                "status": entry.status,
                "paid_at": entry.paid_at.isoformat() if entry.paid_at else None,
                "payment_method": entry.payment_method,
                "customer_marked_paid": entry.customer_marked_paid,
                "customer_paid_at": (
                    entry.customer_paid_at.isoformat() if entry.customer_paid_at else None
                ),
                "payment_link_url": entry.payment_link_url or None,
            },
            "customer": {
                "name": entry.customer_name,
                "address": context.get("customer_address") or "",
                "service_type": context.get("service_type") or "",
            },
            "appointment": {
                "date": context.get("date"),
                "start_time": context.get("start_time"),
                "end_time": context.get("end_time"),
                "notes": context.get("notes") or "",
            },
            "business": business,
            "payment_methods": methods,
        }

    @classmethod
    def declare(cls, token: str, method: str | None = None, notes: str | None = None) -> dict[str, Any]:
        """
        Customer self-reports payment.

        Raises:
            InvalidTokenError: Unresolvable token
            AlreadySettledError: Invoice is already PAID
        """
        entry = cls.resolve(token)
        entry = LedgerEntryService.declare_paid(entry.id, method=method, notes=notes)
        return cls.build_invoice(entry)
