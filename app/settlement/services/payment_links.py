"""
Hosted payment link creation for ledger entries.

At most one link exists per entry. Concurrent requests for the same entry
are serialized with a Redis lock held across the provider call; the entry
row itself is never locked during network I/O. Provider idempotency keys
are derived from the entry id, so a retry after a timeout gets back the
objects created by the first attempt.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.conf import settings
from redis.exceptions import RedisError

from core.services import BaseService

from settlement.exceptions import AlreadySettledError, ChannelUnavailableError
from settlement.locks import DistributedLock
from settlement.services.ledger import LedgerEntryService
from settlement.types import PaymentLink

if TYPE_CHECKING:
    import uuid

    from settlement.channels import SettlementChannel
    from settlement.models import LedgerEntry


class PaymentLinkService(BaseService):
    """Create or reuse the hosted payment link of a pending entry."""

    @classmethod
    def create_for_entry(
        cls,
        entry_id: uuid.UUID,
        owner,
        payer_info: dict[str, Any] | None = None,
        channel: SettlementChannel | None = None,
    ) -> PaymentLink:
        """
        Return the entry's payment link, creating it if needed.

        Raises:
            EntryNotFoundError: Missing or owned by someone else
            AlreadySettledError: Entry is PAID
            ChannelUnavailableError: Provider or lock backend unavailable;
                the entry is unchanged
            LockAcquisitionError: Another request is creating the link
        """
        # Channels import the services package
        from settlement.channels import get_settlement_channel

        entry = LedgerEntryService.get_for_owner(entry_id, owner)
        cls._raise_if_paid(entry)
        if entry.has_payment_link:
            return cls._reused(entry)

        channel = channel or get_settlement_channel()
        payer_info = payer_info or {}
        if not payer_info.get("email") and entry.customer_email:
            payer_info = {**payer_info, "email": entry.customer_email}

        lock = DistributedLock(
            f"payment_link:{entry.id}",
            ttl=settings.SETTLEMENT_LINK_LOCK_TTL_SECONDS,
            timeout=settings.SETTLEMENT_LINK_LOCK_TTL_SECONDS,
        )
        try:
            with lock:
                # Re-read: a concurrent request may have finished while we waited
                entry = LedgerEntryService.get_for_owner(entry_id, owner)
                cls._raise_if_paid(entry)
                if entry.has_payment_link:
                    return cls._reused(entry)

                link = channel.create_payment_link(entry, payer_info)
                stored = LedgerEntryService.attach_payment_link(entry.id, link.url, link.link_id)
        except RedisError as e:
            cls.get_logger().error(
                "Lock backend unavailable for payment link creation",
                extra={"entry_id": str(entry_id)},
                exc_info=True,
            )
            raise ChannelUnavailableError(
                "Online payments are temporarily unavailable",
                details={"reason": "lock_backend", "error": str(e)},
            )

        if not stored:
            current = LedgerEntryService.get_for_owner(entry_id, owner)
            cls._raise_if_paid(current)
            return cls._reused(current)

        cls.get_logger().info(
            "Payment link attached",
            extra={"entry_id": str(entry.id), "link_id": link.link_id, "channel": channel.name},
        )
        return link

    @staticmethod
    def _raise_if_paid(entry: LedgerEntry) -> None:
        if entry.is_paid:
            raise AlreadySettledError(
                "Invoice has already been paid",
                details={"entry_id": str(entry.id)},
            )

    @staticmethod
    def _reused(entry: LedgerEntry) -> PaymentLink:
        return PaymentLink(
            url=entry.payment_link_url,
            link_id=entry.payment_link_id,
            reused=True,
        )
