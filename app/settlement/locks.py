"""
Locking helpers for settlement work.

DistributedLock guards work that spans a network call to the payment
provider, so two requests for the same entry never create two hosted
links. lock_entry takes a row lock inside the caller's transaction and is
what serializes settlement signals for one entry.

Usage:

    from settlement.locks import DistributedLock, lock_entry

    with DistributedLock(f"payment_link:{entry_id}", ttl=30):
        create_link(entry_id)

    with transaction.atomic():
        entry = lock_entry(LedgerEntry, entry_id, owner=request.user)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from django.db import models

from django_redis import get_redis_connection
from redis.exceptions import LockNotOwnedError

from settlement.exceptions import EntryNotFoundError, LockAcquisitionError

if TYPE_CHECKING:
    from typing import Any

    from redis.lock import Lock

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=models.Model)


class DistributedLock:
    """
    Mutex shared by every worker through the default Redis cache.

    Built on redis-py's Lock: the key expires after ``ttl`` seconds so a
    crashed holder cannot wedge the entry, and only the holder's token can
    delete it. ``ttl`` has to outlast the guarded provider call including
    SDK retries.

    Args:
        key: Resource name, stored as "lock:<key>"
        ttl: Seconds before Redis drops the lock on its own
        timeout: Seconds to wait for a competing holder
    """

    def __init__(self, key: str, ttl: float = 30, timeout: float = 10.0) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.timeout = timeout
        self._lock: Lock | None = None

    def acquire(self) -> None:
        """
        Raises:
            LockAcquisitionError: Still held elsewhere after ``timeout``
            redis.exceptions.RedisError: Lock backend unreachable
        """
        lock = get_redis_connection("default").lock(
            self.key,
            timeout=self.ttl,
            blocking_timeout=self.timeout,
        )
        if not lock.acquire():
            raise LockAcquisitionError(
                f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                details={"key": self.key, "timeout": self.timeout},
            )
        self._lock = lock

    def release(self) -> None:
        if self._lock is None:
            return
        lock, self._lock = self._lock, None
        try:
            lock.release()
        except LockNotOwnedError:
            # TTL ran out during the guarded call; the key is already gone
            logger.warning("Lock expired before release", extra={"key": self.key})

    @property
    def is_held(self) -> bool:
        return self._lock is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.release()
        return False


def lock_entry(model_class: type[T], pk: Any, **scope: Any) -> T:
    """
    select_for_update one row inside the caller's transaction.

    Keyword arguments narrow the lookup (e.g. owner=request.user); a row
    outside that scope is reported exactly like a missing one.
    """
    instance = model_class.objects.select_for_update().filter(pk=pk, **scope).first()
    if instance is None:
        raise EntryNotFoundError(
            f"{model_class.__name__} {pk} not found",
            details={"pk": str(pk)},
        )
    return instance


__all__ = [
    "DistributedLock",
    "lock_entry",
]
