"""
Base service layer patterns for business logic encapsulation.

- ServiceResult: Standard result wrapper for expected failures
- BaseService: Base class with logging and transaction helpers

Views handle HTTP concerns, models handle data, services handle logic.
Expected failures (an unknown reference in a webhook payload, a duplicate
delivery) come back as ``ServiceResult.failure``; unexpected ones raise.

Usage:
    from core.services import BaseService, ServiceResult

    class LedgerEntryService(BaseService):
        @classmethod
        def discard(cls, entry_id) -> ServiceResult[int]:
            with cls.atomic():
                deleted, _ = LedgerEntry.objects.filter(pk=entry_id).delete()
            cls.get_logger().info("Discarded entry", extra={"entry_id": str(entry_id)})
            return ServiceResult.success(deleted)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own error code unless one is given;
        anything else falls back to the upper-cased class name.
        """
        code = error_code or getattr(exc, "error_code", None)
        return cls(
            success=False,
            error=getattr(exc, "message", str(exc)),
            error_code=code or exc.__class__.__name__.upper(),
        )

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Services are stateless: use @classmethod, no instance state. Use
    ServiceResult for expected failures and raise for unexpected ones.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the service class for easy filtering in logs."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around Django's transaction.atomic() that makes
        transaction boundaries explicit in service code.
        """
        with transaction.atomic():
            yield
