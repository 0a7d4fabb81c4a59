"""
Permission classes for settlement API.

- IsBusinessOwner: Authenticated user holding the OWNER role

Helpers belong to an owner's team but never see or settle the ledger;
the owner is the trust authority for confirmations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsBusinessOwner(permissions.BasePermission):
    """Allows access only to business owner accounts."""

    message = "Only business owners can manage the ledger."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_owner", False))
