"""
Pytest fixtures for settlement tests.

Usage:
    def test_confirm(owner, pending_entry):
        outcome = ReconciliationCoordinator.confirm(pending_entry.id, owner)
        assert outcome.applied
"""

from unittest.mock import MagicMock

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import HelperFactory, OwnerFactory
from settlement.tests.factories import (
    HelperPayoutPolicyFactory,
    LedgerEntryFactory,
    PaidLedgerEntryFactory,
    PaymentSettingsFactory,
)
from settlement.types import PaymentLink


# =============================================================================
# Users
# =============================================================================


@pytest.fixture
def owner(db):
    return OwnerFactory(full_name="Dana Owner")


@pytest.fixture
def other_owner(db):
    return OwnerFactory()


@pytest.fixture
def helper(owner):
    return HelperFactory(team_owner=owner, full_name="Sam Helper")


# =============================================================================
# Ledger
# =============================================================================


@pytest.fixture
def pending_entry(owner):
    return LedgerEntryFactory(owner=owner)


@pytest.fixture
def paid_entry(owner):
    return PaidLedgerEntryFactory(owner=owner)


@pytest.fixture
def percentage_policy(owner, helper):
    return HelperPayoutPolicyFactory(owner=owner, helper=helper)


@pytest.fixture
def payment_settings(owner):
    return PaymentSettingsFactory(owner=owner)


# =============================================================================
# API Clients
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def owner_client(owner):
    client = APIClient()
    client.force_authenticate(user=owner)
    return client


# =============================================================================
# External Services
# =============================================================================


@pytest.fixture
def mock_redis(mocker):
    """
    Mock Redis client for distributed lock tests.

    Locks acquire on the first attempt and release cleanly by default.
    """
    mock_client = mocker.MagicMock()
    mock_client.lock.return_value.acquire.return_value = True

    mocker.patch("settlement.locks.get_redis_connection", return_value=mock_client)
    return mock_client


@pytest.fixture
def fake_channel():
    """Settlement channel double that hands out a fixed link."""
    channel = MagicMock()
    channel.name = "fake"
    channel.create_payment_link.return_value = PaymentLink(
        url="https://buy.stripe.com/test_abc",
        link_id="plink_test_abc",
    )
    channel.payment_method_types.return_value = ["card"]
    return channel
