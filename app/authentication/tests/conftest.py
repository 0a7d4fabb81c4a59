"""
Test configuration and fixtures for authentication tests.
"""

import pytest
from rest_framework.test import APIClient

from authentication.models import User
from authentication.tests.factories import HelperFactory, OwnerFactory


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def owner(db):
    return OwnerFactory(password="TestPass123!")


@pytest.fixture
def helper(owner):
    return HelperFactory(team_owner=owner)


@pytest.fixture
def superuser(db):
    return User.objects.create_superuser(email="admin@example.com", password="AdminPass123!")
