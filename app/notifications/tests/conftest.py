"""
Test configuration and fixtures for notification tests.

Provides fixtures for:
- Businesses with and without an owner phone
- A fake SMS gateway (see fakes.py) that records sends
- A dispatcher wired to the real store and directory
"""

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from businesses.directory import DjangoBusinessDirectory
from businesses.tests.factories import BusinessFactory
from notifications.senders import build_default_senders
from notifications.services import NotificationDispatcher
from notifications.store import DjangoNotificationStore
from notifications.tests.factories import NotificationFactory
from notifications.tests.fakes import FakeSmsGateway


@pytest.fixture(autouse=True)
def clear_cache():
    """Contact lookups are cached; start each test cold."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def business(db):
    """Business whose owner has a phone and an email on file."""
    return BusinessFactory()


@pytest.fixture
def business_without_phone(db):
    """Business with no owner phone."""
    return BusinessFactory(owner_phone=None)


@pytest.fixture
def other_business(db):
    """A second tenant, for isolation checks."""
    return BusinessFactory()


@pytest.fixture
def notification(business):
    """Pending in-app notification."""
    return NotificationFactory(business=business)


@pytest.fixture
def sms_gateway():
    return FakeSmsGateway()


@pytest.fixture
def senders(sms_gateway):
    return build_default_senders(sms_gateway=sms_gateway)


@pytest.fixture
def dispatcher(db, senders):
    """Dispatcher with the real store and directory and a fake SMS gateway."""
    return NotificationDispatcher(
        store=DjangoNotificationStore(),
        senders=senders,
        directory=DjangoBusinessDirectory(),
    )


@pytest.fixture
def api_client():
    """Unauthenticated API client; tenancy is carried by businessId."""
    return APIClient()
