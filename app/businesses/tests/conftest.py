"""
Test configuration and fixtures for business tests.
"""

import pytest
from django.core.cache import cache

from businesses.tests.factories import BusinessFactory


@pytest.fixture(autouse=True)
def clear_cache():
    """Contact lookups are cached; start each test cold."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def business(db):
    """Create a business with a phone and email on file."""
    return BusinessFactory()
