"""
Business contact resolution for notification routing.

The notification dispatcher needs two things from the tenancy layer: whether
a business exists, and where its owner can be reached. This module provides
the value type for that answer and the default Django-backed directory.

Lookups are cached (django cache, Redis in production) and invalidated when
the Business row is saved or deleted.

Usage:
    from businesses.directory import DjangoBusinessDirectory

    directory = DjangoBusinessDirectory()
    contact = directory.get_contact(business_id)
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.cache import cache

from businesses.models import Business
from core.helpers import validate_uuid

if TYPE_CHECKING:
    from uuid import UUID

logger = logging.getLogger(__name__)

CONTACT_CACHE_PREFIX = "business_contact"


def contact_cache_key(business_id: UUID | str) -> str:
    return f"{CONTACT_CACHE_PREFIX}:{business_id}"


@dataclass(frozen=True)
class BusinessContact:
    """
    Contact routing for one business.

    Attributes:
        business_id: Tenant id (string form)
        name: Business display name
        phone: Owner phone for SMS, or None
        email: Owner email, or None
    """

    business_id: str
    name: str
    phone: str | None = None
    email: str | None = None

    @classmethod
    def from_business(cls, business: Business) -> BusinessContact:
        return cls(
            business_id=str(business.id),
            name=business.name,
            phone=business.owner_phone or None,
            email=business.owner_email or None,
        )


class DjangoBusinessDirectory:
    """
    BusinessDirectory backed by the Business table.

    Example:
        contact = DjangoBusinessDirectory().get_contact(business_id)
    """

    def __init__(self, cache_timeout: int | None = None):
        if cache_timeout is None:
            cache_timeout = settings.BUSINESS_CONTACT_CACHE_TIMEOUT
        self.cache_timeout = cache_timeout

    def get_contact(self, business_id: UUID | str) -> BusinessContact | None:
        if not validate_uuid(business_id):
            return None

        key = contact_cache_key(business_id)
        cached = cache.get(key)
        if cached is not None:
            return BusinessContact(**cached)

        business = Business.objects.filter(id=business_id).first()
        if business is None:
            logger.info(f"Business {business_id} not found")
            return None

        contact = BusinessContact.from_business(business)
        cache.set(key, asdict(contact), timeout=self.cache_timeout)
        return contact
