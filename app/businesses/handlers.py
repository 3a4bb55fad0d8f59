"""
Signal handlers for businesses.

Keeps the contact cache in step with the Business table so a changed phone
number takes effect on the next dispatch.
"""

from __future__ import annotations

import logging

from django.core.cache import cache
from django.db.models.signals import post_delete, post_save

from businesses.directory import contact_cache_key
from businesses.models import Business

logger = logging.getLogger(__name__)


def invalidate_contact_cache(sender, instance: Business, **kwargs) -> None:
    cache.delete(contact_cache_key(instance.id))
    logger.debug(f"Invalidated contact cache for business {instance.id}")


def register_handlers() -> None:
    """Connect business signal handlers. Called from BusinessesConfig.ready()."""
    post_save.connect(
        invalidate_contact_cache,
        sender=Business,
        dispatch_uid="businesses.invalidate_contact_cache.save",
    )
    post_delete.connect(
        invalidate_contact_cache,
        sender=Business,
        dispatch_uid="businesses.invalidate_contact_cache.delete",
    )
