"""
Model mixins providing reusable functionality for Django models.

This module contains abstract mixin classes that can be combined with
BaseModel to add specific functionality. They are generic infrastructure
classes with no domain-specific logic.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
    MetadataMixin: Flexible JSON metadata storage

Usage:
    from core.models import BaseModel
    from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin

    class Notification(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
        title = models.CharField(max_length=255)

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.db import models

if TYPE_CHECKING:
    from typing import Any


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    IDs can be generated before the insert, which lets a caller hand out a
    record id that later lands in a different table (see the notification
    log fallback).

    Fields:
        id: UUIDField as primary key (auto-generated)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class MetadataMixin(models.Model):
    """
    Flexible JSON metadata storage.

    Fields:
        metadata: JSONField for arbitrary key-value data

    Usage:
        notification.get_meta("lead_id")
        notification.merge_meta({"dismissed": True})

    Note:
        Writers merge keys rather than replacing the dict, so caller-supplied
        context survives every update.
    """

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Flexible key-value metadata storage",
    )

    class Meta:
        abstract = True

    def get_meta(self, key: str, default: Any = None) -> Any:
        """Get metadata value by key."""
        return (self.metadata or {}).get(key, default)

    def set_meta(self, key: str, value: Any, save: bool = True) -> None:
        """
        Set metadata value and optionally save.

        Example:
            notification.set_meta("delivery_ref", "SM123", save=False)
        """
        self.merge_meta({key: value}, save=save)

    def merge_meta(self, values: dict[str, Any], save: bool = True) -> None:
        """Merge ``values`` into metadata, keeping existing keys."""
        merged = dict(self.metadata or {})
        merged.update(values)
        self.metadata = merged
        if save:
            self.save(update_fields=["metadata", "updated_at"])
