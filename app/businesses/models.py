"""
Business model: the owning tenant of every notification.

Only the fields the notification core needs live here: a display name and
the owner's contact routing (phone for SMS, email for the email channel).

Usage:
    from businesses.models import Business

    business = Business.objects.create(
        name="Acme Plumbing",
        owner_phone="+15551234567",
    )
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from toolkit.validators import validate_phone_number


class Business(UUIDPrimaryKeyMixin, BaseModel):
    """
    A tenant. All notification reads and writes are scoped by its id.

    Fields:
        name: Display name
        owner_phone: E.164 phone number for SMS delivery (optional)
        owner_email: Owner email for the email channel (optional)
    """

    name = models.CharField(
        max_length=255,
        help_text="Business display name",
    )
    owner_phone = models.CharField(
        max_length=32,
        blank=True,
        null=True,
        validators=[validate_phone_number],
        help_text="Owner phone number in E.164 format, used for SMS alerts",
    )
    owner_email = models.EmailField(
        blank=True,
        null=True,
        help_text="Owner email address, used for email alerts",
    )

    class Meta:
        db_table = "businesses"
        ordering = ["name"]
        verbose_name = "business"
        verbose_name_plural = "businesses"

    def __str__(self) -> str:
        return self.name
