"""
Notification system models.

This module defines the persisted state of the notification core:
- Notification: one delivery of one event over one channel
- NotificationLogEntry: generic event log used when the primary table
  cannot be written

Design Decisions:
    - One row per channel: a request naming N channels produces N rows, each
      with an independent lifecycle
    - Notification status is an FSMField; the legal transitions are the
      decorated methods below and bulk updates reuse the same source sets
    - Business uses CASCADE (a tenant's notifications go with it)
    - NotificationLogEntry stores business_id as a plain UUID so it can be
      written even when the schema around it has drifted

Status lifecycle:
    pending -> sent     (mark_sent, sender succeeded)
    pending -> failed   (mark_failed, sender failed)
    pending/sent/failed -> read   (mark_read, acknowledged or dismissed)

    read is terminal. failed rows are never retried in place; a fresh
    dispatch creates a new row.

Usage:
    from notifications.models import Notification, NotificationStatus

    notification = Notification.objects.create(
        business=business,
        type=NotificationType.NEW_LEAD,
        channel=NotificationChannel.IN_APP,
        title="New lead: Jane",
        message="From website form",
    )
    notification.mark_sent(sent_at=timezone.now())
    notification.save()
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.db import models
from django_fsm import FSMField, transition

from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel

if TYPE_CHECKING:
    from datetime import datetime


# =============================================================================
# Enums
# =============================================================================


class NotificationType(models.TextChoices):
    """The business event a notification describes."""

    NEW_LEAD = "new_lead", "New Lead"
    PAYMENT_RECEIVED = "payment_received", "Payment Received"
    INVOICE_OVERDUE = "invoice_overdue", "Invoice Overdue"
    MISSED_CALL = "missed_call", "Missed Call"
    DAILY_BRIEFING = "daily_briefing", "Daily Briefing"
    SYSTEM_ALERT = "system_alert", "System Alert"
    CO_FOUNDER_INSIGHT = "co_founder_insight", "Co-Founder Insight"


class NotificationChannel(models.TextChoices):
    """Delivery medium. Exactly one per row."""

    IN_APP = "in_app", "In-App"
    SMS = "sms", "SMS"
    PUSH = "push", "Push"
    EMAIL = "email", "Email"


class NotificationPriority(models.TextChoices):
    """
    Priority, fixed at creation.

    Drives upstream channel selection and live auto-dismiss timing.
    """

    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


class NotificationStatus(models.TextChoices):
    """Delivery lifecycle state."""

    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"
    READ = "read", "Read"


# Rows an explicit mark_read/dismiss may move to READ
READABLE_STATUSES = [
    NotificationStatus.PENDING,
    NotificationStatus.SENT,
    NotificationStatus.FAILED,
]

# Rows counted as unread and swept by mark_all_read (failed is excluded)
UNREAD_STATUSES = [
    NotificationStatus.PENDING,
    NotificationStatus.SENT,
]


# =============================================================================
# QuerySet
# =============================================================================


class NotificationQuerySet(models.QuerySet):
    """
    Chainable filters for notification reads and bulk transitions.

    Every public entry point starts from ``for_business`` so no query can
    cross tenants.

    Usage:
        Notification.objects.for_business(business_id).unread().count()
    """

    def for_business(self, business_id) -> NotificationQuerySet:
        return self.filter(business_id=business_id)

    def unread(self) -> NotificationQuerySet:
        return self.filter(status__in=UNREAD_STATUSES)

    def readable(self) -> NotificationQuerySet:
        return self.filter(status__in=READABLE_STATUSES)

    def due(self, now: datetime) -> NotificationQuerySet:
        """Pending rows whose schedule has arrived."""
        return self.filter(
            status=NotificationStatus.PENDING,
            scheduled_for__isnull=False,
            scheduled_for__lte=now,
        )

    def claimable(self, stale_before: datetime) -> NotificationQuerySet:
        """Pending rows nobody holds a live delivery claim on."""
        return self.filter(status=NotificationStatus.PENDING).filter(
            models.Q(claimed_at__isnull=True) | models.Q(claimed_at__lt=stale_before)
        )

    def purgeable(self, cutoff: datetime) -> NotificationQuerySet:
        """Read rows created strictly before ``cutoff``."""
        return self.filter(status=NotificationStatus.READ, created_at__lt=cutoff)


# =============================================================================
# Models
# =============================================================================


class Notification(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    One delivery of one business event over one channel.

    Fields:
        business: Owning tenant
        type: Event type (NotificationType)
        channel: Delivery medium (NotificationChannel)
        priority: Fixed priority (NotificationPriority)
        status: Lifecycle state, managed by django-fsm
        title, message: Display payload
        metadata: Caller context; the core only merges keys into it
        scheduled_for: Deferred send time, if any
        sent_at, read_at, error: Set once by the matching transition
        claimed_at: Delivery claim; at most one worker sends a given row
    """

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="Business that owns this notification",
    )
    type = models.CharField(
        max_length=32,
        choices=NotificationType.choices,
        help_text="Business event this notification describes",
    )
    channel = models.CharField(
        max_length=16,
        choices=NotificationChannel.choices,
        default=NotificationChannel.IN_APP,
        help_text="Delivery channel for this row",
    )
    priority = models.CharField(
        max_length=16,
        choices=NotificationPriority.choices,
        default=NotificationPriority.MEDIUM,
        help_text="Priority fixed at creation",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=NotificationStatus.PENDING,
        choices=NotificationStatus.choices,
        db_index=True,
        help_text="Delivery lifecycle state (managed by FSM)",
    )

    # ==========================================================================
    # Payload
    # ==========================================================================

    title = models.CharField(
        max_length=255,
        help_text="Notification title",
    )
    message = models.TextField(
        help_text="Notification body",
    )

    # ==========================================================================
    # Timestamps & Outcome
    # ==========================================================================

    scheduled_for = models.DateTimeField(
        null=True,
        blank=True,
        help_text="If in the future at creation, the send is deferred",
    )
    sent_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the channel accepted the notification",
    )
    read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the notification was read or dismissed",
    )
    error = models.TextField(
        null=True,
        blank=True,
        help_text="Failure reason reported by the channel",
    )
    claimed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When a worker took the row for delivery",
    )

    objects = NotificationQuerySet.as_manager()

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at"]
        verbose_name = "notification"
        verbose_name_plural = "notifications"
        indexes = [
            models.Index(
                fields=["business", "status"],
                name="notif_business_status_idx",
            ),
            models.Index(
                fields=["business", "-created_at"],
                name="notif_business_created_idx",
            ),
            models.Index(
                fields=["status", "scheduled_for"],
                name="notif_status_scheduled_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Notification({self.id}, {self.channel}, {self.status})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=NotificationStatus.PENDING,
        target=NotificationStatus.SENT,
    )
    def mark_sent(self, sent_at: datetime, delivery_ref: str | None = None):
        """
        Record a successful channel send.

        Transition: PENDING -> SENT
        """
        self.sent_at = sent_at
        if delivery_ref:
            self.set_meta("delivery_ref", delivery_ref, save=False)

    @transition(
        field=status,
        source=NotificationStatus.PENDING,
        target=NotificationStatus.FAILED,
    )
    def mark_failed(self, error: str):
        """
        Record a failed channel send.

        Transition: PENDING -> FAILED
        """
        self.error = error

    @transition(
        field=status,
        source=READABLE_STATUSES,
        target=NotificationStatus.READ,
    )
    def mark_read(self, read_at: datetime):
        """
        Acknowledge the notification.

        Transition: PENDING | SENT | FAILED -> READ

        A failed row can be acknowledged without ever having been delivered.
        """
        self.read_at = read_at

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_unread(self) -> bool:
        return self.status in UNREAD_STATUSES

    @property
    def is_dismissed(self) -> bool:
        return bool(self.get_meta("dismissed", False))


class NotificationLogEntry(models.Model):
    """
    Generic event log, written when the notifications table is unavailable.

    The full notification payload (channel, priority, message, metadata,
    schedule, and later status updates) lives in ``payload``.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )
    business_id = models.UUIDField(
        db_index=True,
        help_text="Owning business (not a foreign key)",
    )
    event_type = models.CharField(
        max_length=64,
        help_text="Notification type or other event name",
    )
    title = models.CharField(
        max_length=255,
        blank=True,
        default="",
    )
    payload = models.JSONField(
        default=dict,
        blank=True,
        help_text="Semantic payload of the event",
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
    )

    class Meta:
        db_table = "notification_log"
        ordering = ["-created_at"]
        verbose_name = "notification log entry"
        verbose_name_plural = "notification log entries"
        indexes = [
            models.Index(
                fields=["business_id", "-created_at"],
                name="notif_log_business_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"NotificationLogEntry({self.id}, {self.event_type})"

